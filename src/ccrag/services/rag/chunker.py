from __future__ import annotations

from pathlib import Path
from typing import Protocol

from ccrag.services.rag.embedding_client import Tokenizer


class Chunker(Protocol):
    policy: str

    def chunk(self, text: str) -> list[str]: ...


def _check_chunk_size(chunk_size: int) -> None:
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")


def chunk_words(text: str, *, chunk_size: int) -> list[str]:
    _check_chunk_size(chunk_size)

    words = text.split()
    return [
        " ".join(words[start : start + chunk_size])
        for start in range(0, len(words), chunk_size)
    ]


class WordChunker:
    policy = "words"

    def __init__(self, *, chunk_size: int) -> None:
        _check_chunk_size(chunk_size)
        self._chunk_size = chunk_size

    def chunk(self, text: str) -> list[str]:
        return chunk_words(text, chunk_size=self._chunk_size)


class TokenChunker:
    """Splits text on the embedding model's own token boundaries.

    The tokenizer endpoint is authoritative: each window of ``chunk_size``
    token ids is detokenized back to text as returned by the service.
    """

    policy = "tokens"

    def __init__(self, *, tokenizer: Tokenizer, chunk_size: int) -> None:
        _check_chunk_size(chunk_size)
        self._tokenizer = tokenizer
        self._chunk_size = chunk_size

    def chunk(self, text: str) -> list[str]:
        if not text.strip():
            return []

        tokens = self._tokenizer.tokenize(text)
        chunks: list[str] = []
        for start in range(0, len(tokens), self._chunk_size):
            chunk_text = self._tokenizer.detokenize(tokens[start : start + self._chunk_size])
            if chunk_text.strip():
                chunks.append(chunk_text)
        return chunks


def build_chunker(policy: str, *, chunk_size: int, tokenizer: Tokenizer | None = None) -> Chunker:
    if policy == "words":
        return WordChunker(chunk_size=chunk_size)
    if policy == "tokens":
        if tokenizer is None:
            raise ValueError("token chunking requires a tokenizer")
        return TokenChunker(tokenizer=tokenizer, chunk_size=chunk_size)
    raise ValueError(f"Unknown chunk policy: {policy}")


def read_chunks(path: Path, chunker: Chunker) -> list[str]:
    text = path.read_text(encoding="utf-8")
    return chunker.chunk(text)
