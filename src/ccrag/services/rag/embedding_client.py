from __future__ import annotations

from typing import Any, Protocol

import httpx

from ccrag.services.rag.errors import EmptyResultError, TransportError


class EmbeddingClient(Protocol):
    def embed_texts(self, texts: list[str]) -> list[list[float]]: ...


class Tokenizer(Protocol):
    def tokenize(self, text: str) -> list[int]: ...

    def detokenize(self, tokens: list[int]) -> str: ...


def post_json(url: str, payload: dict[str, Any], *, timeout: float) -> dict[str, Any]:
    """POST a JSON payload and return the decoded JSON object.

    Connection failures, timeouts and non-success statuses are all raised as
    ``TransportError`` so callers can tell them apart from empty results.
    """
    try:
        response = httpx.post(url, json=payload, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TransportError(
            f"{url} returned status {exc.response.status_code}",
            status_code=exc.response.status_code,
        ) from exc
    except httpx.HTTPError as exc:
        raise TransportError(f"{url} request failed: {exc}") from exc

    try:
        body = response.json()
    except ValueError as exc:
        raise TransportError(f"{url} returned invalid JSON: {exc}") from exc
    if not isinstance(body, dict):
        raise TransportError(f"{url} returned a non-object JSON payload")
    return body


class OllamaEmbeddingClient:
    def __init__(self, *, base_url: str, model: str, timeout_seconds: float = 180.0) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout_seconds = timeout_seconds

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        payload = post_json(
            f"{self._base_url}/api/embed",
            {"model": self._model, "input": texts},
            timeout=self._timeout_seconds,
        )

        data = payload.get("embeddings")
        if not isinstance(data, list) or not data:
            raise EmptyResultError("Invalid embeddings payload: no embeddings returned")

        vectors: list[list[float]] = []
        for embedding in data:
            if not isinstance(embedding, list) or not embedding:
                raise EmptyResultError("Invalid embeddings payload: missing embedding vector")
            vectors.append([float(value) for value in embedding])

        if len(vectors) != len(texts):
            raise EmptyResultError(
                f"Invalid embeddings payload: expected {len(texts)} vectors, got {len(vectors)}"
            )

        return vectors

    def embed_text(self, text: str) -> list[float]:
        return self.embed_texts([text])[0]

    def tokenize(self, text: str) -> list[int]:
        payload = post_json(
            f"{self._base_url}/api/tokenize",
            {"model": self._model, "content": text},
            timeout=self._timeout_seconds,
        )
        tokens = payload.get("tokens")
        if not isinstance(tokens, list):
            raise EmptyResultError("Invalid tokenize payload: missing tokens")
        return [int(token) for token in tokens]

    def detokenize(self, tokens: list[int]) -> str:
        payload = post_json(
            f"{self._base_url}/api/detokenize",
            {"model": self._model, "tokens": tokens},
            timeout=self._timeout_seconds,
        )
        content = payload.get("content")
        if not isinstance(content, str):
            raise EmptyResultError("Invalid detokenize payload: missing content")
        return content
