import logging
from pathlib import Path

import pytest

from ccrag.llm import GenerationResult
from ccrag.services.rag.chunker import WordChunker
from ccrag.services.rag.errors import (
    DimensionMismatchError,
    EmptyResultError,
    SourceUnavailableError,
    TransportError,
)
from ccrag.services.rag.ingest import ingest_documents
from ccrag.services.rag.query import answer_query, search
from ccrag.services.rag.store import EmbeddingStore
from ccrag.services.rag.types import EmbeddingRecord, ScoredResult


class FakeEmbeddingClient:
    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for text in texts:
            normalized = text.lower()
            vectors.append([float("cat" in normalized), float("dog" in normalized)])
        return vectors


class EmptyEmbeddingClient:
    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return []


class UnreachableEmbeddingClient:
    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        raise TransportError("connection refused")


class FakeLLMClient:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    def generate_answer(self, prompt: str) -> GenerationResult:
        self.prompts.append(prompt)
        return GenerationResult(answer="on the mat", model="fake-llm", used_fallback=False)


def _ingest_corpus(corpus: dict[str, Path], store: EmbeddingStore) -> None:
    summary = ingest_documents(
        [str(corpus["alice"]), str(corpus["bob"])],
        store=store,
        chunker=WordChunker(chunk_size=100),
        embedding_client=FakeEmbeddingClient(),
        chunk_size=100,
        embed_model="fake-embed",
    )
    assert summary.failed == []


def test_similarity_search_ranks_matching_document_first(
    corpus: dict[str, Path], tmp_path: Path
) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    _ingest_corpus(corpus, store)

    hits = search(
        "cat",
        store=store,
        embedding_client=FakeEmbeddingClient(),
        top_k=10,
        embed_model="fake-embed",
    )

    assert hits == [
        ScoredResult(source=str(corpus["alice"]), score=1.0),
        ScoredResult(source=str(corpus["bob"]), score=0.0),
    ]


def test_similarity_search_on_empty_corpus_returns_empty_list(tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    store.ensure_directory()

    hits = search("anything", store=store, embedding_client=FakeEmbeddingClient(), top_k=10)

    assert hits == []


def test_similarity_search_skips_zero_vector_record(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    for index in range(9):
        store.put(
            EmbeddingRecord(
                source=f"/notes/valid-{index}.txt",
                embeddings=[[1.0, float(index)]],
                chunk_size=100,
            )
        )
    store.put(EmbeddingRecord(source="/notes/hollow.txt", embeddings=[], chunk_size=100))

    with caplog.at_level(logging.WARNING, logger="ccrag.services.rag.store"):
        hits = search("cat", store=store, embedding_client=FakeEmbeddingClient(), top_k=20)

    assert len(hits) == 9
    assert "/notes/hollow.txt" not in {hit.source for hit in hits}
    assert hits[0].source == "/notes/valid-0.txt"
    assert "/notes/hollow.txt" in caplog.text


def test_search_rejects_blank_query(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="must not be empty"):
        search("   ", store=EmbeddingStore(tmp_path), embedding_client=FakeEmbeddingClient(), top_k=3)


def test_search_surfaces_empty_query_embedding(tmp_path: Path) -> None:
    with pytest.raises(EmptyResultError):
        search("cat", store=EmbeddingStore(tmp_path), embedding_client=EmptyEmbeddingClient(), top_k=3)


def test_search_rejects_records_from_another_model(
    corpus: dict[str, Path], tmp_path: Path
) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    _ingest_corpus(corpus, store)

    with pytest.raises(DimensionMismatchError, match="fake-embed"):
        search(
            "cat",
            store=store,
            embedding_client=FakeEmbeddingClient(),
            top_k=3,
            embed_model="other-embed",
        )


def test_search_rejects_mixed_dimensions(tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    store.put(EmbeddingRecord(source="/notes/wide.txt", embeddings=[[1.0, 0.0, 0.0]], chunk_size=100))

    with pytest.raises(DimensionMismatchError, match="/notes/wide.txt"):
        search("cat", store=store, embedding_client=FakeEmbeddingClient(), top_k=3)


def test_answer_query_prompts_llm_with_ranked_sources(
    corpus: dict[str, Path], tmp_path: Path
) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    _ingest_corpus(corpus, store)
    llm = FakeLLMClient()

    result = answer_query(
        " where did the cat sit? ",
        store=store,
        embedding_client=FakeEmbeddingClient(),
        llm_client=llm,
        top_k=2,
    )

    assert result.answer == "on the mat"
    assert result.model == "fake-llm"
    assert [hit.source for hit in result.hits] == [str(corpus["alice"]), str(corpus["bob"])]
    assert len(llm.prompts) == 1
    prompt = llm.prompts[0]
    assert "Information:\nthe cat sat\nthe dog ran\n" in prompt
    assert prompt.endswith("Question: where did the cat sit?")


def test_answer_query_reports_moved_source(corpus: dict[str, Path], tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    _ingest_corpus(corpus, store)
    corpus["bob"].unlink()
    llm = FakeLLMClient()

    with pytest.raises(SourceUnavailableError) as excinfo:
        answer_query(
            "cat",
            store=store,
            embedding_client=FakeEmbeddingClient(),
            llm_client=llm,
            top_k=2,
        )

    assert excinfo.value.source == str(corpus["bob"])
    assert llm.prompts == []


def test_answer_query_propagates_embedding_failure(tmp_path: Path) -> None:
    llm = FakeLLMClient()

    with pytest.raises(TransportError):
        answer_query(
            "cat",
            store=EmbeddingStore(tmp_path),
            embedding_client=UnreachableEmbeddingClient(),
            llm_client=llm,
            top_k=2,
        )

    assert llm.prompts == []
