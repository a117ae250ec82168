from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ccrag.services.rag.context import assemble_context, build_prompt
from ccrag.services.rag.embedding_client import EmbeddingClient
from ccrag.services.rag.errors import DimensionMismatchError, EmptyResultError
from ccrag.services.rag.ranker import rank
from ccrag.services.rag.store import EmbeddingStore
from ccrag.services.rag.types import AnswerResult, EmbeddingRecord, ScoredResult

if TYPE_CHECKING:
    from ccrag.llm import LLMClient

logger = logging.getLogger(__name__)


def _check_models(records: list[EmbeddingRecord], embed_model: str | None) -> None:
    if embed_model is None:
        return
    for record in records:
        if record.model is not None and record.model != embed_model:
            raise DimensionMismatchError(
                f"Embedding record for {record.source} was built with model "
                f"{record.model!r}, but the configured embedding model is {embed_model!r}"
            )


def search(
    query_text: str,
    *,
    store: EmbeddingStore,
    embedding_client: EmbeddingClient,
    top_k: int,
    embed_model: str | None = None,
) -> list[ScoredResult]:
    normalized_query = query_text.strip()
    if not normalized_query:
        raise ValueError("query_text must not be empty")

    vectors = embedding_client.embed_texts([normalized_query])
    if not vectors or not vectors[0]:
        raise EmptyResultError("Failed to create embedding for the query")
    query_vector = vectors[0]

    records = store.list_all()
    _check_models(records, embed_model)

    hits = rank(query_vector, records, top_k)
    for hit in hits:
        logger.debug("[QUERY] %s %.6f", hit.source, hit.score)
    return hits


def answer_query(
    query_text: str,
    *,
    store: EmbeddingStore,
    embedding_client: EmbeddingClient,
    llm_client: LLMClient,
    top_k: int,
    embed_model: str | None = None,
) -> AnswerResult:
    hits = search(
        query_text,
        store=store,
        embedding_client=embedding_client,
        top_k=top_k,
        embed_model=embed_model,
    )
    context = assemble_context([hit.source for hit in hits])
    prompt = build_prompt(context, query_text.strip())
    result = llm_client.generate_answer(prompt)

    return AnswerResult(
        answer=result.answer,
        model=result.model,
        used_fallback=result.used_fallback,
        hits=hits,
    )
