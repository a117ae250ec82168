from __future__ import annotations

from collections.abc import Sequence
import math

from ccrag.services.rag.errors import DimensionMismatchError
from ccrag.services.rag.types import EmbeddingRecord, ScoredResult


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise DimensionMismatchError(
            f"Cannot compare vectors of different dimensions: {len(a)} != {len(b)}"
        )

    dot = math.fsum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def document_score(query: Sequence[float], embeddings: Sequence[Sequence[float]]) -> float:
    """Mean cosine similarity between ``query`` and every chunk vector."""
    if not embeddings:
        raise ValueError("embeddings must not be empty")
    return math.fsum(cosine_similarity(query, embedding) for embedding in embeddings) / len(
        embeddings
    )


def check_dimensions(query: Sequence[float], records: Sequence[EmbeddingRecord]) -> None:
    expected = len(query)
    for record in records:
        for embedding in record.embeddings:
            if len(embedding) != expected:
                raise DimensionMismatchError(
                    f"Embedding record for {record.source} has dimension {len(embedding)}, "
                    f"query has dimension {expected}; was the store built with another model?"
                )


def rank(
    query: Sequence[float],
    records: Sequence[EmbeddingRecord],
    k: int,
) -> list[ScoredResult]:
    """Score every record and return the ``k`` best, highest score first.

    Equal scores are ordered by ascending source so repeated calls over the
    same corpus give the same list.
    """
    if k < 1:
        raise ValueError("k must be >= 1")

    check_dimensions(query, records)
    results = [
        ScoredResult(source=record.source, score=document_score(query, record.embeddings))
        for record in records
        if record.embeddings
    ]
    results.sort(key=lambda result: (-result.score, result.source))
    return results[:k]
