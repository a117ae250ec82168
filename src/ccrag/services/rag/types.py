from dataclasses import dataclass, field


@dataclass(frozen=True)
class EmbeddingRecord:
    source: str
    embeddings: list[list[float]]
    chunk_size: int
    model: str | None = None
    chunk_policy: str | None = None
    source_mtime: float | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class ScoredResult:
    source: str
    score: float


@dataclass(frozen=True)
class IngestionSummary:
    embedded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class AnswerResult:
    answer: str
    model: str
    used_fallback: bool
    hits: list[ScoredResult]
