from ccrag.services.rag.ingest import embed_document, ingest_documents
from ccrag.services.rag.query import answer_query, search
from ccrag.services.rag.store import EmbeddingStore
from ccrag.services.rag.types import AnswerResult, EmbeddingRecord, IngestionSummary, ScoredResult

__all__ = [
    "AnswerResult",
    "EmbeddingRecord",
    "EmbeddingStore",
    "IngestionSummary",
    "ScoredResult",
    "answer_query",
    "embed_document",
    "ingest_documents",
    "search",
]
