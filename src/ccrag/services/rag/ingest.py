from __future__ import annotations

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
import logging
from pathlib import Path

from ccrag.services.rag.chunker import Chunker, read_chunks
from ccrag.services.rag.embedding_client import EmbeddingClient
from ccrag.services.rag.errors import EmptyDocumentError, EmptyResultError
from ccrag.services.rag.store import EmbeddingStore
from ccrag.services.rag.types import EmbeddingRecord, IngestionSummary

logger = logging.getLogger(__name__)

EMBEDDED = "embedded"
SKIPPED = "skipped"


def _is_stale(store: EmbeddingStore, document_id: str, source: Path) -> bool:
    record = store.get(document_id)
    if record.source_mtime is None:
        return True
    return source.stat().st_mtime > record.source_mtime


def embed_document(
    document_id: str,
    *,
    store: EmbeddingStore,
    chunker: Chunker,
    embedding_client: EmbeddingClient,
    chunk_size: int,
    embed_model: str | None = None,
    refresh_stale: bool = False,
) -> str:
    """Chunk, embed and persist one document.

    An existing record means the document is skipped. With ``refresh_stale``
    the record is rebuilt when the source file changed after it was written.
    """
    source = Path(document_id)
    if store.has(document_id):
        if not refresh_stale or not _is_stale(store, document_id, source):
            logger.debug("[INGEST] %s already embedded, skipping", document_id)
            return SKIPPED
        logger.info("[INGEST] %s changed since last embedding, refreshing", document_id)

    source_mtime = source.stat().st_mtime
    chunks = read_chunks(source, chunker)
    if not chunks:
        raise EmptyDocumentError(f"{document_id} produced no chunks")

    embeddings = embedding_client.embed_texts(chunks)
    if len(embeddings) != len(chunks):
        raise EmptyResultError(
            f"expected {len(chunks)} embeddings for {document_id}, got {len(embeddings)}"
        )

    store.put(
        EmbeddingRecord(
            source=document_id,
            embeddings=embeddings,
            chunk_size=chunk_size,
            model=embed_model,
            chunk_policy=chunker.policy,
            source_mtime=source_mtime,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
    )
    logger.debug("[INGEST] embedded %s (%d chunks)", document_id, len(chunks))
    return EMBEDDED


def _normalize_ids(document_ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    normalized: list[str] = []
    for raw in document_ids:
        document_id = raw.strip()
        if not document_id or document_id in seen:
            continue
        seen.add(document_id)
        normalized.append(document_id)
    return normalized


def ingest_documents(
    document_ids: Iterable[str],
    *,
    store: EmbeddingStore,
    chunker: Chunker,
    embedding_client: EmbeddingClient,
    chunk_size: int,
    embed_model: str | None = None,
    refresh_stale: bool = False,
    max_workers: int = 4,
) -> IngestionSummary:
    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")

    ids = _normalize_ids(document_ids)
    store.ensure_directory()

    embedded: list[str] = []
    skipped: list[str] = []
    failed: list[tuple[str, str]] = []

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(
                embed_document,
                document_id,
                store=store,
                chunker=chunker,
                embedding_client=embedding_client,
                chunk_size=chunk_size,
                embed_model=embed_model,
                refresh_stale=refresh_stale,
            ): document_id
            for document_id in ids
        }
        for future in as_completed(futures):
            document_id = futures[future]
            try:
                outcome = future.result()
            except Exception as exc:
                logger.warning("[INGEST] failed to embed %s: %s", document_id, exc)
                failed.append((document_id, str(exc) or type(exc).__name__))
                continue

            if outcome == EMBEDDED:
                embedded.append(document_id)
            else:
                skipped.append(document_id)

    return IngestionSummary(
        embedded=sorted(embedded),
        skipped=sorted(skipped),
        failed=sorted(failed),
    )
