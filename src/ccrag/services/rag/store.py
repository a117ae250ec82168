from __future__ import annotations

from dataclasses import asdict
import hashlib
import json
import logging
import os
from pathlib import Path, PurePath
import re
import tempfile

from ccrag.services.rag.errors import CorruptRecordError
from ccrag.services.rag.types import EmbeddingRecord

logger = logging.getLogger(__name__)

RECORD_SUFFIX = ".json"
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
MAX_SLUG_LENGTH = 100


def slugify(document_id: str) -> str:
    name = PurePath(document_id).name or "document"
    slug = _UNSAFE_CHARS.sub("-", name)[:MAX_SLUG_LENGTH].strip("-.") or "document"
    digest = hashlib.sha256(document_id.encode("utf-8")).hexdigest()[:12]
    return f"{slug}-{digest}"


def _parse_record(path: Path, raw: str) -> EmbeddingRecord:
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CorruptRecordError(path, f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise CorruptRecordError(path, "payload must be a JSON object")

    source = payload.get("source")
    embeddings = payload.get("embeddings")
    chunk_size = payload.get("chunk_size")
    if not isinstance(source, str) or not source:
        raise CorruptRecordError(path, "'source' must be a non-empty string")
    if not isinstance(embeddings, list):
        raise CorruptRecordError(path, "'embeddings' must be a list")
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
        raise CorruptRecordError(path, "'chunk_size' must be an integer")

    vectors: list[list[float]] = []
    for embedding in embeddings:
        if not isinstance(embedding, list) or not all(
            isinstance(value, (int, float)) and not isinstance(value, bool) for value in embedding
        ):
            raise CorruptRecordError(path, "every embedding must be a list of numbers")
        vectors.append([float(value) for value in embedding])

    source_mtime = payload.get("source_mtime")
    return EmbeddingRecord(
        source=source,
        embeddings=vectors,
        chunk_size=chunk_size,
        model=payload.get("model") if isinstance(payload.get("model"), str) else None,
        chunk_policy=(
            payload.get("chunk_policy") if isinstance(payload.get("chunk_policy"), str) else None
        ),
        source_mtime=float(source_mtime) if isinstance(source_mtime, (int, float)) else None,
        created_at=payload.get("created_at") if isinstance(payload.get("created_at"), str) else None,
    )


class EmbeddingStore:
    """One JSON file per document, named deterministically from its id."""

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def ensure_directory(self) -> Path:
        self._directory.mkdir(parents=True, exist_ok=True)
        return self._directory

    def path_for(self, document_id: str) -> Path:
        return self._directory / f"{slugify(document_id)}{RECORD_SUFFIX}"

    def has(self, document_id: str) -> bool:
        return self.path_for(document_id).exists()

    def put(self, record: EmbeddingRecord) -> Path:
        self.ensure_directory()
        target = self.path_for(record.source)
        payload = {key: value for key, value in asdict(record).items() if value is not None}

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.stem}.", suffix=".tmp", dir=self._directory
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, ensure_ascii=False)
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

        logger.debug("[STORE] wrote %s (%d vectors)", target, len(record.embeddings))
        return target

    def get(self, document_id: str) -> EmbeddingRecord:
        path = self.path_for(document_id)
        return self._load(path)

    def list_all(self) -> list[EmbeddingRecord]:
        if not self._directory.exists():
            return []

        records: list[EmbeddingRecord] = []
        for path in sorted(self._directory.glob(f"*{RECORD_SUFFIX}")):
            try:
                record = self._load(path)
            except CorruptRecordError as exc:
                logger.warning("[STORE] skipping %s", exc)
                continue
            except OSError as exc:
                logger.warning("[STORE] skipping unreadable record %s: %s", path, exc)
                continue

            if not record.embeddings:
                logger.warning("[STORE] skipping empty embedding record %s (%s)", path, record.source)
                continue

            records.append(record)
        return records

    def _load(self, path: Path) -> EmbeddingRecord:
        try:
            raw = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptRecordError(path, f"not UTF-8: {exc}") from exc
        return _parse_record(path, raw)
