import json
import logging
from pathlib import Path

import pytest

from ccrag.services.rag.errors import CorruptRecordError
from ccrag.services.rag.store import EmbeddingStore, slugify
from ccrag.services.rag.types import EmbeddingRecord


def _record(source: str, embeddings: list[list[float]] | None = None) -> EmbeddingRecord:
    return EmbeddingRecord(
        source=source,
        embeddings=embeddings if embeddings is not None else [[1.0, 0.0], [0.5, 0.5]],
        chunk_size=100,
        model="mxbai-embed-large",
        chunk_policy="words",
        source_mtime=1700000000.0,
        created_at="2026-10-19T00:00:00+00:00",
    )


def test_slugify_is_deterministic_and_filename_safe() -> None:
    slug = slugify("/home/me/notes/Weekly Review (draft).org")

    assert slug == slugify("/home/me/notes/Weekly Review (draft).org")
    assert slug.startswith("Weekly-Review-draft-.org-")
    assert "/" not in slug and " " not in slug


def test_slugify_distinguishes_same_basename_in_different_directories() -> None:
    assert slugify("/notes/a/todo.txt") != slugify("/notes/b/todo.txt")


def test_slugify_caps_long_basenames() -> None:
    first = slugify("/notes/" + "n" * 240 + "-first.txt")
    second = slugify("/notes/" + "n" * 240 + "-second.txt")

    assert len(first) <= 100 + 13
    assert first != second


def test_store_put_accepts_long_basename(tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    document_id = str(tmp_path / ("n" * 240 + ".txt"))

    path = store.put(_record(document_id))

    assert len(path.name) < 255
    assert store.get(document_id).source == document_id


def test_store_put_has_get_roundtrip(tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path / "embed")
    record = _record("/notes/alice.txt")

    assert not store.has("/notes/alice.txt")

    path = store.put(record)

    assert path == store.path_for("/notes/alice.txt")
    assert store.has("/notes/alice.txt")
    assert store.get("/notes/alice.txt") == record

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["source"] == "/notes/alice.txt"
    assert payload["chunk_size"] == 100
    assert payload["embeddings"] == [[1.0, 0.0], [0.5, 0.5]]
    assert list(path.parent.iterdir()) == [path]


def test_store_get_missing_record_raises(tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path / "embed")

    with pytest.raises(FileNotFoundError):
        store.get("/notes/nope.txt")


def test_store_loads_records_without_optional_metadata(tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path)
    store.path_for("/notes/legacy.txt").write_text(
        json.dumps({"embeddings": [[0.1, 0.2]], "chunk_size": 100, "source": "/notes/legacy.txt"}),
        encoding="utf-8",
    )

    record = store.get("/notes/legacy.txt")

    assert record.embeddings == [[0.1, 0.2]]
    assert record.model is None
    assert record.source_mtime is None


def test_store_get_rejects_malformed_record(tmp_path: Path) -> None:
    store = EmbeddingStore(tmp_path)
    store.path_for("/notes/bad.txt").write_text('{"embeddings": [[1, "x"]]', encoding="utf-8")

    with pytest.raises(CorruptRecordError, match="invalid JSON"):
        store.get("/notes/bad.txt")


def test_list_all_skips_corrupt_and_empty_records(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    store = EmbeddingStore(tmp_path)
    store.put(_record("/notes/a.txt"))
    store.put(_record("/notes/b.txt"))
    store.put(_record("/notes/empty.txt", embeddings=[]))
    (tmp_path / "garbage.json").write_text("not json at all", encoding="utf-8")
    (tmp_path / "wrong-shape.json").write_text(
        json.dumps({"embeddings": "nope", "chunk_size": 1, "source": "x"}), encoding="utf-8"
    )

    with caplog.at_level(logging.WARNING, logger="ccrag.services.rag.store"):
        records = store.list_all()

    assert sorted(record.source for record in records) == ["/notes/a.txt", "/notes/b.txt"]
    assert "garbage.json" in caplog.text
    assert "wrong-shape.json" in caplog.text
    assert "/notes/empty.txt" in caplog.text


def test_list_all_on_missing_directory_is_empty(tmp_path: Path) -> None:
    assert EmbeddingStore(tmp_path / "never-created").list_all() == []
