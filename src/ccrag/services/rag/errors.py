from __future__ import annotations

from pathlib import Path


class RagError(RuntimeError):
    pass


class OllamaClientError(RagError):
    """Raised when the embedding or generation service cannot serve a request."""


class TransportError(OllamaClientError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class EmptyResultError(OllamaClientError):
    pass


class CorruptRecordError(RagError):
    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Corrupt embedding record {path}: {reason}")
        self.path = path


class DimensionMismatchError(RagError):
    pass


class SourceUnavailableError(RagError):
    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Source document unavailable: {source} ({reason})")
        self.source = source


class EmptyDocumentError(RagError):
    pass
