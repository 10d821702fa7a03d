from __future__ import annotations


class FormatError(ValueError):
    """Raised when bytes cannot be decoded or re-encoded as an image."""


class IngestionError(RuntimeError):
    """Opaque failure surfaced to callers when an upload could not be ingested.

    The underlying stage and cause are logged server side and kept on
    ``stage`` / ``__cause__`` for tests and diagnostics; they are not part of
    the HTTP contract.
    """

    def __init__(self, message: str = "Image ingestion failed", *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage
