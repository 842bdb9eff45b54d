"""Exception types for es2qdrant."""

from __future__ import annotations


class ExportError(Exception):
    """Base class for export failures."""


class FetchError(ExportError):
    """A page could not be fetched from the source index."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.cause = cause


class ProvisionError(ExportError):
    """The destination collection could not be verified or created."""


class WriteError(ExportError):
    """One or more points failed to upsert."""

    def __init__(self, message: str, point_ids: list[int] | None = None) -> None:
        super().__init__(message)
        self.point_ids = point_ids or []


class EmbeddingError(ExportError):
    """The embedder failed or returned a vector of the wrong length."""
