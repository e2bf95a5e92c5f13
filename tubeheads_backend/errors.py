"""
Error taxonomy for the service core.

Every error carries a stable `code` and the HTTP `status_code` the API layer
responds with. Only the optimistic-concurrency retry is handled inside the
core; everything else propagates to the caller unchanged.
"""

from __future__ import annotations


class CatalogError(RuntimeError):
    code = "catalog_error"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"detail": self.message, "code": self.code}


class ValidationError(CatalogError):
    """Malformed input. Raised before any store write."""

    code = "validation_error"
    status_code = 400


class NotFoundError(CatalogError):
    code = "not_found"
    status_code = 404


class ConflictError(CatalogError):
    """Duplicate entity, or a concurrent-write conflict that outlived the retry budget."""

    code = "conflict"
    status_code = 409


class PermissionDeniedError(CatalogError, PermissionError):
    code = "permission_denied"
    status_code = 403


class UpstreamTimeoutError(CatalogError, TimeoutError):
    """The document store or metadata API did not answer within the configured timeout."""

    code = "timeout"
    status_code = 504


class StoreError(CatalogError):
    code = "store_error"
    status_code = 502


class DocumentDecodeError(CatalogError):
    code = "decode_error"
    status_code = 500

    def __init__(self, collection: str, doc_id: str | None, reason: str) -> None:
        super().__init__(f"Malformed {collection} document {doc_id or '<unknown>'}: {reason}")
        self.collection = collection
        self.doc_id = doc_id
