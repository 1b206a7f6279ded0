# Overview: Typed failure taxonomy shared by every service and the HTTP layer.

"""
Ledger error taxonomy.

Every failure raised by the engine is a LedgerError subclass tagged with an
ErrorKind. Callers either catch the concrete class or match on ``exc.kind``;
the HTTP layer maps ``exc.status_code`` straight onto the response.

RETRY SEMANTICS:
- VALIDATION, NOT_FOUND, CONFLICT, FORBIDDEN: never retried automatically;
  the caller must change the request (or the world) first.
- STORAGE_FAILURE: safe to retry a read. A failed write may have partially
  applied, so a write is only retried after re-reading current state.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    FORBIDDEN = "FORBIDDEN"
    STORAGE_FAILURE = "STORAGE_FAILURE"


class LedgerError(Exception):
    """Base class for all classified engine failures."""

    kind: ErrorKind = ErrorKind.STORAGE_FAILURE
    status_code: int = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.STORAGE_FAILURE

    def to_dict(self) -> dict:
        payload = {"kind": self.kind.value, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError):
    """400-level input problem."""
    kind = ErrorKind.VALIDATION
    status_code = 400


class NotFoundError(LedgerError):
    """Missing tenant, product, invoice or customer."""
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(LedgerError):
    """409-level business rule conflict (duplicate SKU, insufficient stock, ...)."""
    kind = ErrorKind.CONFLICT
    status_code = 409


class ForbiddenError(LedgerError):
    """Tenant exists but may not operate (suspended)."""
    kind = ErrorKind.FORBIDDEN
    status_code = 403


class StorageFailure(LedgerError):
    """Underlying store error, corrupt payload, or lock/storage timeout."""
    kind = ErrorKind.STORAGE_FAILURE
    status_code = 500
