# billbook/errors.py
"""
Error taxonomy shared by repositories and services.

DomainError subclasses are raised before any state is mutated (validation,
conflicts, protection rules) or after a unit of work has been rolled back
(ConsistencyError). Controllers can surface `str(err)` directly.

DeliveryError is not a DomainError: rendering, upload and send
failures never undo a saved transaction and are reported as warnings.
"""
from __future__ import annotations


class DomainError(Exception):
    """Domain-level error the caller can surface directly (toast/snackbar)."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])


class ValidationError(DomainError):
    pass


class ConflictError(DomainError):
    pass


class NotFoundError(DomainError):
    pass


class ProtectedRecordError(DomainError):
    pass


class ConsistencyError(DomainError):
    """Ledger/stock application failed; the unit of work was rolled back."""
    pass


class DeliveryError(Exception):
    """Rendering or delivering a document failed."""
    pass


__all__ = [
    "DomainError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "ProtectedRecordError",
    "ConsistencyError",
    "DeliveryError",
]
