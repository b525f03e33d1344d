"""Custom backend exceptions."""

from __future__ import annotations


class BackendError(RuntimeError):
    """Base class for persistence layer errors."""


class NotFoundError(BackendError):
    """Raised when no stored document matches a query."""


class DuplicateKeyError(BackendError):
    """Raised when storing a document whose key is already taken."""
