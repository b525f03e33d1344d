"""Storage backends for model types."""

from __future__ import annotations

from .errors import BackendError, DuplicateKeyError, NotFoundError
from .interfaces import Backend, Document, Query, matches
from .memory import MemoryBackend

MEMORY_URL = "memory://"


def create_backend(url: str, *, collection: str, key_field: str | None = "_id") -> Backend:
    """Build a backend from a URL.

    ``memory://`` gives a :class:`MemoryBackend`; ``sqlite+aiosqlite:///path``
    gives a :class:`SQLiteBackend` storing ``collection`` in that database.
    """

    if url == MEMORY_URL:
        return MemoryBackend(key_field=key_field)
    if url.startswith("sqlite"):
        from .sqlite import SQLiteBackend

        return SQLiteBackend(url, collection, key_field=key_field)
    msg = f"Unsupported backend URL {url!r}"
    raise BackendError(msg)


__all__ = [
    "MEMORY_URL",
    "Backend",
    "BackendError",
    "Document",
    "DuplicateKeyError",
    "MemoryBackend",
    "NotFoundError",
    "Query",
    "create_backend",
    "matches",
]
