"""Backend abstraction consumed by model types."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

Document = dict[str, Any]
Query = Mapping[str, Any]


class Backend(Protocol):
    """Document store keyed by query-shaped filters.

    A query maps field names (dotted paths reach into nested documents) to
    expected values; a document matches when every entry is equal.
    """

    async def store(self, document: Document) -> None: ...

    async def fetch_one(self, query: Query) -> Document: ...

    async def fetch_all(self, query: Query | None = None) -> Sequence[Document]: ...

    async def update(self, query: Query, changes: Mapping[str, Any]) -> Document: ...

    async def delete(self, query: Query) -> int: ...


_MISSING = object()


def lookup(document: Mapping[str, Any], path: str) -> Any:
    """Resolve a dotted ``path`` in ``document``; return a sentinel when absent."""

    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def matches(document: Mapping[str, Any], query: Query | None) -> bool:
    if not query:
        return True
    for path, expected in query.items():
        value = lookup(document, path)
        if value is _MISSING or value != expected:
            return False
    return True


__all__ = ["Backend", "Document", "Query", "lookup", "matches"]
