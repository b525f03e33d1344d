"""In-memory backend, the default for new model types."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from .errors import DuplicateKeyError, NotFoundError
from .interfaces import Backend, Document, Query, lookup, matches


def _copy(value: Document) -> Document:
    return deepcopy(value)


@dataclass(eq=False)
class MemoryBackend(Backend):
    """Ordered list of documents held in process memory.

    Documents are copied on the way in and on the way out so callers never
    share state with the store.
    """

    key_field: str | None = "_id"
    _documents: list[Document] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def documents(self) -> Sequence[Document]:
        """Copies of the stored documents, in insertion order."""

        return tuple(_copy(document) for document in self._documents)

    def reset(self) -> None:
        """Drop every stored document."""

        self._documents.clear()

    def _find(self, query: Query | None) -> list[Document]:
        return [document for document in self._documents if matches(document, query)]

    async def store(self, document: Document) -> None:
        async with self._lock:
            if self.key_field is not None:
                key = lookup(document, self.key_field)
                if self._find({self.key_field: key}):
                    msg = f"Document with {self.key_field}={key!r} already stored"
                    raise DuplicateKeyError(msg)
            self._documents.append(_copy(document))

    async def fetch_one(self, query: Query) -> Document:
        found = self._find(query)
        if not found:
            msg = f"No document matches {dict(query)!r}"
            raise NotFoundError(msg)
        return _copy(found[0])

    async def fetch_all(self, query: Query | None = None) -> Sequence[Document]:
        return [_copy(document) for document in self._find(query)]

    async def update(self, query: Query, changes: Mapping[str, Any]) -> Document:
        async with self._lock:
            found = self._find(query)
            if not found:
                msg = f"No document matches {dict(query)!r}"
                raise NotFoundError(msg)
            for document in found:
                document.update(deepcopy(dict(changes)))
            return _copy(found[0])

    async def delete(self, query: Query) -> int:
        async with self._lock:
            remaining = [document for document in self._documents if not matches(document, query)]
            removed = len(self._documents) - len(remaining)
            if not removed:
                msg = f"No document matches {dict(query)!r}"
                raise NotFoundError(msg)
            self._documents[:] = remaining
            return removed


__all__ = ["MemoryBackend"]
