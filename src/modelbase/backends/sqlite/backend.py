"""SQLite document backend built on the SQLAlchemy async engine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from modelbase.backends.errors import BackendError, DuplicateKeyError, NotFoundError
from modelbase.backends.interfaces import Backend, Document, Query, lookup, matches
from modelbase.utils import ensure_utc

from .migrations import apply_migrations
from .models import DocumentRecord

logger = logging.getLogger(__name__)

_migration_lock = asyncio.Lock()
_migrated_urls: set[str] = set()


async def _ensure_migrated(engine: AsyncEngine, database_url: str) -> None:
    async with _migration_lock:
        if database_url in _migrated_urls:
            return
        await apply_migrations(engine)
        _migrated_urls.add(database_url)


class SQLiteBackend(Backend):
    """Stores one collection of documents in a shared ``documents`` table.

    Payloads are kept as JSON. The timestamp fields get their own
    timezone-aware columns so they come back as datetimes rather than strings.
    """

    def __init__(
        self,
        database_url: str,
        collection: str,
        *,
        key_field: str | None = "_id",
        timestamp_fields: tuple[str, str] = ("created", "modified"),
    ) -> None:
        self.database_url = database_url
        self.collection = collection
        self.key_field = key_field
        self.timestamp_fields = timestamp_fields
        # Connections are opened per session so the backend survives being
        # driven from several event loops.
        self._engine = create_async_engine(database_url, future=True, poolclass=NullPool)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            await _ensure_migrated(self._engine, self.database_url)
            async with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as exc:
            logger.warning("SQLite backend failure on %s: %s", self.collection, exc)
            raise BackendError(str(exc)) from exc

    def _key_of(self, document: Mapping[str, Any]) -> str | None:
        if self.key_field is None:
            return None
        key = lookup(document, self.key_field)
        if key is None or not isinstance(key, str | int):
            return None
        return str(key)

    def _timestamp(self, document: Mapping[str, Any], name: str) -> datetime | None:
        value = document.get(name)
        return ensure_utc(value) if isinstance(value, datetime) else None

    def _apply(self, record: DocumentRecord, document: Mapping[str, Any]) -> None:
        created_field, modified_field = self.timestamp_fields
        record.key = self._key_of(document)
        record.created = self._timestamp(document, created_field)
        record.modified = self._timestamp(document, modified_field)
        record.payload = to_jsonable_python(dict(document))

    def _decode(self, record: DocumentRecord) -> Document:
        document = dict(record.payload)
        for name, value in zip(self.timestamp_fields, (record.created, record.modified)):
            if value is not None:
                document[name] = ensure_utc(value)
        return document

    async def _matching(self, session: AsyncSession, query: Query | None) -> list[DocumentRecord]:
        stmt = (
            select(DocumentRecord)
            .where(DocumentRecord.collection == self.collection)
            .order_by(DocumentRecord.id)
        )
        result = await session.execute(stmt)
        return [record for record in result.scalars().all() if matches(self._decode(record), query)]

    async def store(self, document: Document) -> None:
        key = self._key_of(document)
        async with self._session() as session:
            if key is not None:
                existing = await session.execute(
                    select(DocumentRecord.id).where(
                        DocumentRecord.collection == self.collection,
                        DocumentRecord.key == key,
                    )
                )
                if existing.first() is not None:
                    msg = f"Document with {self.key_field}={key!r} already stored"
                    raise DuplicateKeyError(msg)
            record = DocumentRecord(collection=self.collection)
            self._apply(record, document)
            session.add(record)

    async def fetch_one(self, query: Query) -> Document:
        async with self._session() as session:
            found = await self._matching(session, query)
        if not found:
            msg = f"No document matches {dict(query)!r}"
            raise NotFoundError(msg)
        return self._decode(found[0])

    async def fetch_all(self, query: Query | None = None) -> Sequence[Document]:
        async with self._session() as session:
            found = await self._matching(session, query)
        return [self._decode(record) for record in found]

    async def update(self, query: Query, changes: Mapping[str, Any]) -> Document:
        async with self._session() as session:
            found = await self._matching(session, query)
            if not found:
                msg = f"No document matches {dict(query)!r}"
                raise NotFoundError(msg)
            for record in found:
                document = self._decode(record)
                document.update(changes)
                self._apply(record, document)
            return self._decode(found[0])

    async def delete(self, query: Query) -> int:
        async with self._session() as session:
            found = await self._matching(session, query)
            if not found:
                msg = f"No document matches {dict(query)!r}"
                raise NotFoundError(msg)
            await session.execute(
                delete(DocumentRecord).where(DocumentRecord.id.in_([r.id for r in found]))
            )
            return len(found)

    async def drop_all(self) -> None:
        """Remove every document of this collection."""

        async with self._session() as session:
            await session.execute(
                delete(DocumentRecord).where(DocumentRecord.collection == self.collection)
            )

    async def dispose(self) -> None:
        await self._engine.dispose()


__all__ = ["SQLiteBackend"]
