"""Versioned schema migrations for the document store."""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from .models import Base

logger = logging.getLogger(__name__)

VERSION_TABLE = "modelbase_schema_migrations"


async def _create_documents(conn: AsyncConnection) -> None:
    await conn.run_sync(Base.metadata.create_all)


_STEPS = ((1, _create_documents),)


async def apply_migrations(engine: AsyncEngine) -> None:
    """Run every step newer than the recorded version, in order."""

    async with engine.begin() as conn:
        await conn.execute(
            text(f"CREATE TABLE IF NOT EXISTS {VERSION_TABLE} (version INTEGER PRIMARY KEY)")
        )
        result = await conn.execute(text(f"SELECT MAX(version) FROM {VERSION_TABLE}"))
        current = result.scalar() or 0
        for version, step in _STEPS:
            if version <= current:
                continue
            await step(conn)
            await conn.execute(
                text(f"INSERT INTO {VERSION_TABLE} (version) VALUES (:version)"),
                {"version": version},
            )
            logger.info("Applied document store migration %d", version)


__all__ = ["VERSION_TABLE", "apply_migrations"]
