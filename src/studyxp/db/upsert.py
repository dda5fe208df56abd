"""Dialect-aware INSERT ... ON CONFLICT construction.

PostgreSQL in production, SQLite in the test suite; both dialects expose the
same `on_conflict_do_update` / `on_conflict_do_nothing` / `excluded` API.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def insert_for(db: AsyncSession, model: Any) -> Any:
    """Return an upsert-capable INSERT for the session's bound dialect."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)
