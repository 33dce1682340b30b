from __future__ import annotations

from typing import Any

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession


def upsert_insert(session: AsyncSession, model: Any) -> Any:
    """Returns the dialect-specific INSERT that supports ON CONFLICT clauses."""
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        return pg_insert(model)
    if dialect_name == "sqlite":
        return sqlite_insert(model)
    raise RuntimeError(f"unsupported database dialect: {dialect_name}")


def affected_rows(result: object) -> int:
    return int(getattr(result, "rowcount", 0) or 0)
