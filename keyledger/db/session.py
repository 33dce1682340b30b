from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from keyledger.core.config import get_settings


def normalize_async_url(url: str) -> str:
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def build_engine(
    database_url: str,
    *,
    statement_timeout_seconds: float = 5.0,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_timeout_seconds: float = 10.0,
) -> AsyncEngine:
    db_url = normalize_async_url(database_url)
    kw: dict[str, Any] = {"pool_pre_ping": True}

    if db_url.startswith("postgresql+asyncpg://"):
        kw.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout_seconds,
            connect_args={
                "timeout": statement_timeout_seconds,
                "command_timeout": statement_timeout_seconds,
            },
        )
    elif db_url.startswith("sqlite+aiosqlite://"):
        kw["connect_args"] = {"timeout": statement_timeout_seconds}

    engine = create_async_engine(db_url, **kw)

    if db_url.startswith("sqlite+aiosqlite://"):
        busy_timeout_ms = int(statement_timeout_seconds * 1000)

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_connection, _):
            cur = dbapi_connection.cursor()
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute(f"PRAGMA busy_timeout={busy_timeout_ms};")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.close()

    return engine


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


_settings = get_settings()
engine = build_engine(
    _settings.database_url,
    statement_timeout_seconds=_settings.db_statement_timeout_seconds,
    pool_size=_settings.db_pool_size,
    max_overflow=_settings.db_max_overflow,
    pool_timeout_seconds=_settings.db_pool_timeout_seconds,
)
SessionLocal = build_sessionmaker(engine)
