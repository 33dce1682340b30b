from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from keyledger.db import models  # noqa: F401
from keyledger.db.models.base import Base
from keyledger.db.session import build_engine, build_sessionmaker


@pytest.fixture
async def ledger_engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    # File-backed so that separate sessions really contend for the write lock.
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        statement_timeout_seconds=10.0,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(ledger_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(ledger_engine)
