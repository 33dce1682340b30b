from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from keyledger.api.routes import ledger_handlers
from keyledger.db import models  # noqa: F401
from keyledger.db.models.base import Base
from keyledger.db.session import build_sessionmaker
from keyledger.ledger.types import NotificationEvent


@pytest.fixture
def api_session_factory(tmp_path, monkeypatch):
    # TestClient serves each request on its own event loop, so connections must not be pooled.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}", poolclass=NullPool)

    async def _create_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_schema())
    session_factory = build_sessionmaker(engine)
    monkeypatch.setattr(ledger_handlers, "SessionLocal", session_factory)
    return session_factory


@pytest.fixture
def sent_notifications(monkeypatch) -> list[NotificationEvent]:
    sent: list[NotificationEvent] = []

    async def _fake_notify(event: NotificationEvent) -> bool:
        sent.append(event)
        return True

    monkeypatch.setattr(ledger_handlers, "notify", _fake_notify)
    return sent
