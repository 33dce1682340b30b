from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.db.models.prompt_history import PromptHistoryEntry


class PromptHistoryRepo:
    @staticmethod
    async def create(session: AsyncSession, *, entry: PromptHistoryEntry) -> PromptHistoryEntry:
        session.add(entry)
        await session.flush()
        return entry

    @staticmethod
    async def list_for_user(
        session: AsyncSession,
        *,
        username: str,
        limit: int = 50,
    ) -> list[PromptHistoryEntry]:
        stmt = (
            select(PromptHistoryEntry)
            .where(PromptHistoryEntry.username == username)
            .order_by(PromptHistoryEntry.created_at.desc(), PromptHistoryEntry.id.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
