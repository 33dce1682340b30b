from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.db.models.users import User
from keyledger.db.repo.dialect import upsert_insert


class UsersRepo:
    @staticmethod
    async def get(session: AsyncSession, username: str) -> User | None:
        stmt = select(User).where(User.username == username)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def grant_premium(
        session: AsyncSession,
        *,
        username: str,
        redeemed_code: str,
        now_utc: datetime,
    ) -> None:
        insert_stmt = upsert_insert(session, User).values(
            username=username,
            premium_since=now_utc,
            redeemed_code=redeemed_code,
            created_at=now_utc,
            updated_at=now_utc,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=[User.username],
            set_={
                "premium_since": func.coalesce(User.premium_since, insert_stmt.excluded.premium_since),
                "redeemed_code": insert_stmt.excluded.redeemed_code,
                "updated_at": insert_stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)
