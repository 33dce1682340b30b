from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.db.models.redeemable_codes import RedeemableCode
from keyledger.db.repo.dialect import affected_rows, upsert_insert


class CodesRepo:
    @staticmethod
    async def get(session: AsyncSession, code: str) -> RedeemableCode | None:
        stmt = select(RedeemableCode).where(RedeemableCode.code == code)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def insert_if_absent(
        session: AsyncSession,
        *,
        code: str,
        source: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            upsert_insert(session, RedeemableCode)
            .values(
                code=code,
                status="active",
                source=source,
                created_at=now_utc,
                redeemed_by=None,
                redeemed_at=None,
            )
            .on_conflict_do_nothing(index_elements=[RedeemableCode.code])
        )
        result = await session.execute(stmt)
        return affected_rows(result) > 0

    @staticmethod
    async def mark_redeemed_if_active(
        session: AsyncSession,
        *,
        code: str,
        redeemed_by: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(RedeemableCode)
            .where(
                RedeemableCode.code == code,
                RedeemableCode.status == "active",
            )
            .values(status="redeemed", redeemed_by=redeemed_by, redeemed_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return affected_rows(result) > 0
