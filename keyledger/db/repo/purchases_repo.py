from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.db.models.purchases import Purchase
from keyledger.db.repo.dialect import affected_rows, upsert_insert


class PurchasesRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, purchase_id: str) -> Purchase | None:
        stmt = select(Purchase).where(Purchase.purchase_id == purchase_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def insert_pending_if_absent(
        session: AsyncSession,
        *,
        purchase_id: str,
        buyer_email: str,
        amount: Decimal,
        payment_ref: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            upsert_insert(session, Purchase)
            .values(
                purchase_id=purchase_id,
                buyer_email=buyer_email,
                amount=amount,
                payment_ref=payment_ref,
                status="pending",
                issued_code=None,
                rejection_reason=None,
                created_at=now_utc,
                validated_at=None,
            )
            .on_conflict_do_nothing(index_elements=[Purchase.purchase_id])
        )
        result = await session.execute(stmt)
        return affected_rows(result) > 0

    @staticmethod
    async def mark_approved_if_pending(
        session: AsyncSession,
        *,
        purchase_id: str,
        issued_code: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Purchase)
            .where(
                Purchase.purchase_id == purchase_id,
                Purchase.status == "pending",
            )
            .values(status="approved", issued_code=issued_code, validated_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return affected_rows(result) > 0

    @staticmethod
    async def mark_rejected_if_pending(
        session: AsyncSession,
        *,
        purchase_id: str,
        reason: str,
        now_utc: datetime,
    ) -> bool:
        stmt = (
            update(Purchase)
            .where(
                Purchase.purchase_id == purchase_id,
                Purchase.status == "pending",
            )
            .values(status="rejected", rejection_reason=reason, validated_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return affected_rows(result) > 0

    @staticmethod
    async def list_pending(session: AsyncSession, *, limit: int = 100) -> list[Purchase]:
        stmt = (
            select(Purchase)
            .where(Purchase.status == "pending")
            .order_by(Purchase.created_at.desc(), Purchase.purchase_id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
