from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.db.models.admin_credentials import AdminCredential
from keyledger.db.repo.dialect import affected_rows


class AdminCredentialsRepo:
    @staticmethod
    async def get_by_hash(session: AsyncSession, key_hash: str) -> AdminCredential | None:
        return await session.get(AdminCredential, key_hash)

    @staticmethod
    async def create(session: AsyncSession, *, credential: AdminCredential) -> AdminCredential:
        session.add(credential)
        await session.flush()
        return credential

    @staticmethod
    async def touch_if_active(session: AsyncSession, *, key_hash: str, now_utc: datetime) -> bool:
        stmt = (
            update(AdminCredential)
            .where(
                AdminCredential.key_hash == key_hash,
                AdminCredential.status == "active",
            )
            .values(last_used_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return affected_rows(result) > 0

    @staticmethod
    async def revoke_if_active(session: AsyncSession, *, key_hash: str, now_utc: datetime) -> bool:
        stmt = (
            update(AdminCredential)
            .where(
                AdminCredential.key_hash == key_hash,
                AdminCredential.status == "active",
            )
            .values(status="revoked", revoked_at=now_utc)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return affected_rows(result) > 0

    @staticmethod
    async def list_all(session: AsyncSession, *, limit: int = 200) -> list[AdminCredential]:
        stmt = select(AdminCredential).order_by(AdminCredential.created_at.desc()).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())
