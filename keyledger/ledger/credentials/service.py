from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.core.config import get_settings
from keyledger.db.repo.admin_credentials_repo import AdminCredentialsRepo
from keyledger.ledger.errors import UnauthorizedError
from keyledger.services.admin_keys import hash_admin_key, normalize_admin_key

logger = structlog.get_logger(__name__)


def _hash_key(raw_key: str | None) -> str | None:
    admin_key = normalize_admin_key(raw_key)
    if not admin_key:
        return None
    return hash_admin_key(admin_key=admin_key, pepper=get_settings().admin_key_pepper)


class CredentialStore:
    """Admin keys are looked up by HMAC digest; the raw key is never stored."""

    @staticmethod
    async def validate(
        session: AsyncSession,
        *,
        admin_key: str | None,
        now_utc: datetime | None = None,
    ) -> bool:
        key_hash = _hash_key(admin_key)
        if key_hash is None:
            return False

        now_utc = now_utc or datetime.now(timezone.utc)
        # The conditional touch is both the existence/status check and the lastUsedAt update.
        return await AdminCredentialsRepo.touch_if_active(session, key_hash=key_hash, now_utc=now_utc)

    @staticmethod
    async def require_valid(
        session: AsyncSession,
        *,
        admin_key: str | None,
        now_utc: datetime | None = None,
    ) -> None:
        if await CredentialStore.validate(session, admin_key=admin_key, now_utc=now_utc):
            return

        key_hash = _hash_key(admin_key)
        logger.warning(
            "admin_auth_failed",
            key_hash_prefix=(key_hash[:8] if key_hash is not None else None),
        )
        raise UnauthorizedError

    @staticmethod
    async def revoke(
        session: AsyncSession,
        *,
        admin_key: str | None,
        now_utc: datetime | None = None,
    ) -> None:
        key_hash = _hash_key(admin_key)
        if key_hash is None:
            return

        now_utc = now_utc or datetime.now(timezone.utc)
        revoked = await AdminCredentialsRepo.revoke_if_active(session, key_hash=key_hash, now_utc=now_utc)
        if revoked:
            logger.info("admin_credential_revoked", key_hash_prefix=key_hash[:8])
