from __future__ import annotations

from datetime import datetime

import pytest

from keyledger.core.config import get_settings
from keyledger.db.repo.admin_credentials_repo import AdminCredentialsRepo
from keyledger.ledger.credentials.service import CredentialStore
from keyledger.ledger.errors import UnauthorizedError
from keyledger.services.admin_keys import hash_admin_key
from tests.ledger_fixtures import ADMIN_KEY, UTC, _seed_admin_key


async def _validate(session_factory, admin_key: str | None, *, now_utc: datetime | None = None) -> bool:
    async with session_factory.begin() as session:
        return await CredentialStore.validate(session, admin_key=admin_key, now_utc=now_utc)


async def _revoke(session_factory, admin_key: str | None) -> None:
    async with session_factory.begin() as session:
        await CredentialStore.revoke(session, admin_key=admin_key)


async def _credential(session_factory, admin_key: str):
    key_hash = hash_admin_key(admin_key=admin_key, pepper=get_settings().admin_key_pepper)
    async with session_factory() as session:
        return await AdminCredentialsRepo.get_by_hash(session, key_hash)


@pytest.mark.asyncio
async def test_validate_accepts_active_key_and_touches_last_used_at(session_factory) -> None:
    await _seed_admin_key(session_factory)
    now_utc = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    assert await _validate(session_factory, ADMIN_KEY, now_utc=now_utc) is True

    credential = await _credential(session_factory, ADMIN_KEY)
    assert credential is not None
    assert credential.last_used_at is not None
    assert credential.last_used_at.replace(tzinfo=UTC) == now_utc


@pytest.mark.asyncio
async def test_validate_strips_surrounding_whitespace(session_factory) -> None:
    await _seed_admin_key(session_factory)

    assert await _validate(session_factory, f"  {ADMIN_KEY}\n") is True


@pytest.mark.asyncio
@pytest.mark.parametrize("admin_key", [None, "", "   ", "ADM-UNKNOWN", ADMIN_KEY.lower()])
async def test_validate_returns_false_for_unknown_or_blank_key(session_factory, admin_key) -> None:
    await _seed_admin_key(session_factory)

    assert await _validate(session_factory, admin_key) is False


@pytest.mark.asyncio
async def test_validate_returns_false_for_revoked_key(session_factory) -> None:
    await _seed_admin_key(session_factory, status="revoked")

    assert await _validate(session_factory, ADMIN_KEY) is False


@pytest.mark.asyncio
async def test_revoke_invalidates_previously_valid_key(session_factory) -> None:
    await _seed_admin_key(session_factory)
    assert await _validate(session_factory, ADMIN_KEY) is True

    await _revoke(session_factory, ADMIN_KEY)

    assert await _validate(session_factory, ADMIN_KEY) is False
    credential = await _credential(session_factory, ADMIN_KEY)
    assert credential is not None
    assert credential.status == "revoked"
    assert credential.revoked_at is not None


@pytest.mark.asyncio
async def test_revoke_is_idempotent_and_ignores_unknown_keys(session_factory) -> None:
    await _seed_admin_key(session_factory)

    await _revoke(session_factory, ADMIN_KEY)
    first = await _credential(session_factory, ADMIN_KEY)
    await _revoke(session_factory, ADMIN_KEY)
    await _revoke(session_factory, "ADM-NEVER-ISSUED")
    await _revoke(session_factory, None)
    second = await _credential(session_factory, ADMIN_KEY)

    assert first is not None and second is not None
    assert second.status == "revoked"
    assert second.revoked_at == first.revoked_at


@pytest.mark.asyncio
async def test_require_valid_raises_unauthorized_for_bad_key(session_factory) -> None:
    await _seed_admin_key(session_factory)

    with pytest.raises(UnauthorizedError):
        async with session_factory.begin() as session:
            await CredentialStore.require_valid(session, admin_key="ADM-WRONG")
