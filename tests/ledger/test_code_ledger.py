from __future__ import annotations

import re

import pytest

from keyledger.db.repo.users_repo import UsersRepo
from keyledger.ledger.codes import service as codes_service
from keyledger.ledger.codes.service import MINT_MAX_ATTEMPTS, CodeLedger
from keyledger.ledger.errors import (
    CodeAlreadyRedeemedError,
    CodeMintError,
    CodeNotFoundError,
    InvalidRedeemerError,
)
from tests.ledger_fixtures import _count_codes, _get_code, _seed_code

CODE_RE = re.compile(r"^PRM-[0-9A-F]{32}$")


async def _mint(session_factory, *, source: str = "admin") -> str:
    async with session_factory.begin() as session:
        return await CodeLedger.mint(session, source=source)


async def _redeem(session_factory, code: str, redeemer_id: str, *, mint_replacement: bool = False):
    async with session_factory.begin() as session:
        return await CodeLedger.redeem(
            session,
            code=code,
            redeemer_id=redeemer_id,
            mint_replacement=mint_replacement,
        )


@pytest.mark.asyncio
async def test_mint_stores_active_prefixed_code(session_factory) -> None:
    code = await _mint(session_factory)

    assert CODE_RE.fullmatch(code)
    stored = await _get_code(session_factory, code)
    assert stored is not None
    assert stored.status == "active"
    assert stored.source == "admin"
    assert stored.redeemed_by is None
    assert stored.redeemed_at is None


@pytest.mark.asyncio
async def test_mint_twice_returns_distinct_codes(session_factory) -> None:
    first = await _mint(session_factory)
    second = await _mint(session_factory)

    assert first != second
    assert await _count_codes(session_factory) == 2


@pytest.mark.asyncio
async def test_mint_persists_1000_distinct_codes(session_factory) -> None:
    async with session_factory.begin() as session:
        codes = [await CodeLedger.mint(session, source="admin") for _ in range(1_000)]

    assert len(set(codes)) == 1_000
    assert all(CODE_RE.fullmatch(code) for code in codes)
    assert await _count_codes(session_factory, source="admin") == 1_000


@pytest.mark.asyncio
async def test_mint_rejects_unknown_source(session_factory) -> None:
    with pytest.raises(ValueError):
        await _mint(session_factory, source="gift")


@pytest.mark.asyncio
async def test_mint_retries_on_collision(session_factory, monkeypatch) -> None:
    await _seed_code(session_factory, code="PRM-TAKEN")
    candidates = iter(["PRM-TAKEN", "PRM-TAKEN", "PRM-FRESH"])
    monkeypatch.setattr(codes_service, "generate_premium_code", lambda *, prefix: next(candidates))

    code = await _mint(session_factory)

    assert code == "PRM-FRESH"
    assert await _count_codes(session_factory) == 2


@pytest.mark.asyncio
async def test_mint_gives_up_after_bounded_collisions(session_factory, monkeypatch) -> None:
    await _seed_code(session_factory, code="PRM-TAKEN")
    attempts: list[int] = []

    def _always_taken(*, prefix: str) -> str:
        attempts.append(1)
        return "PRM-TAKEN"

    monkeypatch.setattr(codes_service, "generate_premium_code", _always_taken)

    with pytest.raises(CodeMintError):
        await _mint(session_factory)
    assert len(attempts) == MINT_MAX_ATTEMPTS


@pytest.mark.asyncio
async def test_redeem_flips_code_and_grants_premium(session_factory) -> None:
    code = await _mint(session_factory)

    result = await _redeem(session_factory, code, "player_one")

    assert result.code == code
    assert result.redeemed_by == "player_one"
    assert result.replacement_code is None
    stored = await _get_code(session_factory, code)
    assert stored is not None
    assert stored.status == "redeemed"
    assert stored.redeemed_by == "player_one"
    assert stored.redeemed_at is not None

    async with session_factory() as session:
        user = await UsersRepo.get(session, "player_one")
    assert user is not None
    assert user.premium_since is not None
    assert user.redeemed_code == code


@pytest.mark.asyncio
async def test_redeem_normalizes_code_input(session_factory) -> None:
    code = await _mint(session_factory)

    result = await _redeem(session_factory, f"  {code.lower()} ", "player_one")

    assert result.code == code


@pytest.mark.asyncio
async def test_redeem_twice_fails_already_redeemed(session_factory) -> None:
    code = await _mint(session_factory)
    await _redeem(session_factory, code, "player_one")

    with pytest.raises(CodeAlreadyRedeemedError):
        await _redeem(session_factory, code, "player_two")

    stored = await _get_code(session_factory, code)
    assert stored is not None
    assert stored.redeemed_by == "player_one"


@pytest.mark.asyncio
@pytest.mark.parametrize("code", ["PRM-DOES-NOT-EXIST", "", "   "])
async def test_redeem_unknown_code_fails_not_found(session_factory, code) -> None:
    with pytest.raises(CodeNotFoundError):
        await _redeem(session_factory, code, "player_one")


@pytest.mark.asyncio
async def test_redeem_requires_redeemer(session_factory) -> None:
    code = await _mint(session_factory)

    with pytest.raises(InvalidRedeemerError):
        await _redeem(session_factory, code, "  ")

    stored = await _get_code(session_factory, code)
    assert stored is not None
    assert stored.status == "active"


@pytest.mark.asyncio
async def test_redeem_mints_replacement_only_when_asked(session_factory) -> None:
    first = await _mint(session_factory)
    second = await _mint(session_factory)

    plain = await _redeem(session_factory, first, "player_one")
    assert plain.replacement_code is None
    assert await _count_codes(session_factory, source="replacement") == 0

    recycled = await _redeem(session_factory, second, "player_two", mint_replacement=True)
    assert recycled.replacement_code is not None
    assert CODE_RE.fullmatch(recycled.replacement_code)
    assert await _count_codes(session_factory, source="replacement") == 1

    replacement = await _get_code(session_factory, recycled.replacement_code)
    assert replacement is not None
    assert replacement.status == "active"


@pytest.mark.asyncio
async def test_second_redeem_by_same_user_keeps_original_premium_since(session_factory) -> None:
    first = await _mint(session_factory)
    second = await _mint(session_factory)

    await _redeem(session_factory, first, "player_one")
    async with session_factory() as session:
        before = await UsersRepo.get(session, "player_one")
    await _redeem(session_factory, second, "player_one")
    async with session_factory() as session:
        after = await UsersRepo.get(session, "player_one")

    assert before is not None and after is not None
    assert after.premium_since == before.premium_since
    assert after.redeemed_code == second
