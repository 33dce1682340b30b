from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from keyledger.core.config import get_settings
from keyledger.db.models.admin_credentials import AdminCredential
from keyledger.db.models.purchases import Purchase
from keyledger.db.models.redeemable_codes import RedeemableCode
from keyledger.db.session import SessionLocal
from keyledger.ledger.codes.service import CodeLedger
from keyledger.ledger.errors import CodeAlreadyRedeemedError, PurchaseAlreadyValidatedError
from keyledger.ledger.purchases.service import PurchaseWorkflow
from keyledger.services.admin_keys import admin_key_display_prefix, hash_admin_key

UTC = timezone.utc
ADMIN_KEY = "ADM-INTEGRATION-0001"


async def _seed_admin_key() -> None:
    now_utc = datetime.now(UTC)
    async with SessionLocal.begin() as session:
        session.add(
            AdminCredential(
                key_hash=hash_admin_key(admin_key=ADMIN_KEY, pepper=get_settings().admin_key_pepper),
                key_prefix=admin_key_display_prefix(ADMIN_KEY),
                label="integration",
                status="active",
                created_at=now_utc,
                last_used_at=None,
                revoked_at=None,
            )
        )


async def _seed_purchase(purchase_id: str) -> None:
    async with SessionLocal.begin() as session:
        session.add(
            Purchase(
                purchase_id=purchase_id,
                buyer_email="buyer@example.com",
                amount=Decimal("9.99"),
                payment_ref=f"ref-{purchase_id}",
                status="pending",
                issued_code=None,
                rejection_reason=None,
                created_at=datetime.now(UTC),
                validated_at=None,
            )
        )


@pytest.mark.asyncio
async def test_parallel_redeem_collision_allows_only_one_redemption() -> None:
    async with SessionLocal.begin() as session:
        code = await CodeLedger.mint(session, source="admin")
    barrier = asyncio.Event()

    async def _attempt(redeemer_id: str) -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await CodeLedger.redeem(
                    session,
                    code=code,
                    redeemer_id=redeemer_id,
                    mint_replacement=False,
                )
            return "redeemed"
        except CodeAlreadyRedeemedError:
            return "already_redeemed"

    tasks = [asyncio.create_task(_attempt(f"player_{index}")) for index in range(4)]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["already_redeemed"] * 3 + ["redeemed"]


@pytest.mark.asyncio
async def test_parallel_approve_collision_issues_single_code() -> None:
    await _seed_admin_key()
    await _seed_purchase("PUR-INTEGRATION")
    barrier = asyncio.Event()

    async def _attempt() -> str:
        await barrier.wait()
        try:
            async with SessionLocal.begin() as session:
                await PurchaseWorkflow.approve(session, purchase_id="PUR-INTEGRATION", admin_key=ADMIN_KEY)
            return "approved"
        except PurchaseAlreadyValidatedError:
            return "already_validated"

    tasks = [asyncio.create_task(_attempt()) for _ in range(4)]
    barrier.set()
    outcomes = await asyncio.gather(*tasks)

    assert sorted(outcomes) == ["already_validated"] * 3 + ["approved"]
    async with SessionLocal.begin() as session:
        assert (await session.scalar(select(func.count(RedeemableCode.code)))) == 1
        purchase = await session.get(Purchase, "PUR-INTEGRATION")
        assert purchase is not None
        assert purchase.status == "approved"
        assert purchase.issued_code is not None
