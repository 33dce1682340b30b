from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from keyledger.core.config import get_settings
from keyledger.db.models.purchases import Purchase
from keyledger.db.repo.purchases_repo import PurchasesRepo
from keyledger.ledger.codes.service import CodeLedger
from keyledger.ledger.credentials.service import CredentialStore
from keyledger.ledger.errors import (
    EmptyReasonError,
    InvalidAmountError,
    InvalidEmailError,
    InvalidPaymentRefError,
    PurchaseAlreadyValidatedError,
    PurchaseExistsError,
    PurchaseNotFoundError,
)
from keyledger.ledger.types import (
    NOTIFICATION_KIND_APPROVED,
    NOTIFICATION_KIND_REJECTED,
    PurchaseDecision,
)
from keyledger.services.premium_codes import generate_purchase_id, is_valid_email

logger = structlog.get_logger(__name__)

AMOUNT_QUANTUM = Decimal("0.01")
MAX_AMOUNT = Decimal("9999999999.99")


def _normalize_amount(raw_amount: Decimal | int | str) -> Decimal:
    try:
        amount = Decimal(str(raw_amount))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError from exc
    if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
        raise InvalidAmountError
    if amount != amount.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_UP):
        raise InvalidAmountError
    return amount.quantize(AMOUNT_QUANTUM)


class PurchaseWorkflow:
    """pending -> approved | rejected, each transition applied at most once.

    Every method runs inside the caller's transaction. On any raised error the
    caller must roll that transaction back, which is what discards a code
    minted for an approval that lost the race.
    """

    @staticmethod
    async def _load_pending(session: AsyncSession, purchase_id: str) -> Purchase:
        purchase = await PurchasesRepo.get_by_id(session, purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError
        if purchase.status != "pending":
            raise PurchaseAlreadyValidatedError
        return purchase

    @staticmethod
    async def approve(
        session: AsyncSession,
        *,
        purchase_id: str,
        admin_key: str | None,
        now_utc: datetime | None = None,
    ) -> PurchaseDecision:
        now_utc = now_utc or datetime.now(timezone.utc)
        await CredentialStore.require_valid(session, admin_key=admin_key, now_utc=now_utc)
        await PurchaseWorkflow._load_pending(session, purchase_id)

        code = await CodeLedger.mint(session, source="purchase", now_utc=now_utc)
        approved = await PurchasesRepo.mark_approved_if_pending(
            session,
            purchase_id=purchase_id,
            issued_code=code,
            now_utc=now_utc,
        )
        if not approved:
            logger.info("purchase_approve_conflict", purchase_id=purchase_id)
            raise PurchaseAlreadyValidatedError

        logger.info("purchase_approved", purchase_id=purchase_id)
        return PurchaseDecision(
            purchase_id=purchase_id,
            status=NOTIFICATION_KIND_APPROVED,
            validated_at=now_utc,
            issued_code=code,
            notify_text=f"Purchase {purchase_id} has been approved. Send code: {code}",
        )

    @staticmethod
    async def reject(
        session: AsyncSession,
        *,
        purchase_id: str,
        admin_key: str | None,
        reason: str | None,
        now_utc: datetime | None = None,
    ) -> PurchaseDecision:
        now_utc = now_utc or datetime.now(timezone.utc)
        await CredentialStore.require_valid(session, admin_key=admin_key, now_utc=now_utc)

        normalized_reason = (reason or "").strip()
        if not normalized_reason:
            raise EmptyReasonError

        await PurchaseWorkflow._load_pending(session, purchase_id)
        rejected = await PurchasesRepo.mark_rejected_if_pending(
            session,
            purchase_id=purchase_id,
            reason=normalized_reason,
            now_utc=now_utc,
        )
        if not rejected:
            logger.info("purchase_reject_conflict", purchase_id=purchase_id)
            raise PurchaseAlreadyValidatedError

        logger.info("purchase_rejected", purchase_id=purchase_id)
        return PurchaseDecision(
            purchase_id=purchase_id,
            status=NOTIFICATION_KIND_REJECTED,
            validated_at=now_utc,
            rejection_reason=normalized_reason,
            notify_text=f"Purchase {purchase_id} has been rejected. Reason: {normalized_reason}",
        )

    @staticmethod
    async def list_pending(
        session: AsyncSession,
        *,
        admin_key: str | None,
        limit: int | None = None,
        now_utc: datetime | None = None,
    ) -> list[Purchase]:
        await CredentialStore.require_valid(session, admin_key=admin_key, now_utc=now_utc)
        page_size = get_settings().pending_page_size
        if limit is not None:
            page_size = max(1, min(limit, page_size))
        return await PurchasesRepo.list_pending(session, limit=page_size)

    @staticmethod
    async def submit(
        session: AsyncSession,
        *,
        buyer_email: str,
        amount: Decimal | int | str,
        payment_ref: str,
        purchase_id: str | None = None,
        now_utc: datetime | None = None,
    ) -> Purchase:
        now_utc = now_utc or datetime.now(timezone.utc)
        if not is_valid_email(buyer_email):
            raise InvalidEmailError
        normalized_ref = (payment_ref or "").strip()
        if not normalized_ref:
            raise InvalidPaymentRefError
        normalized_amount = _normalize_amount(amount)
        resolved_id = (purchase_id or "").strip() or generate_purchase_id()

        inserted = await PurchasesRepo.insert_pending_if_absent(
            session,
            purchase_id=resolved_id,
            buyer_email=buyer_email.strip().lower(),
            amount=normalized_amount,
            payment_ref=normalized_ref,
            now_utc=now_utc,
        )
        if not inserted:
            raise PurchaseExistsError

        purchase = await PurchasesRepo.get_by_id(session, resolved_id)
        if purchase is None:
            raise PurchaseExistsError
        logger.info("purchase_submitted", purchase_id=resolved_id)
        return purchase
