from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from fastapi import BackgroundTasks, HTTPException, Request

from keyledger.core.config import get_settings
from keyledger.db.models.prompt_history import PromptHistoryEntry
from keyledger.db.models.purchases import Purchase
from keyledger.db.repo.prompt_history_repo import PromptHistoryRepo
from keyledger.db.session import SessionLocal
from keyledger.ledger.codes.service import CodeLedger
from keyledger.ledger.credentials.service import CredentialStore
from keyledger.ledger.errors import (
    CodeAlreadyRedeemedError,
    CodeNotFoundError,
    ConflictError,
    EmptyReasonError,
    InvalidAmountError,
    InvalidEmailError,
    InvalidPaymentRefError,
    InvalidRedeemerError,
    LedgerError,
    LedgerValidationError,
    NotFoundError,
    PurchaseAlreadyValidatedError,
    PurchaseExistsError,
    PurchaseNotFoundError,
    TransientStoreError,
    UnauthorizedError,
)
from keyledger.ledger.purchases.service import PurchaseWorkflow
from keyledger.ledger.store_errors import translate_store_errors
from keyledger.services.admin_access import extract_client_ip, is_admin_network_allowed
from keyledger.services.notifications import notify
from keyledger.services.prompt_refiner import refine_prompt

from .ledger_models import (
    ApprovePurchaseResponse,
    MintCodeResponse,
    PendingPurchasesResponse,
    PromptHistoryItem,
    PromptHistoryResponse,
    PurchaseResponse,
    RefinePromptResponse,
    RejectPurchaseResponse,
    SuccessResponse,
    ValidateAdminResponse,
)

logger = structlog.get_logger(__name__)

# Most specific first; the first isinstance match wins.
LEDGER_ERROR_RESPONSES: tuple[tuple[type[LedgerError], int, str], ...] = (
    (UnauthorizedError, 403, "E_UNAUTHORIZED"),
    (PurchaseNotFoundError, 404, "E_PURCHASE_NOT_FOUND"),
    (CodeNotFoundError, 404, "E_CODE_NOT_FOUND"),
    (NotFoundError, 404, "E_NOT_FOUND"),
    (PurchaseAlreadyValidatedError, 409, "E_ALREADY_VALIDATED"),
    (CodeAlreadyRedeemedError, 409, "E_ALREADY_REDEEMED"),
    (PurchaseExistsError, 409, "E_PURCHASE_EXISTS"),
    (ConflictError, 409, "E_CONFLICT"),
    (EmptyReasonError, 422, "E_EMPTY_REASON"),
    (InvalidAmountError, 422, "E_INVALID_AMOUNT"),
    (InvalidEmailError, 422, "E_INVALID_EMAIL"),
    (InvalidPaymentRefError, 422, "E_INVALID_PAYMENT_REF"),
    (InvalidRedeemerError, 422, "E_INVALID_REDEEMER"),
    (LedgerValidationError, 422, "E_INVALID_REQUEST"),
    (TransientStoreError, 503, "E_TEMPORARILY_UNAVAILABLE"),
)


def ledger_http_error(exc: LedgerError) -> HTTPException:
    for error_type, status_code, code in LEDGER_ERROR_RESPONSES:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail={"code": code})
    return HTTPException(status_code=500, detail={"code": "E_INTERNAL"})


def assert_admin_network(request: Request) -> None:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "admin_api_trusted_proxies", ""),
    )
    if not is_admin_network_allowed(
        client_ip=client_ip,
        allowlist=getattr(settings, "admin_api_allowlist", ""),
    ):
        logger.warning("admin_access_denied", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})


def _purchase_as_response(purchase: Purchase) -> PurchaseResponse:
    return PurchaseResponse(
        purchase_id=purchase.purchase_id,
        buyer_email=purchase.buyer_email,
        amount=purchase.amount,
        payment_ref=purchase.payment_ref,
        status=purchase.status,
        issued_code=purchase.issued_code,
        rejection_reason=purchase.rejection_reason,
        created_at=purchase.created_at,
        validated_at=purchase.validated_at,
    )


async def validate_admin(*, admin_key: str | None) -> ValidateAdminResponse:
    try:
        async with translate_store_errors("validate_admin"):
            async with SessionLocal.begin() as session:
                valid = await CredentialStore.validate(session, admin_key=admin_key)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return ValidateAdminResponse(valid=valid)


async def revoke_admin(*, admin_key: str | None, target_key: str) -> SuccessResponse:
    try:
        async with translate_store_errors("revoke_admin"):
            async with SessionLocal.begin() as session:
                await CredentialStore.require_valid(session, admin_key=admin_key)
                await CredentialStore.revoke(session, admin_key=target_key)
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return SuccessResponse()


async def mint_code(*, admin_key: str | None) -> MintCodeResponse:
    try:
        async with translate_store_errors("mint_code"):
            async with SessionLocal.begin() as session:
                await CredentialStore.require_valid(session, admin_key=admin_key)
                code = await CodeLedger.mint(session, source="admin")
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return MintCodeResponse(code=code)


async def redeem_code(
    *,
    user_id: str,
    code: str,
    mint_replacement: bool | None,
) -> SuccessResponse:
    if mint_replacement is None:
        mint_replacement = bool(getattr(get_settings(), "replace_code_on_redeem", False))

    try:
        async with translate_store_errors("redeem_code"):
            async with SessionLocal.begin() as session:
                await CodeLedger.redeem(
                    session,
                    code=code,
                    redeemer_id=user_id,
                    mint_replacement=mint_replacement,
                )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return SuccessResponse()


async def approve_purchase(
    *,
    admin_key: str | None,
    purchase_id: str,
    background_tasks: BackgroundTasks,
) -> ApprovePurchaseResponse:
    try:
        async with translate_store_errors("approve_purchase"):
            async with SessionLocal.begin() as session:
                decision = await PurchaseWorkflow.approve(
                    session,
                    purchase_id=purchase_id,
                    admin_key=admin_key,
                )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc

    background_tasks.add_task(notify, decision.notification_event())
    return ApprovePurchaseResponse(code=decision.issued_code or "", notify_text=decision.notify_text)


async def reject_purchase(
    *,
    admin_key: str | None,
    purchase_id: str,
    reason: str,
    background_tasks: BackgroundTasks,
) -> RejectPurchaseResponse:
    try:
        async with translate_store_errors("reject_purchase"):
            async with SessionLocal.begin() as session:
                decision = await PurchaseWorkflow.reject(
                    session,
                    purchase_id=purchase_id,
                    admin_key=admin_key,
                    reason=reason,
                )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc

    background_tasks.add_task(notify, decision.notification_event())
    return RejectPurchaseResponse(notify_text=decision.notify_text)


async def list_pending(*, admin_key: str | None, limit: int | None) -> PendingPurchasesResponse:
    try:
        async with translate_store_errors("list_pending"):
            async with SessionLocal.begin() as session:
                purchases = await PurchaseWorkflow.list_pending(
                    session,
                    admin_key=admin_key,
                    limit=limit,
                )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return PendingPurchasesResponse(purchases=[_purchase_as_response(purchase) for purchase in purchases])


async def submit_purchase(
    *,
    buyer_email: str,
    amount: Decimal | str,
    payment_ref: str,
    purchase_id: str | None,
) -> PurchaseResponse:
    try:
        async with translate_store_errors("submit_purchase"):
            async with SessionLocal.begin() as session:
                purchase = await PurchaseWorkflow.submit(
                    session,
                    buyer_email=buyer_email,
                    amount=amount,
                    payment_ref=payment_ref,
                    purchase_id=purchase_id,
                )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return _purchase_as_response(purchase)


async def save_prompt(*, username: str, prompt: str, config: dict[str, Any]) -> SuccessResponse:
    try:
        async with translate_store_errors("save_prompt"):
            async with SessionLocal.begin() as session:
                await PromptHistoryRepo.create(
                    session,
                    entry=PromptHistoryEntry(
                        username=username.strip(),
                        prompt=prompt,
                        config=config,
                        created_at=datetime.now(timezone.utc),
                    ),
                )
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return SuccessResponse()


async def prompt_history(*, username: str) -> PromptHistoryResponse:
    try:
        async with translate_store_errors("prompt_history"):
            async with SessionLocal() as session:
                entries = await PromptHistoryRepo.list_for_user(session, username=username.strip())
    except LedgerError as exc:
        raise ledger_http_error(exc) from exc
    return PromptHistoryResponse(
        history=[
            PromptHistoryItem(
                id=entry.id,
                prompt=entry.prompt,
                config=entry.config or {},
                created_at=entry.created_at,
            )
            for entry in entries
        ]
    )


async def refine(*, prompt: str) -> RefinePromptResponse:
    result = await refine_prompt(prompt)
    return RefinePromptResponse(text=result.text, refined=result.refined)
