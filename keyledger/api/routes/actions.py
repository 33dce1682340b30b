from __future__ import annotations

import json
from typing import Any, assert_never

import structlog
from fastapi import APIRouter, BackgroundTasks, HTTPException, Request
from pydantic import ValidationError

from . import ledger_handlers
from .ledger_models import (
    ADMIN_ACTION_NAMES,
    LEDGER_ACTION_ADAPTER,
    LEDGER_ACTION_NAMES,
    ApprovePurchaseAction,
    LedgerActionVariant,
    LedgerModel,
    ListPendingAction,
    MintCodeAction,
    PromptHistoryAction,
    RedeemCodeAction,
    RefinePromptAction,
    RejectPurchaseAction,
    RevokeAdminAction,
    SavePromptAction,
    SubmitPurchaseAction,
    ValidateAdminAction,
)

router = APIRouter(tags=["actions"])
logger = structlog.get_logger(__name__)


def parse_action(body: object) -> LedgerActionVariant:
    action_name = body.get("action") if isinstance(body, dict) else None
    if not isinstance(action_name, str) or action_name not in LEDGER_ACTION_NAMES:
        logger.info("ledger_action_unknown", action=str(action_name)[:64])
        raise HTTPException(status_code=404, detail={"code": "E_UNKNOWN_ACTION"})

    try:
        return LEDGER_ACTION_ADAPTER.validate_python(body)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_REQUEST"}) from exc


async def dispatch_action(
    command: LedgerActionVariant,
    *,
    background_tasks: BackgroundTasks,
) -> LedgerModel:
    match command:
        case ValidateAdminAction():
            return await ledger_handlers.validate_admin(admin_key=command.key)
        case RevokeAdminAction():
            return await ledger_handlers.revoke_admin(admin_key=command.admin_key, target_key=command.key)
        case MintCodeAction():
            return await ledger_handlers.mint_code(admin_key=command.admin_key)
        case RedeemCodeAction():
            return await ledger_handlers.redeem_code(
                user_id=command.user_id,
                code=command.code,
                mint_replacement=command.mint_replacement,
            )
        case ApprovePurchaseAction():
            return await ledger_handlers.approve_purchase(
                admin_key=command.admin_key,
                purchase_id=command.purchase_id,
                background_tasks=background_tasks,
            )
        case RejectPurchaseAction():
            return await ledger_handlers.reject_purchase(
                admin_key=command.admin_key,
                purchase_id=command.purchase_id,
                reason=command.reason,
                background_tasks=background_tasks,
            )
        case ListPendingAction():
            return await ledger_handlers.list_pending(admin_key=command.admin_key, limit=command.limit)
        case SubmitPurchaseAction():
            return await ledger_handlers.submit_purchase(
                buyer_email=command.buyer_email,
                amount=command.amount,
                payment_ref=command.payment_ref,
                purchase_id=command.purchase_id,
            )
        case SavePromptAction():
            return await ledger_handlers.save_prompt(
                username=command.username,
                prompt=command.prompt,
                config=command.config,
            )
        case PromptHistoryAction():
            return await ledger_handlers.prompt_history(username=command.username)
        case RefinePromptAction():
            return await ledger_handlers.refine(prompt=command.prompt)
        case _:
            assert_never(command)


@router.post("/api")
async def run_action(request: Request, background_tasks: BackgroundTasks) -> dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_REQUEST"}) from exc

    command = parse_action(body)
    if command.action in ADMIN_ACTION_NAMES:
        ledger_handlers.assert_admin_network(request)

    response = await dispatch_action(command, background_tasks=background_tasks)
    return response.model_dump(mode="json", by_alias=True)
