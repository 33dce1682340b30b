from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Query, Request

from keyledger.services.admin_access import read_admin_key_header

from . import ledger_handlers
from .ledger_models import (
    ApprovePurchaseResponse,
    MintCodeResponse,
    PendingPurchasesResponse,
    RejectPurchaseRequest,
    RejectPurchaseResponse,
    RevokeAdminRequest,
    SuccessResponse,
    ValidateAdminResponse,
)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/validate", response_model=ValidateAdminResponse)
async def validate_admin(request: Request) -> ValidateAdminResponse:
    ledger_handlers.assert_admin_network(request)
    return await ledger_handlers.validate_admin(admin_key=read_admin_key_header(request))


@router.post("/revoke", response_model=SuccessResponse)
async def revoke_admin(payload: RevokeAdminRequest, request: Request) -> SuccessResponse:
    ledger_handlers.assert_admin_network(request)
    return await ledger_handlers.revoke_admin(
        admin_key=read_admin_key_header(request),
        target_key=payload.key,
    )


@router.post("/codes", response_model=MintCodeResponse, status_code=201)
async def mint_code(request: Request) -> MintCodeResponse:
    ledger_handlers.assert_admin_network(request)
    return await ledger_handlers.mint_code(admin_key=read_admin_key_header(request))


@router.get("/purchases/pending", response_model=PendingPurchasesResponse)
async def list_pending(
    request: Request,
    limit: int | None = Query(default=None, ge=1, le=500),
) -> PendingPurchasesResponse:
    ledger_handlers.assert_admin_network(request)
    return await ledger_handlers.list_pending(admin_key=read_admin_key_header(request), limit=limit)


@router.post("/purchases/{purchase_id}/approve", response_model=ApprovePurchaseResponse)
async def approve_purchase(
    purchase_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
) -> ApprovePurchaseResponse:
    ledger_handlers.assert_admin_network(request)
    return await ledger_handlers.approve_purchase(
        admin_key=read_admin_key_header(request),
        purchase_id=purchase_id,
        background_tasks=background_tasks,
    )


@router.post("/purchases/{purchase_id}/reject", response_model=RejectPurchaseResponse)
async def reject_purchase(
    purchase_id: str,
    payload: RejectPurchaseRequest,
    request: Request,
    background_tasks: BackgroundTasks,
) -> RejectPurchaseResponse:
    ledger_handlers.assert_admin_network(request)
    return await ledger_handlers.reject_purchase(
        admin_key=read_admin_key_header(request),
        purchase_id=purchase_id,
        reason=payload.reason,
        background_tasks=background_tasks,
    )
