from __future__ import annotations

from fastapi import APIRouter

from . import ledger_handlers
from .ledger_models import (
    PromptHistoryResponse,
    PurchaseResponse,
    RedeemCodeRequest,
    RefinePromptRequest,
    RefinePromptResponse,
    SavePromptRequest,
    SubmitPurchaseRequest,
    SuccessResponse,
)

router = APIRouter(tags=["public"])


@router.post("/codes/redeem", response_model=SuccessResponse)
async def redeem_code(payload: RedeemCodeRequest) -> SuccessResponse:
    return await ledger_handlers.redeem_code(
        user_id=payload.user_id,
        code=payload.code,
        mint_replacement=payload.mint_replacement,
    )


@router.post("/purchases", response_model=PurchaseResponse, status_code=201)
async def submit_purchase(payload: SubmitPurchaseRequest) -> PurchaseResponse:
    return await ledger_handlers.submit_purchase(
        buyer_email=payload.buyer_email,
        amount=payload.amount,
        payment_ref=payload.payment_ref,
        purchase_id=payload.purchase_id,
    )


@router.post("/prompts", response_model=SuccessResponse, status_code=201)
async def save_prompt(payload: SavePromptRequest) -> SuccessResponse:
    return await ledger_handlers.save_prompt(
        username=payload.username,
        prompt=payload.prompt,
        config=payload.config,
    )


@router.get("/prompts/{username}", response_model=PromptHistoryResponse)
async def prompt_history(username: str) -> PromptHistoryResponse:
    return await ledger_handlers.prompt_history(username=username)


@router.post("/prompts/refine", response_model=RefinePromptResponse)
async def refine_prompt(payload: RefinePromptRequest) -> RefinePromptResponse:
    return await ledger_handlers.refine(prompt=payload.prompt)
