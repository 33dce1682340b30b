from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class LedgerModel(BaseModel):
    """Wire models use camelCase keys; snake_case is accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValidateAdminResponse(LedgerModel):
    valid: bool


class SuccessResponse(LedgerModel):
    success: bool = True


class MintCodeResponse(LedgerModel):
    code: str


class ApprovePurchaseResponse(LedgerModel):
    code: str
    notify_text: str


class RejectPurchaseResponse(LedgerModel):
    notify_text: str


class PurchaseResponse(LedgerModel):
    purchase_id: str
    buyer_email: str
    amount: Decimal
    payment_ref: str
    status: str
    issued_code: str | None = None
    rejection_reason: str | None = None
    created_at: datetime
    validated_at: datetime | None = None


class PendingPurchasesResponse(LedgerModel):
    purchases: list[PurchaseResponse]


class PromptHistoryItem(LedgerModel):
    id: int
    prompt: str
    config: dict[str, Any]
    created_at: datetime


class PromptHistoryResponse(LedgerModel):
    history: list[PromptHistoryItem]


class RefinePromptResponse(LedgerModel):
    text: str
    refined: bool


class RevokeAdminRequest(LedgerModel):
    key: str = Field(min_length=1, max_length=128)


class RejectPurchaseRequest(LedgerModel):
    reason: str = Field(default="", max_length=1000)


class RedeemCodeRequest(LedgerModel):
    user_id: str = Field(min_length=1, max_length=64)
    code: str = Field(min_length=1, max_length=64)
    mint_replacement: bool | None = None


class SubmitPurchaseRequest(LedgerModel):
    buyer_email: str = Field(min_length=1, max_length=320)
    amount: Decimal | str
    payment_ref: str = Field(min_length=1, max_length=128)
    purchase_id: str | None = Field(default=None, max_length=64)


class SavePromptRequest(LedgerModel):
    username: str = Field(min_length=1, max_length=64)
    prompt: str = Field(min_length=1, max_length=20000)
    config: dict[str, Any] = Field(default_factory=dict)


class RefinePromptRequest(LedgerModel):
    prompt: str = Field(min_length=1, max_length=20000)


# One model per action of the POST /api envelope.


class ValidateAdminAction(LedgerModel):
    action: Literal["validate_admin"]
    key: str | None = Field(default=None, max_length=128)


class RevokeAdminAction(RevokeAdminRequest):
    action: Literal["revoke_admin"]
    admin_key: str | None = Field(default=None, max_length=128)


class MintCodeAction(LedgerModel):
    action: Literal["mint_code"]
    admin_key: str | None = Field(default=None, max_length=128)


class RedeemCodeAction(RedeemCodeRequest):
    action: Literal["redeem_code"]


class ApprovePurchaseAction(LedgerModel):
    action: Literal["approve_purchase"]
    admin_key: str | None = Field(default=None, max_length=128)
    purchase_id: str = Field(min_length=1, max_length=64)


class RejectPurchaseAction(RejectPurchaseRequest):
    action: Literal["reject_purchase"]
    admin_key: str | None = Field(default=None, max_length=128)
    purchase_id: str = Field(min_length=1, max_length=64)


class ListPendingAction(LedgerModel):
    action: Literal["list_pending"]
    admin_key: str | None = Field(default=None, max_length=128)
    limit: int | None = Field(default=None, ge=1, le=500)


class SubmitPurchaseAction(SubmitPurchaseRequest):
    action: Literal["submit_purchase"]


class SavePromptAction(SavePromptRequest):
    action: Literal["save_prompt"]


class PromptHistoryAction(LedgerModel):
    action: Literal["prompt_history"]
    username: str = Field(min_length=1, max_length=64)


class RefinePromptAction(RefinePromptRequest):
    action: Literal["refine_prompt"]


LedgerActionVariant = Union[
    ValidateAdminAction,
    RevokeAdminAction,
    MintCodeAction,
    RedeemCodeAction,
    ApprovePurchaseAction,
    RejectPurchaseAction,
    ListPendingAction,
    SubmitPurchaseAction,
    SavePromptAction,
    PromptHistoryAction,
    RefinePromptAction,
]
LedgerAction = Annotated[LedgerActionVariant, Field(discriminator="action")]
LEDGER_ACTION_ADAPTER: TypeAdapter[LedgerActionVariant] = TypeAdapter(LedgerAction)
LEDGER_ACTION_NAMES = frozenset(
    get_args(variant.model_fields["action"].annotation)[0] for variant in get_args(LedgerActionVariant)
)
ADMIN_ACTION_NAMES = frozenset(
    {
        "validate_admin",
        "revoke_admin",
        "mint_code",
        "approve_purchase",
        "reject_purchase",
        "list_pending",
    }
)
