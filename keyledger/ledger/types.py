from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

NOTIFICATION_KIND_APPROVED = "approved"
NOTIFICATION_KIND_REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    kind: str
    purchase_id: str
    payload: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PurchaseDecision:
    purchase_id: str
    status: str
    validated_at: datetime
    notify_text: str
    issued_code: str | None = None
    rejection_reason: str | None = None

    def notification_event(self) -> NotificationEvent:
        """Outbound view of the decision; the issued code stays with the admin response."""
        summary = f"Purchase {self.purchase_id} has been {self.status}."
        if self.rejection_reason is not None:
            summary = f"{summary} Reason: {self.rejection_reason}"
        payload: dict[str, object] = {
            "summary": summary,
            "validated_at": self.validated_at.isoformat(),
        }
        if self.rejection_reason is not None:
            payload["reason"] = self.rejection_reason
        return NotificationEvent(kind=self.status, purchase_id=self.purchase_id, payload=payload)


@dataclass(frozen=True, slots=True)
class CodeRedemption:
    code: str
    redeemed_by: str
    redeemed_at: datetime
    replacement_code: str | None = None

