from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from keyledger.db.models.base import Base


class Purchase(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("status IN ('pending','approved','rejected')", name="status"),
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint(
            "(status = 'approved') = (issued_code IS NOT NULL)",
            name="issued_code_iff_approved",
        ),
        CheckConstraint(
            "(status = 'rejected') = (rejection_reason IS NOT NULL)",
            name="rejection_reason_iff_rejected",
        ),
        CheckConstraint(
            "(status = 'pending') = (validated_at IS NULL)",
            name="validated_at_iff_terminal",
        ),
        Index("idx_purchases_status_created", "status", "created_at"),
        Index("idx_purchases_buyer_email", "buyer_email"),
    )

    purchase_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    buyer_email: Mapped[str] = mapped_column(String(254), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_ref: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    issued_code: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
