from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from keyledger.db.models.base import Base


class RedeemableCode(Base):
    __tablename__ = "redeemable_codes"
    __table_args__ = (
        CheckConstraint("status IN ('active','redeemed')", name="status"),
        CheckConstraint("source IN ('purchase','admin','replacement')", name="source"),
        CheckConstraint(
            "(status = 'active' AND redeemed_by IS NULL AND redeemed_at IS NULL) "
            "OR (status = 'redeemed' AND redeemed_by IS NOT NULL AND redeemed_at IS NOT NULL)",
            name="redemption_fields_match_status",
        ),
        Index("idx_redeemable_codes_status_created", "status", "created_at"),
        Index("idx_redeemable_codes_redeemed_by", "redeemed_by"),
    )

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    redeemed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    redeemed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
