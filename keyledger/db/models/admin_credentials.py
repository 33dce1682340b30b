from __future__ import annotations

from datetime import datetime

from sqlalchemy import CHAR, CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from keyledger.db.models.base import Base


class AdminCredential(Base):
    __tablename__ = "admin_credentials"
    __table_args__ = (
        CheckConstraint("status IN ('active','revoked')", name="status"),
        CheckConstraint(
            "(status = 'revoked') = (revoked_at IS NOT NULL)",
            name="revoked_at_matches_status",
        ),
        Index("idx_admin_credentials_status", "status"),
    )

    key_hash: Mapped[str] = mapped_column(CHAR(64), primary_key=True)
    key_prefix: Mapped[str] = mapped_column(String(12), nullable=False)
    label: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
