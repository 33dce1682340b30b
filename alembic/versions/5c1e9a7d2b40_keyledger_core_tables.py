"""keyledger_core_tables

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-19 10:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "5c1e9a7d2b40"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "admin_credentials",
        sa.Column("key_hash", sa.CHAR(64), nullable=False),
        sa.Column("key_prefix", sa.String(12), nullable=False),
        sa.Column("label", sa.String(64), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('active','revoked')", name="ck_admin_credentials_status"),
        sa.CheckConstraint(
            "(status = 'revoked') = (revoked_at IS NOT NULL)",
            name="ck_admin_credentials_revoked_at_matches_status",
        ),
        sa.PrimaryKeyConstraint("key_hash", name="pk_admin_credentials"),
    )
    op.create_index("idx_admin_credentials_status", "admin_credentials", ["status"])

    op.create_table(
        "redeemable_codes",
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("redeemed_by", sa.String(64), nullable=True),
        sa.Column("redeemed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('active','redeemed')", name="ck_redeemable_codes_status"),
        sa.CheckConstraint(
            "source IN ('purchase','admin','replacement')",
            name="ck_redeemable_codes_source",
        ),
        sa.CheckConstraint(
            "(status = 'active' AND redeemed_by IS NULL AND redeemed_at IS NULL) "
            "OR (status = 'redeemed' AND redeemed_by IS NOT NULL AND redeemed_at IS NOT NULL)",
            name="ck_redeemable_codes_redemption_fields_match_status",
        ),
        sa.PrimaryKeyConstraint("code", name="pk_redeemable_codes"),
    )
    op.create_index(
        "idx_redeemable_codes_status_created",
        "redeemable_codes",
        ["status", "created_at"],
    )
    op.create_index("idx_redeemable_codes_redeemed_by", "redeemable_codes", ["redeemed_by"])

    op.create_table(
        "purchases",
        sa.Column("purchase_id", sa.String(64), nullable=False),
        sa.Column("buyer_email", sa.String(254), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_ref", sa.String(128), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("issued_code", sa.String(64), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('pending','approved','rejected')", name="ck_purchases_status"),
        sa.CheckConstraint("amount > 0", name="ck_purchases_amount_positive"),
        sa.CheckConstraint(
            "(status = 'approved') = (issued_code IS NOT NULL)",
            name="ck_purchases_issued_code_iff_approved",
        ),
        sa.CheckConstraint(
            "(status = 'rejected') = (rejection_reason IS NOT NULL)",
            name="ck_purchases_rejection_reason_iff_rejected",
        ),
        sa.CheckConstraint(
            "(status = 'pending') = (validated_at IS NULL)",
            name="ck_purchases_validated_at_iff_terminal",
        ),
        sa.PrimaryKeyConstraint("purchase_id", name="pk_purchases"),
        sa.UniqueConstraint("issued_code", name="uq_purchases_issued_code"),
    )
    op.create_index("idx_purchases_status_created", "purchases", ["status", "created_at"])
    op.create_index("idx_purchases_buyer_email", "purchases", ["buyer_email"])

    op.create_table(
        "users",
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("premium_since", sa.DateTime(timezone=True), nullable=True),
        sa.Column("redeemed_code", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("username", name="pk_users"),
    )

    op.create_table(
        "prompt_history",
        sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("config", sa.JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_prompt_history"),
    )
    op.create_index(
        "idx_prompt_history_user_created",
        "prompt_history",
        ["username", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("idx_prompt_history_user_created", table_name="prompt_history")
    op.drop_table("prompt_history")
    op.drop_table("users")
    op.drop_index("idx_purchases_buyer_email", table_name="purchases")
    op.drop_index("idx_purchases_status_created", table_name="purchases")
    op.drop_table("purchases")
    op.drop_index("idx_redeemable_codes_redeemed_by", table_name="redeemable_codes")
    op.drop_index("idx_redeemable_codes_status_created", table_name="redeemable_codes")
    op.drop_table("redeemable_codes")
    op.drop_index("idx_admin_credentials_status", table_name="admin_credentials")
    op.drop_table("admin_credentials")
