"""Initial directory schema

Revision ID: 202610190001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "202610190001"
down_revision = None
branch_labels = None
depends_on = None

user_role_enum = sa.Enum("user", "admin", name="user_role")
user_status_enum = sa.Enum("active", "inactive", "suspended", name="user_status")
submission_status_enum = sa.Enum("pending", "approved", "rejected", name="submission_status")
promotion_status_enum = sa.Enum("pending", "active", "expired", name="promotion_status")
report_status_enum = sa.Enum(
    "pending", "reviewed", "resolved", "dismissed", name="report_status"
)


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.func.now(),
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=128), nullable=True),
        sa.Column("role", user_role_enum, nullable=False, server_default="user"),
        sa.Column("status", user_status_enum, nullable=False, server_default="active"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("last_login_at", nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("group_name", sa.String(length=255), nullable=False),
        sa.Column("group_description", sa.Text(), nullable=False),
        sa.Column("group_username", sa.String(length=64), nullable=False),
        sa.Column("group_image", sa.String(length=512), nullable=True),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("members", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("link", sa.String(length=512), nullable=False),
        sa.Column("status", submission_status_enum, nullable=False, server_default="pending"),
        sa.Column("submission_note", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("reviewed_at", nullable=True),
        sa.Column("reviewed_by", sa.String(length=64), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_submissions"),
    )
    op.create_index("ix_submissions_owner_id", "submissions", ["owner_id"])
    op.create_index("ix_submissions_group_username", "submissions", ["group_username"])
    op.create_index("ix_submissions_status", "submissions", ["status"])

    op.create_table(
        "catalog_entries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("submission_id", sa.String(length=36), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=False),
        sa.Column("image", sa.String(length=512), nullable=True),
        sa.Column("members", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("link", sa.String(length=512), nullable=False),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(
            ["submission_id"],
            ["submissions.id"],
            name="fk_catalog_entries_submission_id_submissions",
            ondelete="RESTRICT",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_catalog_entries"),
        sa.UniqueConstraint("submission_id", name="uq_catalog_entries_submission_id"),
    )
    op.create_index("ix_catalog_entries_owner_id", "catalog_entries", ["owner_id"])
    op.create_index("ix_catalog_entries_username", "catalog_entries", ["username"])
    op.create_index("ix_catalog_entries_category", "catalog_entries", ["category"])

    op.create_table(
        "promotions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("group_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("plan_id", sa.String(length=32), nullable=False),
        sa.Column("order_id", sa.String(length=64), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", promotion_status_enum, nullable=False, server_default="pending"),
        sa.Column("payment_id", sa.String(length=64), nullable=True),
        sa.Column("payment_url", sa.String(length=512), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        _timestamp("created_at"),
        _timestamp("activated_at", nullable=True),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["catalog_entries.id"],
            name="fk_promotions_group_id_catalog_entries",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_promotions"),
        sa.UniqueConstraint("order_id", name="uq_promotions_order_id"),
    )
    op.create_index("ix_promotions_group_id", "promotions", ["group_id"])
    op.create_index("ix_promotions_user_id", "promotions", ["user_id"])
    op.create_index("ix_promotions_status", "promotions", ["status"])
    op.create_index("ix_promotions_payment_id", "promotions", ["payment_id"])

    op.create_table(
        "user_activity",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("action_type", sa.String(length=16), nullable=False),
        sa.Column("entity_type", sa.String(length=16), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id", name="pk_user_activity"),
    )
    op.create_index("ix_user_activity_user_id", "user_activity", ["user_id"])

    op.create_table(
        "group_reports",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("group_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("group_name", sa.String(length=255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", report_status_enum, nullable=False, server_default="pending"),
        _timestamp("reported_at"),
        sa.Column("reviewed_by", sa.String(length=64), nullable=True),
        _timestamp("reviewed_at", nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["catalog_entries.id"],
            name="fk_group_reports_group_id_catalog_entries",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_group_reports"),
    )
    op.create_index("ix_group_reports_group_id", "group_reports", ["group_id"])
    op.create_index("ix_group_reports_status", "group_reports", ["status"])


def downgrade() -> None:
    op.drop_table("group_reports")
    op.drop_table("user_activity")
    op.drop_table("promotions")
    op.drop_table("catalog_entries")
    op.drop_table("submissions")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (
        report_status_enum,
        promotion_status_enum,
        submission_status_enum,
        user_status_enum,
        user_role_enum,
    ):
        enum.drop(bind, checkfirst=True)
