"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates all tables for EcoLedger:
- users
- rewards
- reports
- collected_wastes
- transactions (the points ledger)
- reward_grants
- notifications
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


REPORT_STATUSES = ("pending", "in_progress", "completed", "verified")
LEDGER_KINDS = ("earned_report", "earned_collect", "redeemed")


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
    )

    # Reward catalog
    op.create_table(
        "rewards",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("cost", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("collection_info", sa.Text, nullable=True),
        sa.Column(
            "is_available", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.CheckConstraint("cost > 0", name="ck_rewards_cost_positive"),
    )
    op.create_index("idx_rewards_available", "rewards", ["is_available", "cost"])

    # Reports (also the collection tasks)
    op.create_table(
        "reports",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("location", sa.Text, nullable=False),
        sa.Column("waste_type", sa.String(255), nullable=False),
        sa.Column("amount", sa.String(255), nullable=False),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("verification_json", sa.JSON, nullable=True),
        sa.Column(
            "status",
            sa.Enum(*REPORT_STATUSES, name="report_status_enum"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "collector_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("idx_reports_status", "reports", ["status", "created_at"])
    op.create_index("idx_reports_created", "reports", ["created_at"])
    op.create_index("idx_reports_collector", "reports", ["collector_id"])

    # Proof of verified collection, one per report
    op.create_table(
        "collected_wastes",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "report_id",
            sa.BigInteger,
            sa.ForeignKey("reports.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "collector_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "collection_date",
            sa.DateTime,
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("status", sa.String(32), nullable=False, server_default="verified"),
        sa.Column("verification_json", sa.JSON, nullable=True),
    )

    # Points ledger
    op.create_table(
        "transactions",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "kind",
            sa.Enum(*LEDGER_KINDS, name="ledger_kind_enum"),
            nullable=False,
        ),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column(
            "report_id", sa.BigInteger, sa.ForeignKey("reports.id"), nullable=True
        ),
        sa.Column(
            "reward_id", sa.BigInteger, sa.ForeignKey("rewards.id"), nullable=True
        ),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint("report_id", "kind", name="uq_transactions_report_kind"),
        sa.CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )
    op.create_index("idx_transactions_user", "transactions", ["user_id", "created_at"])

    # Collection reward grants
    op.create_table(
        "reward_grants",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "report_id",
            sa.BigInteger,
            sa.ForeignKey("reports.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "ledger_entry_id",
            sa.BigInteger,
            sa.ForeignKey("transactions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column("points", sa.Integer, nullable=False),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "idx_reward_grants_user", "reward_grants", ["user_id", "created_at"]
    )

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.BigInteger, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at", sa.DateTime, nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index(
        "idx_notifications_user_read", "notifications", ["user_id", "is_read"]
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("reward_grants")
    op.drop_table("transactions")
    op.drop_table("collected_wastes")
    op.drop_table("reports")
    op.drop_table("rewards")
    op.drop_table("users")
