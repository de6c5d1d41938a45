"""Initial schema: learners, quests, companies, funding pools, completions, claim records.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

AMOUNT = sa.Numeric(38, 18)


def upgrade() -> None:
    # --- Learners ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("wallet_address", sa.String(42), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    # --- Quests ---
    op.create_table(
        "quests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("reward", AMOUNT, nullable=False),
        sa.Column("difficulty", sa.String(32), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("is_published", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_quest_published", "quests", ["is_published", "created_at"])

    # --- Companies ---
    op.create_table(
        "companies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("wallet_address", sa.String(42), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )

    # --- Funding pools ---
    op.create_table(
        "funding_pools",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("company_id", sa.String(36), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("quest_id", sa.String(36), sa.ForeignKey("quests.id", ondelete="SET NULL"), nullable=True),
        sa.Column("course_name", sa.String(200), nullable=False),
        sa.Column("total_fund", AMOUNT, nullable=False),
        sa.Column("reward_per_student", AMOUNT, nullable=False),
        sa.Column("max_participants", sa.Integer, nullable=False),
        sa.Column("remaining_balance", AMOUNT, nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("contract_address", sa.String(42), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("remaining_balance >= 0", name="ck_pool_balance_non_negative"),
        sa.CheckConstraint("remaining_balance <= total_fund", name="ck_pool_balance_within_total"),
    )
    op.create_index("idx_pool_quest_active", "funding_pools", ["quest_id", "active"])
    op.create_index("idx_pool_company", "funding_pools", ["company_id", "created_at"])

    # --- Completions ---
    op.create_table(
        "completed_quests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quest_id", sa.String(36), sa.ForeignKey("quests.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reward_claimed", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "quest_id", name="uq_completion_user_quest"),
    )

    # --- Claim records ---
    op.create_table(
        "rewards",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("wallet", sa.String(42), nullable=False),
        sa.Column("quest_id", sa.String(36), nullable=False),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.Column("tx_hash", sa.String(66), nullable=True),
        sa.Column("pool_id", sa.String(36), sa.ForeignKey("funding_pools.id"), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
    )
    op.create_index("idx_reward_wallet", "rewards", ["wallet"])
    op.create_index("idx_reward_pool", "rewards", ["pool_id"])


def downgrade() -> None:
    op.drop_table("rewards")
    op.drop_table("completed_quests")
    op.drop_table("funding_pools")
    op.drop_table("companies")
    op.drop_table("quests")
    op.drop_table("users")
