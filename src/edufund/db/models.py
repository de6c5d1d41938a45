"""ORM models for learners, quests, company funding pools, completions and claim records.

Primary keys are UUID strings generated application-side so the same models
run on PostgreSQL in production and SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from edufund.db.base import Base

# Token amounts: whole-token decimals with 18 fractional digits, like the ledger's fixed point
Amount = Numeric(38, 18)


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Learners
# ---------------------------------------------------------------------------


class User(Base):
    """A learner, identified by ledger account address. Created on first completion."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    wallet_address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    completed_quests: Mapped[list[CompletedQuest]] = relationship("CompletedQuest", back_populates="user")


# ---------------------------------------------------------------------------
# Quests
# ---------------------------------------------------------------------------


class Quest(Base):
    """A learning quest. Pool-funded quests are created alongside their pool."""

    __tablename__ = "quests"
    __table_args__ = (Index("idx_quest_published", "is_published", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reward: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    difficulty: Mapped[str] = mapped_column(String(32), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    funding_pools: Mapped[list[FundingPool]] = relationship("FundingPool", back_populates="quest")


# ---------------------------------------------------------------------------
# Companies & funding pools
# ---------------------------------------------------------------------------


class Company(Base):
    """A company account that funds course pools."""

    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(42), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    funding_pools: Mapped[list[FundingPool]] = relationship("FundingPool", back_populates="company")


class FundingPool(Base):
    """A company-scoped, capped budget backing one quest's rewards.

    Never hard-deleted; closing a pool flips ``active`` off.
    """

    __tablename__ = "funding_pools"
    __table_args__ = (
        CheckConstraint("remaining_balance >= 0", name="ck_pool_balance_non_negative"),
        CheckConstraint("remaining_balance <= total_fund", name="ck_pool_balance_within_total"),
        Index("idx_pool_quest_active", "quest_id", "active"),
        Index("idx_pool_company", "company_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    company_id: Mapped[str] = mapped_column(String(36), ForeignKey("companies.id"), nullable=False)
    quest_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("quests.id", ondelete="SET NULL"), nullable=True
    )
    course_name: Mapped[str] = mapped_column(String(200), nullable=False)
    total_fund: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    reward_per_student: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_balance: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    contract_address: Mapped[str | None] = mapped_column(String(42), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    company: Mapped[Company] = relationship("Company", back_populates="funding_pools")
    quest: Mapped[Quest | None] = relationship("Quest", back_populates="funding_pools")


# ---------------------------------------------------------------------------
# Completions & claim records
# ---------------------------------------------------------------------------


class CompletedQuest(Base):
    """One learner's completion of one quest; ``reward_claimed`` flips once."""

    __tablename__ = "completed_quests"
    __table_args__ = (
        UniqueConstraint("user_id", "quest_id", name="uq_completion_user_quest"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    quest_id: Mapped[str] = mapped_column(String(36), ForeignKey("quests.id", ondelete="CASCADE"), nullable=False)
    reward_claimed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[User] = relationship("User", back_populates="completed_quests")
    quest: Mapped[Quest] = relationship("Quest")


class Reward(Base):
    """Append-only receipt of a fulfilled claim. ``pool_id`` is null for treasury payouts.

    ``quest_id`` is not a foreign key; receipts outlive the quest.
    """

    __tablename__ = "rewards"
    __table_args__ = (
        Index("idx_reward_wallet", "wallet"),
        Index("idx_reward_pool", "pool_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    wallet: Mapped[str] = mapped_column(String(42), nullable=False)
    quest_id: Mapped[str] = mapped_column(String(36), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    tx_hash: Mapped[str | None] = mapped_column(String(66), nullable=True)
    pool_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("funding_pools.id"), nullable=True)
    claimed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
