"""Persistence operations the claim flow depends on.

Every guard that must hold across concurrent instances lives here as a
single statement: unique-constraint inserts for completions, and
conditional ``UPDATE ... WHERE`` statements for the pool balance and the
claimed flag. Callers never read a value and write it back.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from edufund.db.models import CompletedQuest, FundingPool, Quest, Reward, User

logger = structlog.get_logger()


class DuplicateCompletion(Exception):
    """A completion for this (learner, quest) already exists."""


class ClaimStore:
    """Thin async repository over one session. Does not commit."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # --- Learners ---

    async def find_user_by_address(self, wallet_address: str) -> User | None:
        result = await self.db.execute(select(User).where(User.wallet_address == wallet_address))
        return result.scalar_one_or_none()

    async def get_or_create_user(self, wallet_address: str) -> User:
        """Return the learner for `wallet_address`, creating it if needed.

        A concurrent creation of the same learner surfaces as a unique
        violation; the transaction is rolled back and the winner's row re-read.
        """
        user = await self.find_user_by_address(wallet_address)
        if user is not None:
            return user

        user = User(wallet_address=wallet_address, created_at=datetime.now(timezone.utc))
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.find_user_by_address(wallet_address)
            if existing is None:
                raise
            return existing
        logger.info("learner_created", user_id=user.id, wallet=wallet_address)
        return user

    # --- Quests & pools ---

    async def find_quest_by_id(self, quest_id: str) -> tuple[Quest, FundingPool | None] | None:
        """Resolve a published quest and its most recent active pool, if any."""
        quest = await self.db.get(Quest, quest_id, populate_existing=True)
        if quest is None or not quest.is_published:
            return None
        return quest, await self.find_active_pool(quest_id)

    async def find_active_pool(self, quest_id: str) -> FundingPool | None:
        result = await self.db.execute(
            select(FundingPool)
            .where(FundingPool.quest_id == quest_id, FundingPool.active.is_(True))
            .options(selectinload(FundingPool.company))
            .order_by(FundingPool.created_at.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def count_claims_for_pool(self, pool_id: str) -> int:
        result = await self.db.execute(select(func.count(Reward.id)).where(Reward.pool_id == pool_id))
        return result.scalar() or 0

    async def conditional_decrement_pool_balance(self, pool_id: str, amount: Decimal) -> bool:
        """Compare-and-decrement: subtract `amount` only if the active pool still covers it.

        Returns True iff exactly one row changed. The row lock taken by the
        UPDATE is held until the surrounding transaction ends.
        """
        result = await self.db.execute(
            update(FundingPool)
            .where(
                FundingPool.id == pool_id,
                FundingPool.active.is_(True),
                FundingPool.remaining_balance >= amount,
            )
            .values(remaining_balance=FundingPool.remaining_balance - amount)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def conditional_deactivate_pool(self, pool_id: str) -> bool:
        result = await self.db.execute(
            update(FundingPool)
            .where(FundingPool.id == pool_id, FundingPool.active.is_(True))
            .values(active=False, closed_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_pool_balance(self, pool_id: str) -> Decimal | None:
        result = await self.db.execute(
            select(FundingPool.remaining_balance).where(FundingPool.id == pool_id)
        )
        return result.scalar_one_or_none()

    # --- Completions ---

    async def find_completion(self, user_id: str, quest_id: str) -> CompletedQuest | None:
        result = await self.db.execute(
            select(CompletedQuest)
            .where(CompletedQuest.user_id == user_id, CompletedQuest.quest_id == quest_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create_completion(self, user_id: str, quest_id: str) -> CompletedQuest:
        """Insert the completion row; the unique constraint is the duplicate guard.

        Raises DuplicateCompletion (after rolling back) when the pair already exists.
        """
        completion = CompletedQuest(
            user_id=user_id,
            quest_id=quest_id,
            reward_claimed=False,
            completed_at=datetime.now(timezone.utc),
        )
        self.db.add(completion)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateCompletion(f"{user_id}:{quest_id}") from exc
        return completion

    async def conditional_mark_claimed(self, user_id: str, quest_id: str) -> bool:
        """Flip ``reward_claimed`` false→true. Returns False if it was already true (or absent)."""
        result = await self.db.execute(
            update(CompletedQuest)
            .where(
                CompletedQuest.user_id == user_id,
                CompletedQuest.quest_id == quest_id,
                CompletedQuest.reward_claimed.is_(False),
            )
            .values(reward_claimed=True, claimed_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete_unclaimed_completions(self, quest_id: str) -> int:
        result = await self.db.execute(
            delete(CompletedQuest)
            .where(CompletedQuest.quest_id == quest_id, CompletedQuest.reward_claimed.is_(False))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def list_completions_for_user(self, user_id: str) -> list[CompletedQuest]:
        result = await self.db.execute(
            select(CompletedQuest)
            .where(CompletedQuest.user_id == user_id)
            .options(selectinload(CompletedQuest.quest))
            .order_by(CompletedQuest.completed_at.desc())
        )
        return list(result.scalars().all())

    # --- Claim records ---

    async def create_claim_record(
        self,
        wallet: str,
        quest_id: str,
        amount: Decimal,
        tx_hash: str | None,
        pool_id: str | None,
    ) -> Reward:
        record = Reward(
            wallet=wallet,
            quest_id=quest_id,
            amount=amount,
            tx_hash=tx_hash,
            pool_id=pool_id,
            claimed_at=datetime.now(timezone.utc),
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def list_claims_for_wallet(self, wallet: str) -> list[Reward]:
        result = await self.db.execute(
            select(Reward).where(Reward.wallet == wallet).order_by(Reward.claimed_at.desc())
        )
        return list(result.scalars().all())

    async def list_claims_for_pool(self, pool_id: str, limit: int = 50) -> list[Reward]:
        result = await self.db.execute(
            select(Reward)
            .where(Reward.pool_id == pool_id)
            .order_by(Reward.claimed_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
