"""Eligibility checks for completing a quest and claiming its reward.

The checks are advisory snapshots: they run once when a learner completes a
quest and again when the claim is confirmed, because pool state can change
in between. The binding guards are the store's conditional writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from edufund.db.models import FundingPool, Quest
from edufund.rewards.exceptions import (
    AlreadyCompleted,
    PoolFull,
    PoolInsufficientFunds,
    QuestNotFound,
)
from edufund.rewards.store import ClaimStore


@dataclass
class PoolStatus:
    """Point-in-time view of a pool's capacity."""

    claims: int
    max_participants: int
    remaining_balance: Decimal
    reward_per_student: Decimal

    @property
    def is_full(self) -> bool:
        return self.claims >= self.max_participants

    @property
    def is_out_of_funds(self) -> bool:
        return self.remaining_balance < self.reward_per_student

    @property
    def remaining_slots(self) -> int:
        return max(0, self.max_participants - self.claims)


@dataclass
class QuestContext:
    """A resolved quest, the pool funding it (if any), and that pool's status."""

    quest: Quest
    pool: FundingPool | None = None
    pool_status: PoolStatus | None = None

    @property
    def reward(self) -> Decimal:
        """Amount paid per claim: the pool's rate for pool quests, else the quest's own reward."""
        if self.pool is not None:
            return self.pool.reward_per_student
        return self.quest.reward


class EligibilityEvaluator:
    def __init__(self, store: ClaimStore) -> None:
        self.store = store

    async def pool_status(self, pool: FundingPool) -> PoolStatus:
        return PoolStatus(
            claims=await self.store.count_claims_for_pool(pool.id),
            max_participants=pool.max_participants,
            remaining_balance=pool.remaining_balance,
            reward_per_student=pool.reward_per_student,
        )

    async def resolve(self, quest_id: str) -> QuestContext:
        """Resolve the quest and its active pool. Raises QuestNotFound."""
        found = await self.store.find_quest_by_id(quest_id)
        if found is None:
            raise QuestNotFound
        quest, pool = found
        ctx = QuestContext(quest=quest, pool=pool)
        if pool is not None:
            ctx.pool_status = await self.pool_status(pool)
        return ctx

    @staticmethod
    def check_pool(ctx: QuestContext) -> None:
        """Raise PoolFull / PoolInsufficientFunds for an exhausted pool; no-op without one."""
        status = ctx.pool_status
        if status is None:
            return
        if status.is_full:
            raise PoolFull
        if status.is_out_of_funds:
            raise PoolInsufficientFunds

    async def check_completion_eligibility(self, user_id: str | None, quest_id: str) -> QuestContext:
        """Decide whether `user_id` may complete `quest_id` now.

        `user_id` is None for a learner who has never completed anything.
        Raises QuestNotFound, AlreadyCompleted, PoolFull or PoolInsufficientFunds,
        in that order of precedence.
        """
        ctx = await self.resolve(quest_id)
        if user_id is not None and await self.store.find_completion(user_id, quest_id) is not None:
            raise AlreadyCompleted
        self.check_pool(ctx)
        return ctx

    async def check_claim_eligibility(self, quest_id: str) -> QuestContext:
        """Re-resolve the pool at claim time and re-run the pool checks."""
        ctx = await self.resolve(quest_id)
        self.check_pool(ctx)
        return ctx
