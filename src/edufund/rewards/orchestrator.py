"""Claim orchestration: the two-phase complete → confirm protocol.

Per (learner, quest) the state machine is::

    NoCompletion --complete_quest--> Completed(unclaimed) --confirm_claim--> Claimed

``Claimed`` is terminal. ``Completed(unclaimed)`` may rest indefinitely (a
ticket was issued but never redeemed on-chain); ``reissue_ticket`` mints a
fresh ticket for it without re-completing.

The orchestrator owns the session's transaction boundaries: each phase
commits on success and rolls back everything it wrote on any failure.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.db.models import CompletedQuest, Reward
from edufund.rewards.eligibility import EligibilityEvaluator
from edufund.rewards.exceptions import (
    AlreadyClaimed,
    AlreadyCompleted,
    InsufficientBalance,
    NotCompleted,
    PoolFull,
    PoolInsufficientFunds,
    RewardError,
    SigningUnavailable,
)
from edufund.rewards.pool_accountant import PoolAccountant
from edufund.rewards.store import ClaimStore, DuplicateCompletion
from edufund.rewards.tickets import TicketIssuer, normalize_address

logger = structlog.get_logger()


def completion_to_dict(completion: CompletedQuest) -> dict[str, Any]:
    return {
        "id": completion.id,
        "user_id": completion.user_id,
        "quest_id": completion.quest_id,
        "reward_claimed": completion.reward_claimed,
        "completed_at": completion.completed_at,
    }


def claim_record_to_dict(record: Reward) -> dict[str, Any]:
    return {
        "id": record.id,
        "wallet": record.wallet,
        "quest_id": record.quest_id,
        "amount": record.amount,
        "tx_hash": record.tx_hash,
        "pool_id": record.pool_id,
        "claimed_at": record.claimed_at,
    }


class ClaimOrchestrator:
    """Facade the HTTP layer calls for completions, claims and ticket reissue."""

    def __init__(self, db: AsyncSession, issuer: TicketIssuer) -> None:
        self.db = db
        self.issuer = issuer
        self.store = ClaimStore(db)
        self.evaluator = EligibilityEvaluator(self.store)
        self.accountant = PoolAccountant(self.store)

    # --- Phase 1 ---

    async def complete_quest(self, wallet_address: str, quest_id: str) -> dict[str, Any]:
        """Record a completion and return the reward with a claim ticket.

        The ticket is None when signing is unavailable; the completion is
        recorded regardless and ``reissue_ticket`` can mint one later.
        """
        address = normalize_address(wallet_address)
        learner = await self.store.find_user_by_address(address)
        ctx = await self.evaluator.check_completion_eligibility(
            learner.id if learner is not None else None, quest_id
        )

        reward = ctx.reward
        pool = ctx.pool
        pool_id = pool.id if pool is not None else None
        funding_pool = (
            {
                "id": pool.id,
                "course_name": pool.course_name,
                "reward_per_student": pool.reward_per_student,
            }
            if pool is not None
            else None
        )

        if learner is None:
            learner = await self.store.get_or_create_user(address)
        try:
            completion = await self.store.create_completion(learner.id, quest_id)
        except DuplicateCompletion as exc:
            logger.info("quest_completion_duplicate", wallet=address, quest_id=quest_id)
            raise AlreadyCompleted from exc
        completion_data = completion_to_dict(completion)
        await self.db.commit()

        logger.info("quest_completed", wallet=address, quest_id=quest_id, pool_id=pool_id)
        ticket = self.issuer.issue_claim_ticket(address, quest_id, reward, pool_id)

        return {
            "completion": completion_data,
            "reward": reward,
            "ticket": ticket.to_dict() if ticket is not None else None,
            "pool_id": pool_id,
            "uses_pool": pool_id is not None,
            "funding_pool": funding_pool,
        }

    async def reissue_ticket(self, wallet_address: str, quest_id: str) -> dict[str, Any]:
        """Mint a fresh ticket for a completed, unclaimed quest. Read-only against the store."""
        address = normalize_address(wallet_address)
        await self._unclaimed_completion(address, quest_id)
        ctx = await self.evaluator.check_claim_eligibility(quest_id)
        pool_id = ctx.pool.id if ctx.pool is not None else None

        ticket = self.issuer.issue_claim_ticket(address, quest_id, ctx.reward, pool_id)
        if ticket is None:
            raise SigningUnavailable
        return {
            "reward": ctx.reward,
            "ticket": ticket.to_dict(),
            "pool_id": pool_id,
            "uses_pool": pool_id is not None,
        }

    # --- Phase 2 ---

    async def confirm_claim(
        self,
        wallet_address: str,
        quest_id: str,
        tx_hash: str | None = None,
    ) -> dict[str, Any]:
        """Mark the reward claimed, charge the pool, and write the claim record, atomically.

        The claimed flag is flipped first with a conditional update, which
        serializes concurrent confirmations of the same pair. The pool
        decrement is a compare-and-decrement; the participant cap is
        re-counted after it, while the pool row is locked.
        """
        address = normalize_address(wallet_address)
        completion = await self._unclaimed_completion(address, quest_id)
        user_id = completion.user_id

        ctx = await self.evaluator.check_claim_eligibility(quest_id)
        amount: Decimal = ctx.reward
        pool = ctx.pool
        pool_id = pool.id if pool is not None else None
        max_participants = pool.max_participants if pool is not None else None
        course_name = pool.course_name if pool is not None else None

        remaining: Decimal | None = None
        try:
            if not await self.store.conditional_mark_claimed(user_id, quest_id):
                raise AlreadyClaimed
            if pool_id is not None:
                try:
                    remaining = await self.accountant.apply_claim(pool_id, amount)
                except InsufficientBalance as exc:
                    raise PoolInsufficientFunds from exc
                if await self.store.count_claims_for_pool(pool_id) >= max_participants:
                    raise PoolFull
            record = await self.store.create_claim_record(
                wallet=address,
                quest_id=quest_id,
                amount=amount,
                tx_hash=tx_hash,
                pool_id=pool_id,
            )
            record_data = claim_record_to_dict(record)
            await self.db.commit()
        except RewardError as exc:
            await self.db.rollback()
            logger.info("claim_rejected", wallet=address, quest_id=quest_id, code=exc.code)
            raise
        except Exception:
            await self.db.rollback()
            logger.error("claim_failed", wallet=address, quest_id=quest_id, exc_info=True)
            raise

        logger.info(
            "claim_confirmed",
            wallet=address,
            quest_id=quest_id,
            pool_id=pool_id,
            amount=str(amount),
            tx_hash=tx_hash,
        )
        return {
            "claim_record": record_data,
            "remaining_pool_balance": remaining,
            "from_pool": (
                {"pool_id": pool_id, "course_name": course_name, "remaining": remaining}
                if pool_id is not None
                else None
            ),
        }

    # --- helpers ---

    async def _unclaimed_completion(self, address: str, quest_id: str) -> CompletedQuest:
        learner = await self.store.find_user_by_address(address)
        if learner is None:
            raise NotCompleted
        completion = await self.store.find_completion(learner.id, quest_id)
        if completion is None:
            raise NotCompleted
        if completion.reward_claimed:
            raise AlreadyClaimed
        return completion
