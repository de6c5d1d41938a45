"""Funding pool accounting.

Invariants: ``0 <= remaining_balance <= total_fund`` always, and
``total_fund >= reward_per_student * max_participants`` at creation. The
balance only ever moves through ``apply_claim``, a compare-and-decrement.
Participant count is not stored; it is the number of claim records
referencing the pool.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from edufund.rewards.exceptions import InsufficientBalance
from edufund.rewards.store import ClaimStore

logger = structlog.get_logger()


class PoolTermsError(ValueError):
    """Raised when requested pool terms violate the funding invariants."""


def validate_pool_terms(total_fund: Decimal, reward_per_student: Decimal, max_participants: int) -> None:
    if total_fund <= 0 or reward_per_student <= 0:
        msg = "Total fund and reward per student must be positive"
        raise PoolTermsError(msg)
    if max_participants < 1:
        msg = "Max participants must be at least 1"
        raise PoolTermsError(msg)
    if total_fund < reward_per_student * max_participants:
        msg = "Total fund must be >= reward per student × max participants"
        raise PoolTermsError(msg)


class PoolAccountant:
    def __init__(self, store: ClaimStore) -> None:
        self.store = store

    async def apply_claim(self, pool_id: str, amount: Decimal) -> Decimal:
        """Atomically take `amount` from the pool and return the new balance.

        Raises InsufficientBalance, leaving the pool untouched, when the
        balance no longer covers `amount` or the pool has been closed.
        """
        if not await self.store.conditional_decrement_pool_balance(pool_id, amount):
            logger.info("pool_decrement_refused", pool_id=pool_id, amount=str(amount))
            raise InsufficientBalance
        remaining = await self.store.get_pool_balance(pool_id)
        logger.info("pool_balance_decremented", pool_id=pool_id, amount=str(amount), remaining=str(remaining))
        return remaining if remaining is not None else Decimal(0)

    async def deactivate(self, pool_id: str) -> bool:
        """Flip ``active`` off. Returns False if the pool was already inactive."""
        closed = await self.store.conditional_deactivate_pool(pool_id)
        if closed:
            logger.info("pool_deactivated", pool_id=pool_id)
        return closed
