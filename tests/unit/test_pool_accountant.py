"""Pool terms validation and the compare-and-decrement accountant."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from edufund.db.models import FundingPool
from edufund.rewards.exceptions import InsufficientBalance
from edufund.rewards.pool_accountant import PoolAccountant, PoolTermsError, validate_pool_terms
from edufund.rewards.store import ClaimStore
from tests.helpers import make_pool


class TestValidatePoolTerms:
    def test_exactly_funded_accepted(self):
        validate_pool_terms(Decimal(100), Decimal(10), 10)

    def test_overfunded_accepted(self):
        validate_pool_terms(Decimal(150), Decimal(10), 10)

    def test_underfunded_rejected(self):
        with pytest.raises(PoolTermsError, match="Total fund must be >="):
            validate_pool_terms(Decimal(99), Decimal(10), 10)

    @pytest.mark.parametrize(
        ("total", "reward", "max_participants"),
        [(Decimal(0), Decimal(1), 1), (Decimal(10), Decimal(0), 1), (Decimal(10), Decimal(-1), 1), (Decimal(10), Decimal(1), 0)],
    )
    def test_non_positive_terms_rejected(self, total, reward, max_participants):
        with pytest.raises(PoolTermsError):
            validate_pool_terms(total, reward, max_participants)

    def test_is_a_value_error(self):
        assert issubclass(PoolTermsError, ValueError)


async def _balance(session, pool_id: str) -> Decimal:
    result = await session.execute(
        select(FundingPool.remaining_balance).where(FundingPool.id == pool_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestApplyClaim:
    @pytest.mark.asyncio
    async def test_decrements_balance(self, db_session):
        pool = await make_pool(db_session, total_fund=100, reward_per_student=10)
        remaining = await PoolAccountant(ClaimStore(db_session)).apply_claim(pool.id, Decimal(10))
        await db_session.commit()
        assert remaining == Decimal(90)
        assert await _balance(db_session, pool.id) == Decimal(90)

    @pytest.mark.asyncio
    async def test_can_drain_to_zero(self, db_session):
        pool = await make_pool(db_session, total_fund=20, reward_per_student=10, max_participants=2)
        accountant = PoolAccountant(ClaimStore(db_session))
        await accountant.apply_claim(pool.id, Decimal(10))
        remaining = await accountant.apply_claim(pool.id, Decimal(10))
        assert remaining == Decimal(0)

    @pytest.mark.asyncio
    async def test_insufficient_balance_leaves_pool_untouched(self, db_session):
        pool = await make_pool(db_session, remaining_balance=5)
        pool_id = pool.id
        with pytest.raises(InsufficientBalance):
            await PoolAccountant(ClaimStore(db_session)).apply_claim(pool_id, Decimal(10))
        await db_session.rollback()
        assert await _balance(db_session, pool_id) == Decimal(5)

    @pytest.mark.asyncio
    async def test_closed_pool_refuses(self, db_session):
        pool = await make_pool(db_session)
        accountant = PoolAccountant(ClaimStore(db_session))
        assert await accountant.deactivate(pool.id) is True
        with pytest.raises(InsufficientBalance):
            await accountant.apply_claim(pool.id, Decimal(10))

    @pytest.mark.asyncio
    async def test_stale_readers_cannot_both_spend_the_last_reward(self, db_factory):
        """Two sessions both read a balance covering one claim; only one decrement lands."""
        async with db_factory() as setup:
            pool = await make_pool(setup, total_fund=100, reward_per_student=10, remaining_balance=10)
            pool_id = pool.id

        async with db_factory() as first, db_factory() as second:
            # Both observe a sufficient balance before either writes
            assert await _balance(first, pool_id) == Decimal(10)
            assert await _balance(second, pool_id) == Decimal(10)

            remaining = await PoolAccountant(ClaimStore(first)).apply_claim(pool_id, Decimal(10))
            await first.commit()
            assert remaining == Decimal(0)

            with pytest.raises(InsufficientBalance):
                await PoolAccountant(ClaimStore(second)).apply_claim(pool_id, Decimal(10))
            await second.rollback()

        async with db_factory() as check:
            assert await _balance(check, pool_id) == Decimal(0)


class TestDeactivate:
    @pytest.mark.asyncio
    async def test_second_deactivation_is_noop(self, db_session):
        pool = await make_pool(db_session)
        accountant = PoolAccountant(ClaimStore(db_session))
        assert await accountant.deactivate(pool.id) is True
        assert await accountant.deactivate(pool.id) is False
        await db_session.commit()

        result = await db_session.execute(
            select(FundingPool).where(FundingPool.id == pool.id).execution_options(populate_existing=True)
        )
        closed = result.scalar_one()
        assert closed.active is False
        assert closed.closed_at is not None
