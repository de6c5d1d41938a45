"""Company funding pools: creation, listing, detail and closing.

A pool is always paired with a quest created alongside it; the quest's
reward equals the pool's ``reward_per_student``. Pools are never deleted.
Closing one deactivates it and unpublishes its quest so no new completions
or claims can start; claim records and claimed completions are kept.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from web3 import Web3

from edufund.config import get_settings
from edufund.db.models import Company, FundingPool, Quest, Reward
from edufund.rewards.orchestrator import claim_record_to_dict
from edufund.rewards.pool_accountant import PoolAccountant, validate_pool_terms
from edufund.rewards.store import ClaimStore
from edufund.rewards.tickets import identifier_hash

logger = structlog.get_logger()

POOL_QUEST_DIFFICULTY = "intermediate"
RECENT_CLAIMS_LIMIT = 50


def _format_amount(amount: Decimal) -> str:
    return format(amount.normalize(), "f")


def default_description(course_name: str, reward: Decimal, company_name: str) -> str:
    symbol = get_settings().token_symbol
    return f"Learn {course_name} and earn {_format_amount(reward)} {symbol}. Funded by {company_name}."


def default_content(course_name: str, reward: Decimal, company_name: str) -> str:
    symbol = get_settings().token_symbol
    return (
        f"Complete this course to earn {_format_amount(reward)} {symbol}!\n\n"
        f"This learning opportunity is funded by {company_name}.\n\n"
        f"Course: {course_name}"
    )


def pool_to_dict(pool: FundingPool, participants: int) -> dict[str, Any]:
    return {
        "id": pool.id,
        "company_id": pool.company_id,
        "quest_id": pool.quest_id,
        "course_name": pool.course_name,
        "total_fund": pool.total_fund,
        "reward_per_student": pool.reward_per_student,
        "max_participants": pool.max_participants,
        "remaining_balance": pool.remaining_balance,
        "active": pool.active,
        "contract_address": pool.contract_address,
        "created_at": pool.created_at,
        "closed_at": pool.closed_at,
        "participants": participants,
        "remaining_slots": max(0, pool.max_participants - participants),
        "pool_id_bytes": Web3.to_hex(identifier_hash(pool.id)),
    }


async def create_pool(
    db: AsyncSession,
    company: Company,
    course_name: str,
    total_fund: Decimal,
    reward_per_student: Decimal,
    max_participants: int,
    description: str | None = None,
    content: str | None = None,
) -> dict[str, Any]:
    """Create a pool and its quest. Raises PoolTermsError for unfundable terms."""
    validate_pool_terms(total_fund, reward_per_student, max_participants)
    settings = get_settings()
    now = datetime.now(timezone.utc)

    quest = Quest(
        title=course_name,
        description=description or default_description(course_name, reward_per_student, company.name),
        reward=reward_per_student,
        difficulty=POOL_QUEST_DIFFICULTY,
        content=content or default_content(course_name, reward_per_student, company.name),
        is_published=True,
        created_at=now,
        updated_at=now,
    )
    db.add(quest)
    await db.flush()

    pool = FundingPool(
        company_id=company.id,
        quest_id=quest.id,
        course_name=course_name,
        total_fund=total_fund,
        reward_per_student=reward_per_student,
        max_participants=max_participants,
        remaining_balance=total_fund,
        active=True,
        contract_address=settings.company_pool_contract,
        created_at=now,
    )
    db.add(pool)
    await db.flush()

    logger.info(
        "pool_created",
        pool_id=pool.id,
        quest_id=quest.id,
        company_id=company.id,
        total_fund=str(total_fund),
        max_participants=max_participants,
    )
    pool_data = pool_to_dict(pool, participants=0)
    return {
        "pool": pool_data,
        "quest": {
            "id": quest.id,
            "title": quest.title,
            "description": quest.description,
            "reward": quest.reward,
            "difficulty": quest.difficulty,
            "content": quest.content,
        },
        "pool_id_bytes": pool_data["pool_id_bytes"],
        "instructions": {
            "step1": f"Approve {settings.token_symbol} spending",
            "step2": "Call createPool on contract",
            "contract_address": settings.company_pool_contract,
        },
    }


async def list_pools(db: AsyncSession, company_id: str) -> list[dict[str, Any]]:
    """The company's pools, newest first, each with its participant count."""
    result = await db.execute(
        select(FundingPool, func.count(Reward.id))
        .outerjoin(Reward, Reward.pool_id == FundingPool.id)
        .where(FundingPool.company_id == company_id)
        .group_by(FundingPool.id)
        .order_by(FundingPool.created_at.desc())
    )
    return [pool_to_dict(pool, participants) for pool, participants in result.all()]


async def _company_pool(db: AsyncSession, company_id: str, pool_id: str) -> FundingPool | None:
    result = await db.execute(
        select(FundingPool)
        .where(FundingPool.id == pool_id, FundingPool.company_id == company_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_pool(db: AsyncSession, company_id: str, pool_id: str) -> dict[str, Any] | None:
    """One of the company's pools with its most recent claim records, or None."""
    pool = await _company_pool(db, company_id, pool_id)
    if pool is None:
        return None
    store = ClaimStore(db)
    data = pool_to_dict(pool, await store.count_claims_for_pool(pool.id))
    data["recent_claims"] = [
        claim_record_to_dict(r) for r in await store.list_claims_for_pool(pool.id, limit=RECENT_CLAIMS_LIMIT)
    ]
    return data


async def close_pool(db: AsyncSession, company_id: str, pool_id: str) -> dict[str, Any] | None:
    """Deactivate a pool and withdraw its quest. Returns None for pools the company does not own.

    Idempotent: closing an inactive pool changes nothing and reports the same refund.
    """
    pool = await _company_pool(db, company_id, pool_id)
    if pool is None:
        return None

    store = ClaimStore(db)
    closed = await PoolAccountant(store).deactivate(pool.id)
    removed = 0
    if closed and pool.quest_id is not None:
        await db.execute(
            update(Quest)
            .where(Quest.id == pool.quest_id)
            .values(is_published=False, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        removed = await store.delete_unclaimed_completions(pool.quest_id)

    balance = await store.get_pool_balance(pool.id) or Decimal(0)
    refund = max(balance, Decimal(0))
    if closed:
        logger.info(
            "pool_closed",
            pool_id=pool.id,
            quest_id=pool.quest_id,
            refund_available=str(refund),
            removed_completions=removed,
        )
    return {
        "pool_id": pool.id,
        "closed": closed,
        "refund_available": refund,
        "removed_completions": removed,
    }
