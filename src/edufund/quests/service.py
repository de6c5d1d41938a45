"""Quest catalog: listing with live pool status, lookup, and admin creation."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import structlog
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.db.models import Company, FundingPool, Quest, Reward
from edufund.rewards.eligibility import EligibilityEvaluator, PoolStatus, QuestContext
from edufund.rewards.store import ClaimStore

logger = structlog.get_logger()


def _pool_status(ctx: QuestContext, company: Company | None = None) -> dict:
    if ctx.pool is None or ctx.pool_status is None:
        return {"has_pool": False, "is_full": False, "is_out_of_funds": False}
    status = ctx.pool_status
    company = company or ctx.pool.company
    return {
        "has_pool": True,
        "company_name": company.name if company is not None else None,
        "is_full": status.is_full,
        "is_out_of_funds": status.is_out_of_funds,
        "remaining_slots": status.remaining_slots,
        "remaining_balance": status.remaining_balance,
    }


def quest_to_dict(ctx: QuestContext, company: Company | None = None) -> dict:
    quest = ctx.quest
    return {
        "id": quest.id,
        "title": quest.title,
        "description": quest.description,
        "reward": ctx.reward,
        "difficulty": quest.difficulty,
        "content": quest.content,
        "created_at": quest.created_at,
        "updated_at": quest.updated_at,
        "pool_status": _pool_status(ctx, company),
    }


async def list_quests(db: AsyncSession) -> list[dict]:
    """All published quests, newest first, each with its active pool's status.

    One round trip: quests outer-joined to their active pool (with its company)
    and that pool's claim count.
    """
    claims = (
        select(Reward.pool_id, func.count(Reward.id).label("claims"))
        .group_by(Reward.pool_id)
        .subquery()
    )
    result = await db.execute(
        select(Quest, FundingPool, Company, func.coalesce(claims.c.claims, 0))
        .outerjoin(FundingPool, and_(FundingPool.quest_id == Quest.id, FundingPool.active.is_(True)))
        .outerjoin(Company, Company.id == FundingPool.company_id)
        .outerjoin(claims, claims.c.pool_id == FundingPool.id)
        .where(Quest.is_published.is_(True))
        .order_by(Quest.created_at.desc(), FundingPool.created_at.desc())
    )

    quests: list[dict] = []
    seen: set[str] = set()
    for quest, pool, company, claim_count in result.all():
        # A quest with several active pools is paid from the newest one.
        if quest.id in seen:
            continue
        seen.add(quest.id)
        ctx = QuestContext(quest=quest, pool=pool)
        if pool is not None:
            ctx.pool_status = PoolStatus(
                claims=claim_count,
                max_participants=pool.max_participants,
                remaining_balance=pool.remaining_balance,
                reward_per_student=pool.reward_per_student,
            )
        quests.append(quest_to_dict(ctx, company))
    return quests


async def get_quest(db: AsyncSession, quest_id: str) -> dict:
    """Raises QuestNotFound for unknown or unpublished quests."""
    ctx = await EligibilityEvaluator(ClaimStore(db)).resolve(quest_id)
    return quest_to_dict(ctx)


async def create_quest(
    db: AsyncSession,
    title: str,
    description: str,
    reward: Decimal,
    difficulty: str,
    content: str,
) -> Quest:
    now = datetime.now(timezone.utc)
    quest = Quest(
        title=title,
        description=description,
        reward=reward,
        difficulty=difficulty,
        content=content,
        is_published=True,
        created_at=now,
        updated_at=now,
    )
    db.add(quest)
    await db.flush()
    logger.info("quest_created", quest_id=quest.id, reward=str(reward))
    return quest
