"""Read-side views: learner profiles and reward history."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from edufund.rewards.orchestrator import claim_record_to_dict
from edufund.rewards.store import ClaimStore
from edufund.rewards.tickets import normalize_address


async def get_learner_profile(db: AsyncSession, wallet_address: str) -> dict:
    """Learner with completed quests (newest first). Unknown wallets get an empty profile."""
    address = normalize_address(wallet_address)
    store = ClaimStore(db)
    user = await store.find_user_by_address(address)
    if user is None:
        return {
            "id": None,
            "wallet_address": address,
            "completed_quests": [],
            "total_rewards": Decimal(0),
            "created_at": None,
        }

    completions = await store.list_completions_for_user(user.id)
    completed = [
        {
            "id": cq.id,
            "quest_id": cq.quest_id,
            "completed_at": cq.completed_at,
            "reward_claimed": cq.reward_claimed,
            "quest": {
                "id": cq.quest.id,
                "title": cq.quest.title,
                "reward": cq.quest.reward,
                "difficulty": cq.quest.difficulty,
            },
        }
        for cq in completions
    ]
    return {
        "id": user.id,
        "wallet_address": user.wallet_address,
        "completed_quests": completed,
        "total_rewards": sum((cq.quest.reward for cq in completions), Decimal(0)),
        "created_at": user.created_at,
    }


async def get_reward_history(db: AsyncSession, wallet_address: str) -> dict:
    """All claim records for a wallet, newest first, with the claimed total."""
    address = normalize_address(wallet_address)
    records = await ClaimStore(db).list_claims_for_wallet(address)
    return {
        "rewards": [claim_record_to_dict(r) for r in records],
        "total_claimed": sum((r.amount for r in records), Decimal(0)),
        "count": len(records),
    }
