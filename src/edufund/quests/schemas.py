"""Request/response schemas for the quest catalog."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class CreateQuestRequest(BaseModel):
    """Administrator-created platform quest, paid from the treasury."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    reward: Decimal = Field(..., gt=0, max_digits=38, decimal_places=18)
    difficulty: str = Field(..., min_length=1, max_length=32)
    content: str = Field(..., min_length=1)


class PoolStatusResponse(BaseModel):
    has_pool: bool
    company_name: str | None = None
    is_full: bool = False
    is_out_of_funds: bool = False
    remaining_slots: int | None = None
    remaining_balance: float | None = None


class QuestResponse(BaseModel):
    id: str
    title: str
    description: str
    reward: float
    difficulty: str
    content: str
    created_at: datetime
    updated_at: datetime
    pool_status: PoolStatusResponse


class QuestListResponse(BaseModel):
    quests: list[QuestResponse]
