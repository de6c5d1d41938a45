"""Quest catalog endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.database import get_session
from edufund.dependencies import require_admin_key
from edufund.quests.schemas import CreateQuestRequest, QuestListResponse, QuestResponse
from edufund.quests.service import create_quest, get_quest, list_quests

router = APIRouter(prefix="/api/v1/quests", tags=["Quests"])


@router.get("", response_model=QuestListResponse)
async def quest_catalog(db: AsyncSession = Depends(get_session)) -> dict:
    """Published quests, newest first, with the funding pool status of each."""
    return {"quests": await list_quests(db)}


@router.get("/{quest_id}", response_model=QuestResponse)
async def quest_detail(quest_id: str, db: AsyncSession = Depends(get_session)) -> dict:
    return await get_quest(db, quest_id)


@router.post(
    "",
    response_model=QuestResponse,
    status_code=201,
    dependencies=[Depends(require_admin_key)],
)
async def new_quest(body: CreateQuestRequest, db: AsyncSession = Depends(get_session)) -> dict:
    quest = await create_quest(
        db,
        title=body.title,
        description=body.description,
        reward=body.reward,
        difficulty=body.difficulty,
        content=body.content,
    )
    await db.commit()
    return await get_quest(db, quest.id)
