"""Completion and claim endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.database import get_session
from edufund.dependencies import get_ticket_issuer
from edufund.rewards.history import get_learner_profile, get_reward_history
from edufund.rewards.orchestrator import ClaimOrchestrator
from edufund.rewards.schemas import (
    ClaimRequest,
    CompleteQuestResponse,
    ConfirmClaimResponse,
    LearnerProfileResponse,
    ReissueTicketResponse,
    RewardHistoryResponse,
    WalletRequest,
)
from edufund.rewards.tickets import TicketIssuer

router = APIRouter(prefix="/api/v1", tags=["Rewards"])


@router.post("/quests/{quest_id}/complete", response_model=CompleteQuestResponse, status_code=201)
async def complete_quest(
    quest_id: str,
    body: WalletRequest,
    db: AsyncSession = Depends(get_session),
    issuer: TicketIssuer = Depends(get_ticket_issuer),
) -> dict:
    """Record a completion and return a signed claim ticket (null if signing is unavailable)."""
    return await ClaimOrchestrator(db, issuer).complete_quest(body.wallet_address, quest_id)


@router.post("/quests/{quest_id}/ticket", response_model=ReissueTicketResponse)
async def reissue_ticket(
    quest_id: str,
    body: WalletRequest,
    db: AsyncSession = Depends(get_session),
    issuer: TicketIssuer = Depends(get_ticket_issuer),
) -> dict:
    """Issue a fresh ticket for a completed quest whose reward is still unclaimed."""
    return await ClaimOrchestrator(db, issuer).reissue_ticket(body.wallet_address, quest_id)


@router.post("/rewards/claim", response_model=ConfirmClaimResponse, status_code=201)
async def confirm_claim(
    body: ClaimRequest,
    db: AsyncSession = Depends(get_session),
    issuer: TicketIssuer = Depends(get_ticket_issuer),
) -> dict:
    """Confirm a claim once its ticket has been submitted to the ledger."""
    return await ClaimOrchestrator(db, issuer).confirm_claim(body.wallet_address, body.quest_id, body.tx_hash)


@router.get("/rewards/{wallet_address}", response_model=RewardHistoryResponse)
async def reward_history(
    wallet_address: str,
    db: AsyncSession = Depends(get_session),
) -> dict:
    return await get_reward_history(db, wallet_address)


@router.get("/users/{wallet_address}", response_model=LearnerProfileResponse)
async def learner_profile(
    wallet_address: str,
    db: AsyncSession = Depends(get_session),
) -> dict:
    return await get_learner_profile(db, wallet_address)
