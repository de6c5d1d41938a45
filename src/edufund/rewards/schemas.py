"""Request/response schemas for completion and claim endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class WalletRequest(BaseModel):
    """Body for completing a quest or reissuing its ticket."""

    wallet_address: str = Field(..., min_length=40, max_length=42)


class ClaimRequest(BaseModel):
    """Confirm a claim after the ticket was redeemed on-chain."""

    wallet_address: str = Field(..., min_length=40, max_length=42)
    quest_id: str = Field(..., min_length=1, max_length=36)
    tx_hash: str | None = Field(None, max_length=66)


class ClaimTicketResponse(BaseModel):
    signature: str
    digest: str
    quest_id_bytes: str
    pool_id_bytes: str | None = None
    use_company_pool: bool
    signer: str
    contract_address: str | None = None


class CompletionResponse(BaseModel):
    id: str
    user_id: str
    quest_id: str
    reward_claimed: bool
    completed_at: datetime


class FundingPoolSummary(BaseModel):
    id: str
    course_name: str
    reward_per_student: float


class CompleteQuestResponse(BaseModel):
    message: str = "Quest completed successfully"
    completion: CompletionResponse
    reward: float
    ticket: ClaimTicketResponse | None = None
    pool_id: str | None = None
    uses_pool: bool
    funding_pool: FundingPoolSummary | None = None


class ReissueTicketResponse(BaseModel):
    reward: float
    ticket: ClaimTicketResponse
    pool_id: str | None = None
    uses_pool: bool


class ClaimRecordResponse(BaseModel):
    id: str
    wallet: str
    quest_id: str
    amount: float
    tx_hash: str | None = None
    pool_id: str | None = None
    claimed_at: datetime


class FromPool(BaseModel):
    pool_id: str
    course_name: str | None = None
    remaining: float | None = None


class ConfirmClaimResponse(BaseModel):
    message: str = "Reward claimed successfully"
    claim_record: ClaimRecordResponse
    remaining_pool_balance: float | None = None
    from_pool: FromPool | None = None


class RewardHistoryResponse(BaseModel):
    rewards: list[ClaimRecordResponse]
    total_claimed: float
    count: int


class ProfileQuest(BaseModel):
    id: str
    title: str
    reward: float
    difficulty: str


class ProfileCompletion(BaseModel):
    id: str
    quest_id: str
    completed_at: datetime
    reward_claimed: bool
    quest: ProfileQuest


class LearnerProfileResponse(BaseModel):
    id: str | None = None
    wallet_address: str
    completed_quests: list[ProfileCompletion]
    total_rewards: float
    created_at: datetime | None = None
