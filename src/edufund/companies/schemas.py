"""Request/response schemas for company accounts and funding pools."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, field_validator

from edufund.rewards.schemas import ClaimRecordResponse


class CompanyRegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    wallet_address: str = Field(..., min_length=40, max_length=42)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class CompanyLoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower().strip()


class CompanyResponse(BaseModel):
    id: str
    name: str
    email: str
    wallet_address: str
    created_at: datetime


class CompanyTokenResponse(BaseModel):
    """Bearer token returned after register or login."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    company: CompanyResponse


class CreatePoolRequest(BaseModel):
    course_name: str = Field(..., min_length=1, max_length=200)
    total_fund: Decimal = Field(..., gt=0, max_digits=38, decimal_places=18)
    reward_per_student: Decimal = Field(..., gt=0, max_digits=38, decimal_places=18)
    max_participants: int = Field(..., ge=1)
    description: str | None = None
    content: str | None = None


class PoolResponse(BaseModel):
    id: str
    company_id: str
    quest_id: str | None = None
    course_name: str
    total_fund: float
    reward_per_student: float
    max_participants: int
    remaining_balance: float
    active: bool
    contract_address: str | None = None
    created_at: datetime
    closed_at: datetime | None = None
    participants: int
    remaining_slots: int
    pool_id_bytes: str


class PoolQuestResponse(BaseModel):
    id: str
    title: str
    description: str
    reward: float
    difficulty: str
    content: str


class PoolInstructions(BaseModel):
    step1: str
    step2: str
    contract_address: str


class CreatePoolResponse(BaseModel):
    message: str = "Funding pool and quest created successfully"
    pool: PoolResponse
    quest: PoolQuestResponse
    pool_id_bytes: str
    instructions: PoolInstructions


class PoolListResponse(BaseModel):
    pools: list[PoolResponse]


class PoolDetailResponse(PoolResponse):
    recent_claims: list[ClaimRecordResponse]


class ClosePoolResponse(BaseModel):
    message: str
    pool_id: str
    closed: bool
    refund_available: float
    removed_completions: int
