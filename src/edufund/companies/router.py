"""Company account and funding pool endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.auth.dependencies import get_current_company
from edufund.auth.jwt import create_company_token
from edufund.auth.password import PasswordStrengthError
from edufund.companies import pools as pool_service
from edufund.companies.schemas import (
    ClosePoolResponse,
    CompanyLoginRequest,
    CompanyRegisterRequest,
    CompanyResponse,
    CompanyTokenResponse,
    CreatePoolRequest,
    CreatePoolResponse,
    PoolDetailResponse,
    PoolListResponse,
)
from edufund.companies.service import authenticate_company, register_company
from edufund.config import get_settings
from edufund.database import get_session
from edufund.db.models import Company
from edufund.rewards.pool_accountant import PoolTermsError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Companies"])


def _token_response(company: Company) -> CompanyTokenResponse:
    settings = get_settings()
    return CompanyTokenResponse(
        access_token=create_company_token(company.id, company.email),
        expires_in=settings.jwt_expire_days * 86400,
        company=CompanyResponse(
            id=company.id,
            name=company.name,
            email=company.email,
            wallet_address=company.wallet_address,
            created_at=company.created_at,
        ),
    )


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@router.post("/company/register", response_model=CompanyTokenResponse, status_code=201)
async def register(
    body: CompanyRegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> CompanyTokenResponse:
    try:
        company = await register_company(
            db,
            name=body.name,
            email=body.email,
            wallet_address=body.wallet_address,
            password=body.password,
        )
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        detail = str(e)
        if "already registered" in detail.lower():
            raise HTTPException(status_code=409, detail=detail) from e
        raise HTTPException(status_code=400, detail=detail) from e

    response = _token_response(company)
    await db.commit()
    return response


@router.post("/company/login", response_model=CompanyTokenResponse)
async def login(
    body: CompanyLoginRequest,
    db: AsyncSession = Depends(get_session),
) -> CompanyTokenResponse:
    try:
        company = await authenticate_company(db, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return _token_response(company)


# ---------------------------------------------------------------------------
# Funding pools
# ---------------------------------------------------------------------------


@router.post("/pools", response_model=CreatePoolResponse, status_code=201)
async def create_pool(
    body: CreatePoolRequest,
    company: Company = Depends(get_current_company),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Create a funding pool and the quest it pays for."""
    try:
        created = await pool_service.create_pool(
            db,
            company,
            course_name=body.course_name,
            total_fund=body.total_fund,
            reward_per_student=body.reward_per_student,
            max_participants=body.max_participants,
            description=body.description,
            content=body.content,
        )
    except PoolTermsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return created


@router.get("/pools", response_model=PoolListResponse)
async def list_pools(
    company: Company = Depends(get_current_company),
    db: AsyncSession = Depends(get_session),
) -> dict:
    return {"pools": await pool_service.list_pools(db, company.id)}


@router.get("/pools/{pool_id}", response_model=PoolDetailResponse)
async def pool_detail(
    pool_id: str,
    company: Company = Depends(get_current_company),
    db: AsyncSession = Depends(get_session),
) -> dict:
    pool = await pool_service.get_pool(db, company.id, pool_id)
    if pool is None:
        raise HTTPException(status_code=404, detail="Pool not found")
    return pool


@router.delete("/pools/{pool_id}", response_model=ClosePoolResponse)
async def close_pool(
    pool_id: str,
    company: Company = Depends(get_current_company),
    db: AsyncSession = Depends(get_session),
) -> dict:
    """Close a pool: deactivate it, withdraw its quest, and report the refundable balance."""
    try:
        result = await pool_service.close_pool(db, company.id, pool_id)
        if result is None:
            raise HTTPException(status_code=404, detail="Pool not found")
        await db.commit()
    except HTTPException:
        raise
    except Exception:
        await db.rollback()
        logger.error("pool_close_failed", pool_id=pool_id, exc_info=True)
        raise
    message = "Pool closed and quest withdrawn" if result["closed"] else "Pool already closed"
    return {"message": message, **result}
