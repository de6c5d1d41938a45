"""Company accounts: registration and password login."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.auth.password import hash_password, validate_password_strength, verify_password
from edufund.db.models import Company
from edufund.rewards.tickets import normalize_address

logger = structlog.get_logger()


async def get_company_by_email(db: AsyncSession, email: str) -> Company | None:
    result = await db.execute(select(Company).where(Company.email == email.lower().strip()))
    return result.scalar_one_or_none()


async def get_company_by_wallet(db: AsyncSession, wallet_address: str) -> Company | None:
    result = await db.execute(select(Company).where(Company.wallet_address == wallet_address))
    return result.scalar_one_or_none()


async def register_company(
    db: AsyncSession,
    name: str,
    email: str,
    wallet_address: str,
    password: str,
) -> Company:
    """
    Register a funding company.

    Raises:
        PasswordStrengthError: If the password is too weak.
        InvalidWalletAddress: If the wallet is not an account address.
        ValueError: If the email or wallet is already registered.
    """
    validate_password_strength(password)
    address = normalize_address(wallet_address)
    email = email.lower().strip()

    if await get_company_by_email(db, email) is not None:
        msg = "Email already registered"
        raise ValueError(msg)
    if await get_company_by_wallet(db, address) is not None:
        msg = "Wallet address already registered"
        raise ValueError(msg)

    company = Company(
        name=name.strip(),
        email=email,
        wallet_address=address,
        password_hash=hash_password(password),
        created_at=datetime.now(timezone.utc),
    )
    db.add(company)
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        msg = "Company already registered"
        raise ValueError(msg) from e
    logger.info("company_registered", company_id=company.id, email=email)
    return company


async def authenticate_company(db: AsyncSession, email: str, password: str) -> Company:
    """
    Authenticate a company with email + password.

    Raises:
        ValueError: If credentials are invalid. The message does not reveal which part was wrong.
    """
    company = await get_company_by_email(db, email)
    if company is None or not verify_password(password, company.password_hash):
        logger.info("company_login_failed", email=email.lower().strip())
        msg = "Invalid email or password"
        raise ValueError(msg)
    logger.info("company_logged_in", company_id=company.id)
    return company
