"""Test data builders and well-known keys."""

from __future__ import annotations

from decimal import Decimal

from eth_account import Account
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.db.models import Company, FundingPool, Quest

# Well-known development key (Hardhat/Anvil account #0). Never holds real funds.
SIGNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


def learner_address(n: int) -> str:
    """Deterministic, distinct account address for index `n` (n >= 1)."""
    return Account.from_key("0x" + f"{n:064x}").address


async def make_quest(db: AsyncSession, reward: Decimal | int = 7, title: str = "Intro to Wallets") -> Quest:
    quest = Quest(
        title=title,
        description="Learn how wallets hold keys",
        reward=Decimal(reward),
        difficulty="beginner",
        content="## Wallets",
    )
    db.add(quest)
    await db.commit()
    return quest


async def make_company(db: AsyncSession, n: int = 900, name: str = "Acme Learning") -> Company:
    company = Company(
        name=name,
        email=f"company{n}@example.com",
        wallet_address=learner_address(n),
        password_hash="not-a-real-hash",
    )
    db.add(company)
    await db.commit()
    return company


async def make_pool(
    db: AsyncSession,
    total_fund: int = 100,
    reward_per_student: int = 10,
    max_participants: int = 10,
    remaining_balance: int | None = None,
) -> FundingPool:
    """A company, a pool-funded quest, and the active pool backing it."""
    company = await make_company(db)
    quest = await make_quest(db, reward=reward_per_student, title="Sponsored Course")
    pool = FundingPool(
        company_id=company.id,
        quest_id=quest.id,
        course_name="Sponsored Course",
        total_fund=Decimal(total_fund),
        reward_per_student=Decimal(reward_per_student),
        max_participants=max_participants,
        remaining_balance=Decimal(total_fund if remaining_balance is None else remaining_balance),
        active=True,
    )
    db.add(pool)
    await db.commit()
    return pool
