"""Shared FastAPI dependencies."""

import hmac
from functools import lru_cache

from fastapi import Header, HTTPException

from edufund.config import get_settings
from edufund.rewards.signer import SigningKey
from edufund.rewards.tickets import TicketIssuer


@lru_cache
def get_ticket_issuer() -> TicketIssuer:
    """Process-wide ticket issuer holding the configured signing key."""
    settings = get_settings()
    return TicketIssuer(
        SigningKey.from_settings(settings),
        decimals=settings.token_decimals,
        treasury_contract=settings.treasury_contract,
        pool_contract=settings.company_pool_contract,
    )


async def require_admin_key(x_admin_key: str | None = Header(default=None)) -> None:
    """Guard admin-only routes with the ``X-Admin-Key`` header.

    Open when no admin key is configured (local development).
    """
    expected = get_settings().admin_api_key
    if not expected:
        return
    if x_admin_key is None or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
