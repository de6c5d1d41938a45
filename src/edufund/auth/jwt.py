"""Company session tokens.

HS256 tokens signed with ``jwt_secret``, carrying the company id as ``sub``
and ``type: "company"`` so no other token kind is accepted on company routes.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from edufund.config import get_settings

TOKEN_TYPE = "company"


def create_company_token(company_id: str, email: str) -> str:
    """Create a company session token valid for ``jwt_expire_days`` days."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": company_id,
        "email": email,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
        "iss": settings.jwt_issuer,
        "type": TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_company_token(token: str) -> dict[str, Any]:
    """Decode and validate a company token.

    Raises:
        jwt.InvalidTokenError: If the token is malformed, expired, from
            another issuer, or not a company token.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if payload.get("type") != TOKEN_TYPE:
        msg = f"Expected token type '{TOKEN_TYPE}', got '{payload.get('type')}'"
        raise jwt.InvalidTokenError(msg)
    return payload
