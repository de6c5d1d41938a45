"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from edufund.auth.jwt import verify_company_token
from edufund.database import get_session
from edufund.db.models import Company

_bearer = HTTPBearer(auto_error=False)


async def get_current_company(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> Company:
    """Resolve the bearer token to a Company. Raises 401 on any failure."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        payload = verify_company_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    company = await db.get(Company, payload["sub"])
    if company is None:
        raise HTTPException(status_code=401, detail="Company not found")
    return company
