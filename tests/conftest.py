"""Shared test fixtures.

Tests run against a throwaway SQLite file per test (aiosqlite), so no
PostgreSQL or Redis server is needed. Redis stays uninitialized, which makes
the rate limiter pass requests through.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator

# Settings are cached on first use; point them at test values before any edufund import.
os.environ["EDUFUND_DATABASE_URL"] = f"sqlite+aiosqlite:///{tempfile.mkdtemp(prefix='edufund_test_')}/default.db"
os.environ["EDUFUND_JWT_SECRET"] = "test-jwt-secret-with-enough-length-for-hs256"
os.environ["EDUFUND_LOG_FORMAT"] = "console"
os.environ["EDUFUND_ADMIN_API_KEY"] = ""
os.environ.pop("EDUFUND_SIGNER_PRIVATE_KEY", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from edufund.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from edufund.db.base import Base  # noqa: E402
from edufund.dependencies import get_ticket_issuer  # noqa: E402
from edufund.rewards.signer import SigningKey  # noqa: E402
from edufund.rewards.tickets import TicketIssuer  # noqa: E402
from tests.helpers import SIGNER_KEY  # noqa: E402


@pytest_asyncio.fixture
async def db_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh schema in a per-test SQLite file; yields the session factory."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path}/edufund.db")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield get_session_factory()
    await close_db()


@pytest_asyncio.fixture
async def db_session(db_factory) -> AsyncGenerator[AsyncSession, None]:
    async with db_factory() as session:
        yield session


@pytest.fixture
def signing_key() -> SigningKey:
    return SigningKey(SIGNER_KEY)


@pytest.fixture
def issuer(signing_key: SigningKey) -> TicketIssuer:
    return TicketIssuer(signing_key)


@pytest.fixture
def unsigned_issuer() -> TicketIssuer:
    return TicketIssuer(SigningKey.absent())


@pytest_asyncio.fixture
async def client(db_factory, issuer: TicketIssuer) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the ASGI app with a present signing key.

    ASGITransport does not run the lifespan; `db_factory` has already initialized the database.
    """
    from edufund.main import create_app

    app = create_app()
    app.dependency_overrides[get_ticket_issuer] = lambda: issuer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def unsigned_client(db_factory, unsigned_issuer: TicketIssuer) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose ticket issuer has no signing key."""
    from edufund.main import create_app

    app = create_app()
    app.dependency_overrides[get_ticket_issuer] = lambda: unsigned_issuer
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
