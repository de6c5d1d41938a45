"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from edufund.companies.router import router as companies_router
from edufund.config import Settings, get_settings
from edufund.database import close_db, init_db
from edufund.dependencies import get_ticket_issuer
from edufund.health.router import router as health_router
from edufund.middleware import setup_middleware
from edufund.quests.router import router as quests_router
from edufund.redis_client import close_redis, init_redis
from edufund.rewards.router import router as rewards_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    issuer = get_ticket_issuer()
    logger.info(
        "service_started",
        environment=settings.environment,
        signer=issuer.signing_key.address,
        signing_available=issuer.signing_key.is_present,
    )

    yield

    await close_db()
    await close_redis()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Outside development, refuses to build an app whose auth settings are
    still at their defaults.
    """
    settings = settings or get_settings()
    if settings.environment != "development":
        problems = settings.insecure_defaults()
        if problems:
            raise RuntimeError(f"Refusing to start in {settings.environment}: " + "; ".join(problems))

    app = FastAPI(
        title="EduFund API",
        description="Learn-to-earn backend: quests, signed claim tickets and company funding pools",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(quests_router)
    app.include_router(rewards_router)
    app.include_router(companies_router)

    return app


app = create_app()
