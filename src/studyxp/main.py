"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from studyxp.config import get_settings
from studyxp.database import close_db, get_session, init_db
from studyxp.engagement.router import router as engagement_router
from studyxp.engagement.seed import seed_achievements
from studyxp.health.router import router as health_router
from studyxp.leaderboard.router import router as leaderboard_router
from studyxp.middleware import setup_middleware
from studyxp.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    if settings.seed_achievements_on_startup:
        try:
            async for db in get_session():
                await seed_achievements(db)
                break
        except Exception:
            logger.warning("Achievement seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="StudyXP API",
        description="Engagement engine for the student dashboard: streaks, XP, achievements, daily challenges",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(engagement_router)
    app.include_router(leaderboard_router)

    return app


app = create_app()
