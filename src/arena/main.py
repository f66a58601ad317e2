"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from arena.audit.router import router as audit_router
from arena.competition.router import admin_router as matches_admin_router
from arena.competition.router import router as matches_router
from arena.config import get_settings
from arena.database import close_db, get_session, init_db
from arena.errors import ArenaError
from arena.health.router import router as health_router
from arena.middleware import setup_middleware
from arena.teams.router import router as teams_router
from arena.users.router import admin_router as users_admin_router
from arena.users.router import router as users_router
from arena.users.service import bootstrap_admin

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)

    # Promote the configured operator account (idempotent)
    if settings.bootstrap_admin_username:
        try:
            async for db in get_session():
                await bootstrap_admin(db, settings.bootstrap_admin_username)
                break
        except (ArenaError, SQLAlchemyError):
            logger.warning("Admin bootstrap failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Arena API",
        description="Competition arena backend: teams, match applications and adjudication",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(users_admin_router)
    app.include_router(teams_router)
    app.include_router(matches_router)
    app.include_router(matches_admin_router)
    app.include_router(audit_router)

    return app


app = create_app()
