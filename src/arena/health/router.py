"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from arena.config import get_settings
from arena.database import get_session
from arena.db.models import Match

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe, 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    response: Response,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: the database answers and the arena schema is migrated."""
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
        await db.execute(select(Match.id).limit(1))
        checks["schema"] = "ok"
    except SQLAlchemyError as exc:
        checks.setdefault("database", f"error: {type(exc).__name__}")
        checks.setdefault("schema", "unknown")
        if checks["database"] == "ok":
            checks["schema"] = "missing"

    if all(v == "ok" for v in checks.values()):
        return {"status": "ready", "checks": checks}
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {"status": "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
