"""Admin audit log endpoint."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from arena.audit.service import list_logs
from arena.auth.dependencies import Principal, require_admin
from arena.database import get_session

router = APIRouter(prefix="/api/v1/admin", tags=["Admin: Logs"])


class LogEntryResponse(BaseModel):
    id: int
    created_at: datetime
    actor: str
    action: str
    details: str


@router.get("/logs", response_model=list[LogEntryResponse])
async def admin_logs_endpoint(
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Latest actions, newest first."""
    entries = await list_logs(db)
    return [
        LogEntryResponse(
            id=entry.id,
            created_at=entry.created_at,
            actor=actor,
            action=entry.action,
            details=entry.details,
        )
        for entry, actor in entries
    ]
