"""Best-effort action log.

Entries are written in their own session after the primary operation has
committed. A failed or slow write is logged and dropped: the audit trail is
not allowed to fail the request that produced it, and it delays the response
by at most ``audit_write_timeout_seconds``.
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.config import get_settings
from arena.db.models import ActionLog, User

logger = logging.getLogger(__name__)


def _truncate(details: str, max_length: int) -> str:
    details = details.strip()
    if len(details) > max_length:
        return details[:max_length]
    return details


async def _write_log(db: AsyncSession, actor_id: int | None, action: str, details: str) -> None:
    async with AsyncSession(db.bind, expire_on_commit=False) as log_db:
        log_db.add(ActionLog(actor_id=actor_id, action=action, details=details))
        await log_db.commit()


async def log_action(db: AsyncSession, actor_id: int | None, action: str, details: str = "") -> None:
    """Record an action. Never raises, and gives up after audit_write_timeout_seconds."""
    settings = get_settings()
    try:
        await asyncio.wait_for(
            _write_log(
                db,
                actor_id,
                action.strip(),
                _truncate(details, settings.audit_details_max_length),
            ),
            timeout=settings.audit_write_timeout_seconds,
        )
    except Exception:
        logger.warning("Audit log write failed for %s", action, exc_info=True)


async def list_logs(db: AsyncSession, limit: int | None = None) -> list[tuple[ActionLog, str]]:
    """Latest log entries with the actor's username, or "(deleted)"."""
    limit = limit or get_settings().audit_list_limit
    result = await db.execute(
        select(ActionLog, User.username)
        .outerjoin(User, User.id == ActionLog.actor_id)
        .order_by(ActionLog.id.desc())
        .limit(limit)
    )
    return [(row.ActionLog, row.username or "(deleted)") for row in result]
