"""Application registry: users asking to take part in a match."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arena.audit.service import log_action
from arena.competition.states import ApplicationStatus, MatchMode, MatchStatus
from arena.config import get_settings
from arena.database import atomic
from arena.db.models import Application, Match
from arena.errors import MatchNotFound, MatchNotOpen, NotTeamMember, TeamRequired
from arena.teams.service import is_team_member
from arena.users.service import lock_user

logger = logging.getLogger(__name__)


async def _find_application(db: AsyncSession, match_id: int, user_id: int) -> Application | None:
    result = await db.execute(
        select(Application).where(Application.match_id == match_id, Application.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def apply(
    db: AsyncSession,
    user_id: int,
    match_id: int,
    team_id: int | None = None,
) -> Application:
    """Apply to an open match.

    Team matches need a team the user belongs to; for solo matches any team_id
    is dropped. Applying twice returns the existing application unchanged.
    The applicant row is locked first, so a deleted account gets UserNotFound.
    """
    async with atomic(db, "apply"):
        await lock_user(db, user_id)
        result = await db.execute(select(Match).where(Match.id == match_id))
        match = result.scalar_one_or_none()
        if match is None:
            raise MatchNotFound()
        if match.status != MatchStatus.OPEN.value:
            raise MatchNotOpen()

        if match.mode == MatchMode.TEAM.value:
            if team_id is None:
                raise TeamRequired()
            if not await is_team_member(db, team_id, user_id):
                raise NotTeamMember()
        else:
            team_id = None

        application = await _find_application(db, match_id, user_id)
        if application is None:
            application = Application(
                match_id=match_id,
                user_id=user_id,
                team_id=team_id,
                status=ApplicationStatus.PENDING.value,
            )
            db.add(application)
            try:
                await db.flush()
            except IntegrityError:
                # A concurrent apply by the same user won the insert.
                await db.rollback()
                application = await _find_application(db, match_id, user_id)
                if application is None:
                    raise

    logger.info("User %d applied to match %d (application %d)", user_id, match_id, application.id)
    await log_action(db, user_id, "apply_match", f"match_id={match_id}")
    return application


async def list_mine(db: AsyncSession, user_id: int) -> dict[int, str]:
    """Map of match_id -> application status for a user."""
    result = await db.execute(
        select(Application.match_id, Application.status).where(Application.user_id == user_id)
    )
    return {row.match_id: row.status for row in result}


async def list_applications(
    db: AsyncSession,
    match_id: int | None = None,
    status: ApplicationStatus | None = None,
    limit: int | None = None,
) -> list[Application]:
    """Applications for the admin queue, newest first."""
    q = select(Application)
    if match_id is not None:
        q = q.where(Application.match_id == match_id)
    if status is not None:
        q = q.where(Application.status == status.value)
    q = q.order_by(Application.id.desc()).limit(limit or get_settings().application_list_limit)

    result = await db.execute(q)
    return list(result.scalars().all())
