"""Adjudication: deciding applications and finishing matches.

Each operation is a single transaction. The status check, the participant
bookkeeping and the point awards either all commit or none of them do, and
rows are locked before they are checked so concurrent calls on the same
application or match serialize: the loser sees AlreadyDecided or
AlreadyFinished.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from arena.audit.service import log_action
from arena.competition.lifecycle import lock_match
from arena.competition.states import (
    ApplicationStatus,
    MatchStatus,
    validate_application_transition,
    validate_match_transition,
)
from arena.database import atomic
from arena.db.models import Application, Match, MatchParticipant, TeamMember, User
from arena.errors import (
    AmbiguousWinner,
    ApplicationNotFound,
    InvalidBonus,
    WinnerNotParticipant,
)

logger = logging.getLogger(__name__)


async def _lock_application(db: AsyncSession, app_id: int) -> Application:
    result = await db.execute(
        select(Application)
        .where(Application.id == app_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise ApplicationNotFound()
    return application


async def _insert_participant(db: AsyncSession, application: Application) -> None:
    """Materialize an approved application. Duplicates are skipped."""
    existing = await db.execute(
        select(MatchParticipant.id).where(
            MatchParticipant.match_id == application.match_id,
            MatchParticipant.user_id == application.user_id,
        )
    )
    if existing.first() is not None:
        return
    db.add(
        MatchParticipant(
            match_id=application.match_id,
            user_id=application.user_id,
            team_id=application.team_id,
        )
    )
    await db.flush()


async def _retract_participant(db: AsyncSession, application: Application) -> None:
    q = delete(MatchParticipant).where(
        MatchParticipant.match_id == application.match_id,
        MatchParticipant.user_id == application.user_id,
    )
    if application.team_id is not None:
        q = q.where(MatchParticipant.team_id == application.team_id)
    await db.execute(q)


def _decide(application: Application, target: ApplicationStatus, actor_id: int) -> None:
    validate_application_transition(application.status, target)
    application.status = target.value
    application.decided_at = datetime.now(timezone.utc)
    application.decided_by = actor_id


async def approve(db: AsyncSession, app_id: int, actor_id: int) -> Application:
    """Approve a pending application and make the applicant a participant."""
    async with atomic(db, "approve"):
        application = await _lock_application(db, app_id)
        _decide(application, ApplicationStatus.APPROVED, actor_id)
        await db.flush()
        await _insert_participant(db, application)

    logger.info(
        "Application %d approved by %d (match=%d, user=%d)",
        app_id, actor_id, application.match_id, application.user_id,
    )
    await log_action(db, actor_id, "admin_approve_application", f"app_id={app_id}")
    return application


async def reject(db: AsyncSession, app_id: int, actor_id: int) -> Application:
    """Reject a pending application and retract any participant row it produced."""
    async with atomic(db, "reject"):
        application = await _lock_application(db, app_id)
        _decide(application, ApplicationStatus.REJECTED, actor_id)
        await db.flush()
        await _retract_participant(db, application)

    logger.info("Application %d rejected by %d", app_id, actor_id)
    await log_action(db, actor_id, "admin_reject_application", f"app_id={app_id}")
    return application


async def _is_participant(
    db: AsyncSession,
    match_id: int,
    winner_user_id: int | None,
    winner_team_id: int | None,
) -> bool:
    q = select(MatchParticipant.id).where(MatchParticipant.match_id == match_id)
    if winner_user_id is not None:
        q = q.where(MatchParticipant.user_id == winner_user_id)
    else:
        q = q.where(MatchParticipant.team_id == winner_team_id)
    result = await db.execute(select(q.exists()))
    return bool(result.scalar())


async def _award_bonus(
    db: AsyncSession,
    bonus_points: int,
    winner_user_id: int | None,
    winner_team_id: int | None,
) -> None:
    """Credit the bonus with one set-based UPDATE, never read-modify-write."""
    if winner_user_id is not None:
        target = User.id == winner_user_id
    else:
        # Every current member of the winning team, resolved at commit time.
        target = User.id.in_(select(TeamMember.user_id).where(TeamMember.team_id == winner_team_id))
    await db.execute(
        update(User)
        .where(target)
        .values(points=User.points + bonus_points)
        .execution_options(synchronize_session="fetch")
    )


async def finalize(
    db: AsyncSession,
    match_id: int,
    actor_id: int,
    winner_user_id: int | None = None,
    winner_team_id: int | None = None,
    bonus_points: int = 0,
) -> Match:
    """Finish a match, name exactly one winner and pay out the bonus."""
    if (winner_user_id is None) == (winner_team_id is None):
        raise AmbiguousWinner()
    if bonus_points < 0:
        raise InvalidBonus()

    async with atomic(db, "finalize"):
        match = await lock_match(db, match_id)
        validate_match_transition(match.status, MatchStatus.FINISHED)

        if not await _is_participant(db, match_id, winner_user_id, winner_team_id):
            if winner_user_id is not None:
                raise WinnerNotParticipant("winner_user_id is not a participant of this match")
            raise WinnerNotParticipant("winner_team_id is not a participant of this match")

        match.status = MatchStatus.FINISHED.value
        match.winner_user_id = winner_user_id
        match.winner_team_id = winner_team_id
        match.bonus_points = bonus_points
        match.finished_at = datetime.now(timezone.utc)
        await db.flush()

        if bonus_points > 0:
            await _award_bonus(db, bonus_points, winner_user_id, winner_team_id)

    logger.info(
        "Match %d finished by %d (winner_user=%s, winner_team=%s, bonus=%d)",
        match_id, actor_id, winner_user_id, winner_team_id, bonus_points,
    )
    await log_action(db, actor_id, "admin_set_winner", f"match_id={match_id}")
    return match
