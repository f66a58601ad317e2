"""Match lifecycle: creation, edits, closing and read models.

Finishing a match is not done here; it only happens through
``adjudication.finalize`` which also names the winner.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.audit.service import log_action
from arena.competition.states import MatchMode, MatchStatus, validate_match_transition
from arena.config import get_settings
from arena.database import atomic
from arena.db.models import Application, Match, MatchParticipant, Team, User
from arena.errors import AlreadyFinished, MatchModeLocked, MatchNotFound

logger = logging.getLogger(__name__)


@dataclass
class TeamRoster:
    id: int
    name: str
    members: list[User] = field(default_factory=list)


@dataclass
class ParticipantSet:
    """Who competes in a match: users for solo, teams with members for team mode."""

    match: Match
    mode: MatchMode
    users: list[User] = field(default_factory=list)
    teams: list[TeamRoster] = field(default_factory=list)


@dataclass
class MatchReport:
    match: Match
    winner_user: User | None
    winner_team: Team | None
    applications: list[tuple[Application, str, str | None]]
    participants: ParticipantSet


async def get_match(db: AsyncSession, match_id: int) -> Match:
    """Get a match by ID."""
    result = await db.execute(select(Match).where(Match.id == match_id))
    match = result.scalar_one_or_none()
    if match is None:
        raise MatchNotFound()
    return match


async def lock_match(db: AsyncSession, match_id: int) -> Match:
    """Load a match with a row lock, refreshing any stale copy in the session."""
    result = await db.execute(
        select(Match)
        .where(Match.id == match_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    match = result.scalar_one_or_none()
    if match is None:
        raise MatchNotFound()
    return match


async def list_matches(
    db: AsyncSession,
    status: MatchStatus | None = None,
    limit: int | None = None,
) -> list[Match]:
    """Matches, newest first, optionally filtered by status."""
    q = select(Match)
    if status is not None:
        q = q.where(Match.status == status.value)
    q = q.order_by(Match.id.desc()).limit(limit or get_settings().match_list_limit)

    result = await db.execute(q)
    return list(result.scalars().all())


async def create_match(db: AsyncSession, title: str, mode: MatchMode, actor_id: int) -> Match:
    """Create a match in the open state."""
    async with atomic(db, "create_match"):
        match = Match(
            title=title,
            mode=mode.value,
            status=MatchStatus.OPEN.value,
            created_by=actor_id,
        )
        db.add(match)
        await db.flush()

    logger.info("Match created: %s (id=%d, mode=%s)", title, match.id, mode.value)
    await log_action(db, actor_id, "admin_create_match", title)
    return match


async def update_match(
    db: AsyncSession,
    match_id: int,
    actor_id: int,
    title: str | None = None,
    mode: MatchMode | None = None,
) -> Match:
    """Edit title and mode. Status only moves through close/finalize."""
    async with atomic(db, "update_match"):
        match = await lock_match(db, match_id)
        if match.status == MatchStatus.FINISHED.value:
            raise AlreadyFinished()

        if mode is not None and mode.value != match.mode:
            count = await db.execute(
                select(func.count(Application.id)).where(Application.match_id == match_id)
            )
            if count.scalar_one() > 0:
                raise MatchModeLocked()
            match.mode = mode.value

        if title is not None:
            match.title = title

    await log_action(db, actor_id, "admin_update_match", f"match_id={match_id}")
    return match


async def delete_match(db: AsyncSession, match_id: int, actor_id: int) -> None:
    """Delete a match together with its applications and participants."""
    async with atomic(db, "delete_match"):
        await get_match(db, match_id)
        await db.execute(delete(MatchParticipant).where(MatchParticipant.match_id == match_id))
        await db.execute(delete(Application).where(Application.match_id == match_id))
        await db.execute(delete(Match).where(Match.id == match_id))

    logger.info("Match %d deleted by %d", match_id, actor_id)
    await log_action(db, actor_id, "admin_delete_match", f"match_id={match_id}")


async def close_match(db: AsyncSession, match_id: int, actor_id: int) -> Match:
    """Stop accepting applications. Idempotent for closed matches."""
    async with atomic(db, "close_match"):
        match = await lock_match(db, match_id)
        validate_match_transition(match.status, MatchStatus.CLOSED)
        match.status = MatchStatus.CLOSED.value

    logger.info("Match %d closed by %d", match_id, actor_id)
    await log_action(db, actor_id, "admin_close_match", f"match_id={match_id}")
    return match


async def list_participants(db: AsyncSession, match_id: int) -> ParticipantSet:
    """Participants of a match, flat for solo and grouped by team for team mode."""
    match = await get_match(db, match_id)
    mode = MatchMode(match.mode)
    participants = ParticipantSet(match=match, mode=mode)

    if mode is MatchMode.SOLO:
        result = await db.execute(
            select(User)
            .join(MatchParticipant, MatchParticipant.user_id == User.id)
            .where(MatchParticipant.match_id == match_id)
            .order_by(User.username.asc())
        )
        participants.users = list(result.scalars().all())
        return participants

    result = await db.execute(
        select(Team, User)
        .join(MatchParticipant, MatchParticipant.team_id == Team.id)
        .join(User, User.id == MatchParticipant.user_id)
        .where(MatchParticipant.match_id == match_id)
        .order_by(Team.name.asc(), Team.id.asc(), User.username.asc())
    )
    rosters: dict[int, TeamRoster] = {}
    for row in result:
        roster = rosters.get(row.Team.id)
        if roster is None:
            roster = TeamRoster(id=row.Team.id, name=row.Team.name)
            rosters[row.Team.id] = roster
        roster.members.append(row.User)
    participants.teams = list(rosters.values())
    return participants


async def list_user_history(db: AsyncSession, user_id: int) -> list[Match]:
    """Matches the user actually took part in, newest first."""
    result = await db.execute(
        select(Match)
        .join(MatchParticipant, MatchParticipant.match_id == Match.id)
        .where(MatchParticipant.user_id == user_id)
        .order_by(Match.id.desc())
    )
    return list(result.scalars().all())


async def get_match_report(db: AsyncSession, match_id: int) -> MatchReport:
    """Structured summary of a match: winner, every application and the participants."""
    match = await get_match(db, match_id)

    winner_user = await db.get(User, match.winner_user_id) if match.winner_user_id else None
    winner_team = await db.get(Team, match.winner_team_id) if match.winner_team_id else None

    result = await db.execute(
        select(Application, User.username, Team.name)
        .join(User, User.id == Application.user_id)
        .outerjoin(Team, Team.id == Application.team_id)
        .where(Application.match_id == match_id)
        .order_by(Application.id.asc())
    )
    applications = [(row.Application, row.username, row.name) for row in result]

    return MatchReport(
        match=match,
        winner_user=winner_user,
        winner_team=winner_team,
        applications=applications,
        participants=await list_participants(db, match_id),
    )
