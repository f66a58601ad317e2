"""Team membership business logic.

Rules:
- One team per user at a time
- The creator becomes owner and first member
- Only open teams accept joins
- Leaving is idempotent
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arena.audit.service import log_action
from arena.database import atomic
from arena.db.models import Team, TeamMember, User
from arena.errors import AlreadyInTeam, TeamUnavailable
from arena.users.service import lock_user

logger = logging.getLogger(__name__)


async def get_team(db: AsyncSession, team_id: int) -> Team | None:
    """Get a team by ID."""
    result = await db.execute(select(Team).where(Team.id == team_id))
    return result.scalar_one_or_none()


async def get_user_membership(db: AsyncSession, user_id: int) -> TeamMember | None:
    """Get a user's team membership (if any)."""
    result = await db.execute(select(TeamMember).where(TeamMember.user_id == user_id))
    return result.scalar_one_or_none()


async def has_team(db: AsyncSession, user_id: int) -> bool:
    return await get_user_membership(db, user_id) is not None


async def is_team_member(db: AsyncSession, team_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(TeamMember.id).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
    )
    return result.first() is not None


async def _add_member(db: AsyncSession, team_id: int, user_id: int) -> TeamMember:
    member = TeamMember(team_id=team_id, user_id=user_id)
    db.add(member)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Lost a race against a concurrent create/join for the same user.
        raise AlreadyInTeam() from exc
    return member


async def create_team(db: AsyncSession, owner_id: int, name: str, is_open: bool) -> Team:
    """Create a team. The creator becomes owner and sole member."""
    async with atomic(db, "create_team"):
        await lock_user(db, owner_id)
        if await has_team(db, owner_id):
            raise AlreadyInTeam()

        team = Team(name=name, owner_id=owner_id, is_open=is_open)
        db.add(team)
        await db.flush()
        await _add_member(db, team.id, owner_id)

    logger.info("Team created: %s (id=%d, owner=%d)", name, team.id, owner_id)
    await log_action(db, owner_id, "create_team", f"team_id={team.id}")
    return team


async def join_team(db: AsyncSession, user_id: int, team_id: int) -> TeamMember:
    """Join an open team."""
    async with atomic(db, "join_team"):
        await lock_user(db, user_id)
        if await has_team(db, user_id):
            raise AlreadyInTeam()

        team = await get_team(db, team_id)
        if team is None or not team.is_open:
            raise TeamUnavailable()

        member = await _add_member(db, team_id, user_id)

    logger.info("User %d joined team %d", user_id, team_id)
    await log_action(db, user_id, "join_team", f"team_id={team_id}")
    return member


async def leave_team(db: AsyncSession, user_id: int, team_id: int) -> None:
    """Leave a team. No error if the user was not a member."""
    async with atomic(db, "leave_team"):
        await db.execute(
            delete(TeamMember).where(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        )

    logger.info("User %d left team %d", user_id, team_id)
    await log_action(db, user_id, "leave_team", f"team_id={team_id}")


async def list_open_teams(db: AsyncSession) -> list[Team]:
    result = await db.execute(select(Team).where(Team.is_open.is_(True)).order_by(Team.id.desc()))
    return list(result.scalars().all())


async def list_user_teams(db: AsyncSession, user_id: int) -> list[Team]:
    """Teams the user belongs to (at most one, kept as a list for clients)."""
    result = await db.execute(
        select(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .where(TeamMember.user_id == user_id)
        .order_by(Team.name.asc())
    )
    return list(result.scalars().all())


async def get_team_members(db: AsyncSession, team_id: int) -> list[User]:
    """Current members of a team, in join order."""
    result = await db.execute(
        select(User)
        .join(TeamMember, TeamMember.user_id == User.id)
        .where(TeamMember.team_id == team_id)
        .order_by(TeamMember.joined_at.asc(), User.id.asc())
    )
    return list(result.scalars().all())
