"""User accounts: lookups, rating and admin overrides."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from arena.audit.service import log_action
from arena.auth.roles import Role
from arena.config import get_settings
from arena.database import atomic
from arena.db.models import User
from arena.errors import CannotDeleteSelf, InvalidPoints, UserNotFound

logger = logging.getLogger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def lock_user(db: AsyncSession, user_id: int) -> User:
    """Load the user row FOR UPDATE so per-user check-then-act steps run one at a time."""
    result = await db.execute(select(User).where(User.id == user_id).with_for_update())
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFound()
    return user


async def create_user(db: AsyncSession, username: str, role: Role = Role.USER) -> User:
    """Create an account. Credentials are owned by the identity service."""
    async with atomic(db, "create_user"):
        user = User(username=username, role=role.value, points=0)
        db.add(user)
        await db.flush()
    logger.info("User created: %s (id=%d, role=%s)", username, user.id, role.value)
    return user


async def get_me(db: AsyncSession, user_id: int) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFound()
    return user


async def get_rating(db: AsyncSession, limit: int | None = None) -> list[User]:
    """Top users by points; ties broken by id."""
    result = await db.execute(
        select(User)
        .order_by(User.points.desc(), User.id.asc())
        .limit(limit or get_settings().rating_limit)
    )
    return list(result.scalars().all())


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.id.asc()))
    return list(result.scalars().all())


async def delete_user(db: AsyncSession, user_id: int, actor_id: int) -> None:
    """Delete an account. Applications, memberships and participations cascade."""
    if user_id == actor_id:
        raise CannotDeleteSelf()

    async with atomic(db, "delete_user"):
        result = await db.execute(delete(User).where(User.id == user_id))
        if result.rowcount == 0:
            raise UserNotFound()

    logger.info("User %d deleted by admin %d", user_id, actor_id)
    await log_action(db, actor_id, "admin_delete_user", f"user_id={user_id}")


async def set_points(db: AsyncSession, user_id: int, points: int, actor_id: int) -> User:
    """Admin override of a user's balance."""
    if points < 0:
        raise InvalidPoints()

    async with atomic(db, "set_points"):
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(points=points)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount == 0:
            raise UserNotFound()
        user = await get_me(db, user_id)

    await log_action(db, actor_id, "admin_set_points", f"user_id={user_id} points={points}")
    return user


async def bootstrap_admin(db: AsyncSession, username: str) -> User:
    """Ensure an admin account with this username exists (idempotent)."""
    user = await get_user_by_username(db, username)
    if user is None:
        return await create_user(db, username, Role.ADMIN)
    if user.role != Role.ADMIN.value:
        async with atomic(db, "bootstrap_admin"):
            user.role = Role.ADMIN.value
        logger.info("User %s promoted to admin", username)
    return user
