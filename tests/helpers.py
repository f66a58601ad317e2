"""Helpers shared by service and API tests."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from arena.auth.jwt import create_access_token
from arena.auth.roles import Role
from arena.db.models import ActionLog, Application, User


def auth_headers(user_id: int, role: Role = Role.USER) -> dict[str, str]:
    """Bearer header for a token the identity service would issue."""
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


async def points_of(db: AsyncSession, user_id: int) -> int:
    """Read a user's points straight from the table."""
    result = await db.execute(select(User.points).where(User.id == user_id))
    return result.scalar_one()


async def application_status(db: AsyncSession, app_id: int) -> str:
    result = await db.execute(select(Application.status).where(Application.id == app_id))
    return result.scalar_one()


async def count_logs(db: AsyncSession, action: str) -> int:
    result = await db.execute(select(func.count(ActionLog.id)).where(ActionLog.action == action))
    return result.scalar_one()
