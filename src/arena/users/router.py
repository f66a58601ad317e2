"""User endpoints for profiles, the rating and admin account management."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from arena.auth.dependencies import Principal, get_current_principal, require_admin
from arena.database import get_session
from arena.db.models import User
from arena.schemas import OkResponse
from arena.users.schemas import SetPointsRequest, UserResponse
from arena.users.service import delete_user, get_me, get_rating, list_users, set_points

router = APIRouter(prefix="/api/v1", tags=["Users"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin: Users"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, username=user.username, role=user.role, points=user.points)


@router.get("/me", response_model=UserResponse)
async def me_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    return _user_response(await get_me(db, principal.user_id))


@router.get("/rating", response_model=list[UserResponse])
async def rating_endpoint(
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    """Top users by points."""
    return [_user_response(u) for u in await get_rating(db)]


@admin_router.get("/users", response_model=list[UserResponse])
async def admin_list_users_endpoint(
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return [_user_response(u) for u in await list_users(db)]


@admin_router.delete("/users/{user_id}", response_model=OkResponse)
async def admin_delete_user_endpoint(
    user_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await delete_user(db, user_id, admin.user_id)
    return OkResponse()


@admin_router.post("/users/{user_id}/points", response_model=UserResponse)
async def admin_set_points_endpoint(
    user_id: int,
    body: SetPointsRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Override a user's points balance."""
    user = await set_points(db, user_id, body.points, admin.user_id)
    return _user_response(user)
