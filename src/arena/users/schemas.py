"""Pydantic schemas for user endpoints."""

from __future__ import annotations

from pydantic import BaseModel

from arena.auth.roles import Role


class UserResponse(BaseModel):
    id: int
    username: str
    role: Role
    points: int


class SetPointsRequest(BaseModel):
    points: int
