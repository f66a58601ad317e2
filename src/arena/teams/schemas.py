"""Pydantic schemas for team endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field


class CreateTeamRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    is_open: bool = False


class TeamResponse(BaseModel):
    id: int
    name: str
    is_open: bool
    owner_id: int | None = None


class CreateTeamResponse(BaseModel):
    ok: bool = True
    team_id: int
