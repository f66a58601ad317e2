"""Pydantic request/response models for match, application and adjudication endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from arena.competition.states import ApplicationStatus, MatchMode, MatchStatus


# ── Matches ──


class MatchResponse(BaseModel):
    id: int
    title: str
    mode: MatchMode
    status: MatchStatus
    winner_user_id: int | None = None
    winner_team_id: int | None = None
    bonus_points: int = 0
    created_at: datetime | None = None
    finished_at: datetime | None = None


class CreateMatchRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    mode: MatchMode


class UpdateMatchRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    mode: MatchMode | None = None


class FinalizeRequest(BaseModel):
    winner_user_id: int | None = None
    winner_team_id: int | None = None
    bonus_points: int = 0


# ── Applications ──


class ApplyRequest(BaseModel):
    team_id: int | None = None


class ApplicationResponse(BaseModel):
    id: int
    match_id: int
    user_id: int
    team_id: int | None = None
    status: ApplicationStatus
    created_at: datetime | None = None
    decided_at: datetime | None = None


# ── Participants ──


class UserMiniResponse(BaseModel):
    id: int
    username: str
    points: int


class TeamMiniResponse(BaseModel):
    id: int
    name: str
    members: list[UserMiniResponse]


class ParticipantsResponse(BaseModel):
    match: MatchResponse
    mode: MatchMode
    users: list[UserMiniResponse] = []
    teams: list[TeamMiniResponse] = []


# ── Report ──


class ReportApplicationResponse(BaseModel):
    id: int
    username: str
    team_name: str | None = None
    status: ApplicationStatus


class WinnerResponse(BaseModel):
    kind: str  # user|team
    id: int
    name: str | None = None


class MatchReportResponse(BaseModel):
    match: MatchResponse
    winner: WinnerResponse | None = None
    applications: list[ReportApplicationResponse]
    participants: ParticipantsResponse
