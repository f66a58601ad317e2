"""Team API endpoints: create, list open teams, my teams, join and leave."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from arena.auth.dependencies import Principal, get_current_principal
from arena.database import get_session
from arena.db.models import Team
from arena.schemas import OkResponse
from arena.teams.schemas import CreateTeamRequest, CreateTeamResponse, TeamResponse
from arena.teams.service import (
    create_team,
    join_team,
    leave_team,
    list_open_teams,
    list_user_teams,
)

router = APIRouter(prefix="/api/v1", tags=["Teams"])


def _team_response(team: Team) -> TeamResponse:
    return TeamResponse(id=team.id, name=team.name, is_open=team.is_open, owner_id=team.owner_id)


@router.post("/teams", response_model=CreateTeamResponse)
async def create_team_endpoint(
    body: CreateTeamRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    """Create a team. The creator becomes owner and first member."""
    team = await create_team(db, principal.user_id, body.name, body.is_open)
    return CreateTeamResponse(team_id=team.id)


@router.get("/teams/open", response_model=list[TeamResponse])
async def list_open_teams_endpoint(
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    teams = await list_open_teams(db)
    return [_team_response(t) for t in teams]


@router.get("/my/teams", response_model=list[TeamResponse])
async def my_teams_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    teams = await list_user_teams(db, principal.user_id)
    return [_team_response(t) for t in teams]


@router.post("/teams/{team_id}/join", response_model=OkResponse)
async def join_team_endpoint(
    team_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    """Join an open team."""
    await join_team(db, principal.user_id, team_id)
    return OkResponse()


@router.post("/teams/{team_id}/leave", response_model=OkResponse)
async def leave_team_endpoint(
    team_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    await leave_team(db, principal.user_id, team_id)
    return OkResponse()
