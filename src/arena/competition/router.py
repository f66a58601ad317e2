"""Match API endpoints.

User: list matches, apply, my applications, history.
Admin: match CRUD, close, application queue, approve/reject, finalize,
participants and report.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from arena.auth.dependencies import Principal, get_current_principal, require_admin
from arena.competition import adjudication, application_service, lifecycle
from arena.competition.schemas import (
    ApplicationResponse,
    ApplyRequest,
    CreateMatchRequest,
    FinalizeRequest,
    MatchReportResponse,
    MatchResponse,
    ParticipantsResponse,
    ReportApplicationResponse,
    TeamMiniResponse,
    UpdateMatchRequest,
    UserMiniResponse,
    WinnerResponse,
)
from arena.competition.states import ApplicationStatus, MatchStatus
from arena.config import get_settings
from arena.database import get_session
from arena.db.models import Application, Match, User
from arena.schemas import OkResponse

router = APIRouter(prefix="/api/v1", tags=["Matches"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin: Matches"])


# ── Helpers ──


def _match_response(m: Match) -> MatchResponse:
    return MatchResponse(
        id=m.id,
        title=m.title,
        mode=m.mode,
        status=m.status,
        winner_user_id=m.winner_user_id,
        winner_team_id=m.winner_team_id,
        bonus_points=m.bonus_points,
        created_at=m.created_at,
        finished_at=m.finished_at,
    )


def _application_response(a: Application) -> ApplicationResponse:
    return ApplicationResponse(
        id=a.id,
        match_id=a.match_id,
        user_id=a.user_id,
        team_id=a.team_id,
        status=a.status,
        created_at=a.created_at,
        decided_at=a.decided_at,
    )


def _user_mini(u: User) -> UserMiniResponse:
    return UserMiniResponse(id=u.id, username=u.username, points=u.points)


def _participants_response(p: lifecycle.ParticipantSet) -> ParticipantsResponse:
    return ParticipantsResponse(
        match=_match_response(p.match),
        mode=p.mode,
        users=[_user_mini(u) for u in p.users],
        teams=[
            TeamMiniResponse(id=t.id, name=t.name, members=[_user_mini(u) for u in t.members])
            for t in p.teams
        ],
    )


def _status_filter(status: str) -> MatchStatus | None:
    return None if status == "all" else MatchStatus(status)


# ── User endpoints ──


@router.get("/matches", response_model=list[MatchResponse])
async def list_matches_endpoint(
    status: str = Query("all", pattern="^(open|closed|finished|all)$"),
    _principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    """List matches, optionally filtered by status."""
    matches = await lifecycle.list_matches(db, _status_filter(status))
    return [_match_response(m) for m in matches]


@router.post("/matches/{match_id}/apply", response_model=ApplicationResponse)
async def apply_endpoint(
    match_id: int,
    body: ApplyRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    """Apply to an open match. Team matches require team_id."""
    team_id = body.team_id if body else None
    application = await application_service.apply(db, principal.user_id, match_id, team_id)
    return _application_response(application)


@router.get("/my/applications", response_model=dict[int, ApplicationStatus])
async def my_applications_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    """match_id -> status for the current user."""
    return await application_service.list_mine(db, principal.user_id)


@router.get("/history", response_model=list[MatchResponse])
async def history_endpoint(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_session),
):
    """Matches the current user took part in."""
    matches = await lifecycle.list_user_history(db, principal.user_id)
    return [_match_response(m) for m in matches]


# ── Admin: matches ──


@admin_router.get("/matches", response_model=list[MatchResponse])
async def admin_list_matches_endpoint(
    status: str = Query("all", pattern="^(open|closed|finished|all)$"),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    matches = await lifecycle.list_matches(
        db, _status_filter(status), limit=get_settings().admin_match_list_limit
    )
    return [_match_response(m) for m in matches]


@admin_router.post("/matches", response_model=MatchResponse, status_code=201)
async def admin_create_match_endpoint(
    body: CreateMatchRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Create a match in the open state."""
    match = await lifecycle.create_match(db, body.title, body.mode, admin.user_id)
    return _match_response(match)


@admin_router.put("/matches/{match_id}", response_model=MatchResponse)
async def admin_update_match_endpoint(
    match_id: int,
    body: UpdateMatchRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Edit title/mode. Status changes go through close and winner."""
    match = await lifecycle.update_match(db, match_id, admin.user_id, body.title, body.mode)
    return _match_response(match)


@admin_router.delete("/matches/{match_id}", response_model=OkResponse)
async def admin_delete_match_endpoint(
    match_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await lifecycle.delete_match(db, match_id, admin.user_id)
    return OkResponse()


@admin_router.post("/matches/{match_id}/close", response_model=MatchResponse)
async def admin_close_match_endpoint(
    match_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Close a match without naming a winner."""
    match = await lifecycle.close_match(db, match_id, admin.user_id)
    return _match_response(match)


@admin_router.post("/matches/{match_id}/winner", response_model=MatchResponse)
async def admin_set_winner_endpoint(
    match_id: int,
    body: FinalizeRequest,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Finish the match with exactly one winner and an optional bonus."""
    match = await adjudication.finalize(
        db,
        match_id,
        admin.user_id,
        winner_user_id=body.winner_user_id,
        winner_team_id=body.winner_team_id,
        bonus_points=body.bonus_points,
    )
    return _match_response(match)


@admin_router.get("/matches/{match_id}/participants", response_model=ParticipantsResponse)
async def admin_match_participants_endpoint(
    match_id: int,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Participants for the winner dropdown."""
    participants = await lifecycle.list_participants(db, match_id)
    return _participants_response(participants)


@admin_router.get("/matches/{match_id}/report", response_model=MatchReportResponse)
async def admin_match_report_endpoint(
    match_id: int,
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    report = await lifecycle.get_match_report(db, match_id)

    winner = None
    if report.match.winner_user_id is not None:
        winner = WinnerResponse(
            kind="user",
            id=report.match.winner_user_id,
            name=report.winner_user.username if report.winner_user else None,
        )
    elif report.match.winner_team_id is not None:
        winner = WinnerResponse(
            kind="team",
            id=report.match.winner_team_id,
            name=report.winner_team.name if report.winner_team else None,
        )

    return MatchReportResponse(
        match=_match_response(report.match),
        winner=winner,
        applications=[
            ReportApplicationResponse(id=a.id, username=username, team_name=team_name, status=a.status)
            for a, username, team_name in report.applications
        ],
        participants=_participants_response(report.participants),
    )


# ── Admin: applications ──


@admin_router.get("/applications", response_model=list[ApplicationResponse])
async def admin_list_applications_endpoint(
    match_id: int | None = Query(None),
    status: ApplicationStatus | None = Query(None),
    _admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    applications = await application_service.list_applications(db, match_id, status)
    return [_application_response(a) for a in applications]


@admin_router.post("/applications/{app_id}/approve", response_model=ApplicationResponse)
async def admin_approve_endpoint(
    app_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    application = await adjudication.approve(db, app_id, admin.user_id)
    return _application_response(application)


@admin_router.post("/applications/{app_id}/reject", response_model=ApplicationResponse)
async def admin_reject_endpoint(
    app_id: int,
    admin: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    application = await adjudication.reject(db, app_id, admin.user_id)
    return _application_response(application)
