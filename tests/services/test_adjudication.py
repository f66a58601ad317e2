"""Adjudication tests: deciding applications and finishing matches."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from arena.competition import adjudication, application_service, lifecycle
from arena.competition.states import MatchMode
from arena.db.models import Match, MatchParticipant
from arena.errors import (
    AlreadyDecided,
    AlreadyFinished,
    AmbiguousWinner,
    ApplicationNotFound,
    InvalidBonus,
    MatchNotFound,
    StorageFailure,
    WinnerNotParticipant,
)
from arena.teams import service as team_service
from helpers import application_status, count_logs, points_of


async def _participant_count(db, match_id: int) -> int:
    result = await db.execute(
        select(func.count(MatchParticipant.id)).where(MatchParticipant.match_id == match_id)
    )
    return result.scalar_one()


async def _match_row(db, match_id: int):
    result = await db.execute(
        select(Match.status, Match.winner_user_id, Match.winner_team_id, Match.bonus_points).where(
            Match.id == match_id
        )
    )
    return result.one()


async def _solo_match_with_participant(db, admin_id: int, user_id: int) -> int:
    match = await lifecycle.create_match(db, "Solo Cup", MatchMode.SOLO, admin_id)
    match_id = match.id
    application = await application_service.apply(db, user_id, match_id)
    await adjudication.approve(db, application.id, admin_id)
    return match_id


class TestApprove:
    @pytest.mark.asyncio
    async def test_approve_creates_participant(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        match = await lifecycle.create_match(db_session, "Solo Cup", MatchMode.SOLO, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id)
        app_id = application.id

        approved = await adjudication.approve(db_session, app_id, admin_id)

        assert approved.status == "approved"
        assert approved.decided_by == admin_id
        assert approved.decided_at is not None
        assert await _participant_count(db_session, match_id) == 1

    @pytest.mark.asyncio
    async def test_approve_twice_is_rejected(self, db_session, make_user, admin_id):
        """A decided application cannot be decided again and no extra participant appears."""
        alice = await make_user("alice")
        match = await lifecycle.create_match(db_session, "Solo Cup", MatchMode.SOLO, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id)
        app_id = application.id
        await adjudication.approve(db_session, app_id, admin_id)

        with pytest.raises(AlreadyDecided):
            await adjudication.approve(db_session, app_id, admin_id)

        assert await _participant_count(db_session, match_id) == 1

    @pytest.mark.asyncio
    async def test_approve_after_reject_is_rejected(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        match = await lifecycle.create_match(db_session, "Solo Cup", MatchMode.SOLO, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id)
        app_id = application.id
        await adjudication.reject(db_session, app_id, admin_id)

        with pytest.raises(AlreadyDecided):
            await adjudication.approve(db_session, app_id, admin_id)

        assert await application_status(db_session, app_id) == "rejected"
        assert await _participant_count(db_session, match_id) == 0

    @pytest.mark.asyncio
    async def test_approve_missing_application(self, db_session, admin_id):
        with pytest.raises(ApplicationNotFound):
            await adjudication.approve(db_session, 777, admin_id)

    @pytest.mark.asyncio
    async def test_approve_is_all_or_nothing(self, db_session, make_user, admin_id, monkeypatch):
        """If the participant insert fails the status change is rolled back too."""
        alice = await make_user("alice")
        match = await lifecycle.create_match(db_session, "Solo Cup", MatchMode.SOLO, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id)
        app_id = application.id

        monkeypatch.setattr(
            adjudication,
            "_insert_participant",
            AsyncMock(side_effect=OperationalError("INSERT INTO match_participants", {}, Exception("disk full"))),
        )
        with pytest.raises(StorageFailure) as exc_info:
            await adjudication.approve(db_session, app_id, admin_id)

        assert exc_info.value.retryable
        assert await application_status(db_session, app_id) == "pending"
        assert await _participant_count(db_session, match_id) == 0
        assert await count_logs(db_session, "admin_approve_application") == 0

    @pytest.mark.asyncio
    async def test_approve_is_logged(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        await _solo_match_with_participant(db_session, admin_id, alice)
        assert await count_logs(db_session, "admin_approve_application") == 1


class TestReject:
    @pytest.mark.asyncio
    async def test_reject_pending(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        match = await lifecycle.create_match(db_session, "Solo Cup", MatchMode.SOLO, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id)

        rejected = await adjudication.reject(db_session, application.id, admin_id)

        assert rejected.status == "rejected"
        assert await _participant_count(db_session, match_id) == 0

    @pytest.mark.asyncio
    async def test_reject_after_approve_is_rejected(self, db_session, make_user, admin_id):
        """Approval is final: rejecting later fails and the participant stays."""
        alice = await make_user("alice")
        match = await lifecycle.create_match(db_session, "Solo Cup", MatchMode.SOLO, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id)
        app_id = application.id
        await adjudication.approve(db_session, app_id, admin_id)

        with pytest.raises(AlreadyDecided):
            await adjudication.reject(db_session, app_id, admin_id)

        assert await application_status(db_session, app_id) == "approved"
        assert await _participant_count(db_session, match_id) == 1


class TestFinalizeValidation:
    @pytest.mark.asyncio
    async def test_no_winner(self, db_session, admin_id):
        with pytest.raises(AmbiguousWinner):
            await adjudication.finalize(db_session, 1, admin_id)

    @pytest.mark.asyncio
    async def test_both_winners(self, db_session, admin_id):
        with pytest.raises(AmbiguousWinner):
            await adjudication.finalize(db_session, 1, admin_id, winner_user_id=1, winner_team_id=1)

    @pytest.mark.asyncio
    async def test_negative_bonus(self, db_session, admin_id):
        with pytest.raises(InvalidBonus):
            await adjudication.finalize(db_session, 1, admin_id, winner_user_id=1, bonus_points=-5)

    @pytest.mark.asyncio
    async def test_missing_match(self, db_session, admin_id):
        with pytest.raises(MatchNotFound):
            await adjudication.finalize(db_session, 999, admin_id, winner_user_id=1)

    @pytest.mark.asyncio
    async def test_winner_must_be_participant(self, db_session, make_user, admin_id):
        """A user who applied but was never approved cannot win."""
        alice = await make_user("alice", points=10)
        bob = await make_user("bob")
        match_id = await _solo_match_with_participant(db_session, admin_id, alice)
        await application_service.apply(db_session, bob, match_id)

        with pytest.raises(WinnerNotParticipant) as exc_info:
            await adjudication.finalize(db_session, match_id, admin_id, winner_user_id=bob, bonus_points=50)

        assert "winner_user_id" in str(exc_info.value)
        row = await _match_row(db_session, match_id)
        assert row.status == "open"
        assert row.winner_user_id is None
        assert await points_of(db_session, bob) == 0
        assert await points_of(db_session, alice) == 10

    @pytest.mark.asyncio
    async def test_team_winner_must_be_participant(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        team = await team_service.create_team(db_session, alice, "Red", is_open=True)
        team_id = team.id
        match = await lifecycle.create_match(db_session, "Team Cup", MatchMode.TEAM, admin_id)
        match_id = match.id

        with pytest.raises(WinnerNotParticipant) as exc_info:
            await adjudication.finalize(db_session, match_id, admin_id, winner_team_id=team_id)
        assert "winner_team_id" in str(exc_info.value)


    @pytest.mark.asyncio
    async def test_participant_of_another_match_cannot_win(self, db_session, make_user, admin_id):
        """Being approved in one match does not make a user eligible in another."""
        alice = await make_user("alice", points=10)
        bob = await make_user("bob")
        await _solo_match_with_participant(db_session, admin_id, alice)
        other_id = await _solo_match_with_participant(db_session, admin_id, bob)

        with pytest.raises(WinnerNotParticipant):
            await adjudication.finalize(db_session, other_id, admin_id, winner_user_id=alice, bonus_points=50)

        row = await _match_row(db_session, other_id)
        assert row.status == "open"
        assert row.winner_user_id is None
        assert await points_of(db_session, alice) == 10

    @pytest.mark.asyncio
    async def test_team_of_another_match_cannot_win(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        carol = await make_user("carol")
        red = await team_service.create_team(db_session, alice, "Red", is_open=True)
        red_id = red.id
        blue = await team_service.create_team(db_session, carol, "Blue", is_open=True)
        blue_id = blue.id

        first = await lifecycle.create_match(db_session, "Team Cup 1", MatchMode.TEAM, admin_id)
        first_id = first.id
        second = await lifecycle.create_match(db_session, "Team Cup 2", MatchMode.TEAM, admin_id)
        second_id = second.id
        for user_id, team_id, match_id in [(alice, red_id, first_id), (carol, blue_id, second_id)]:
            application = await application_service.apply(db_session, user_id, match_id, team_id)
            await adjudication.approve(db_session, application.id, admin_id)

        with pytest.raises(WinnerNotParticipant):
            await adjudication.finalize(db_session, second_id, admin_id, winner_team_id=red_id, bonus_points=5)

        row = await _match_row(db_session, second_id)
        assert row.status == "open"
        assert row.winner_team_id is None
        assert await points_of(db_session, alice) == 0


class TestFinalizeSolo:
    @pytest.mark.asyncio
    async def test_solo_winner_gets_bonus(self, db_session, make_user, admin_id):
        """Open match, one approved participant, bonus paid exactly once."""
        alice = await make_user("alice", points=10)
        match_id = await _solo_match_with_participant(db_session, admin_id, alice)

        match = await adjudication.finalize(
            db_session, match_id, admin_id, winner_user_id=alice, bonus_points=50
        )

        assert match.status == "finished"
        assert match.finished_at is not None
        row = await _match_row(db_session, match_id)
        assert row.status == "finished"
        assert row.winner_user_id == alice
        assert row.winner_team_id is None
        assert row.bonus_points == 50
        assert await points_of(db_session, alice) == 60

    @pytest.mark.asyncio
    async def test_finalize_twice_does_not_pay_twice(self, db_session, make_user, admin_id):
        alice = await make_user("alice", points=10)
        match_id = await _solo_match_with_participant(db_session, admin_id, alice)
        await adjudication.finalize(db_session, match_id, admin_id, winner_user_id=alice, bonus_points=50)

        with pytest.raises(AlreadyFinished):
            await adjudication.finalize(db_session, match_id, admin_id, winner_user_id=alice, bonus_points=50)

        assert await points_of(db_session, alice) == 60

    @pytest.mark.asyncio
    async def test_zero_bonus_leaves_points(self, db_session, make_user, admin_id):
        alice = await make_user("alice", points=7)
        match_id = await _solo_match_with_participant(db_session, admin_id, alice)

        await adjudication.finalize(db_session, match_id, admin_id, winner_user_id=alice)

        assert await points_of(db_session, alice) == 7
        row = await _match_row(db_session, match_id)
        assert row.status == "finished"

    @pytest.mark.asyncio
    async def test_finalize_closed_match(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        match_id = await _solo_match_with_participant(db_session, admin_id, alice)
        await lifecycle.close_match(db_session, match_id, admin_id)

        await adjudication.finalize(db_session, match_id, admin_id, winner_user_id=alice, bonus_points=5)

        assert await points_of(db_session, alice) == 5

    @pytest.mark.asyncio
    async def test_bonus_failure_rolls_back_finish(self, db_session, make_user, admin_id, monkeypatch):
        """A storage failure while paying out leaves the match unfinished."""
        alice = await make_user("alice", points=10)
        match_id = await _solo_match_with_participant(db_session, admin_id, alice)

        monkeypatch.setattr(
            adjudication,
            "_award_bonus",
            AsyncMock(side_effect=OperationalError("UPDATE users", {}, Exception("connection lost"))),
        )
        with pytest.raises(StorageFailure):
            await adjudication.finalize(db_session, match_id, admin_id, winner_user_id=alice, bonus_points=50)

        row = await _match_row(db_session, match_id)
        assert row.status == "open"
        assert row.winner_user_id is None
        assert await points_of(db_session, alice) == 10
        assert await count_logs(db_session, "admin_set_winner") == 0


class TestFinalizeTeam:
    @pytest.mark.asyncio
    async def test_every_member_gets_bonus(self, db_session, make_user, admin_id):
        """Team win pays each current member; outsiders are untouched."""
        alice = await make_user("alice", points=5)
        bob = await make_user("bob")
        carol = await make_user("carol", points=3)
        team = await team_service.create_team(db_session, alice, "Red", is_open=True)
        team_id = team.id
        await team_service.join_team(db_session, bob, team_id)

        match = await lifecycle.create_match(db_session, "Team Cup", MatchMode.TEAM, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id, team_id)
        await adjudication.approve(db_session, application.id, admin_id)

        await adjudication.finalize(db_session, match_id, admin_id, winner_team_id=team_id, bonus_points=20)

        row = await _match_row(db_session, match_id)
        assert row.winner_team_id == team_id
        assert row.winner_user_id is None
        assert await points_of(db_session, alice) == 25
        assert await points_of(db_session, bob) == 20
        assert await points_of(db_session, carol) == 3

    @pytest.mark.asyncio
    async def test_team_with_no_members_left(self, db_session, make_user, admin_id):
        """Finalizing for a team whose members all left succeeds and pays nobody."""
        alice = await make_user("alice", points=1)
        team = await team_service.create_team(db_session, alice, "Red", is_open=True)
        team_id = team.id

        match = await lifecycle.create_match(db_session, "Team Cup", MatchMode.TEAM, admin_id)
        match_id = match.id
        application = await application_service.apply(db_session, alice, match_id, team_id)
        await adjudication.approve(db_session, application.id, admin_id)
        await team_service.leave_team(db_session, alice, team_id)

        await adjudication.finalize(db_session, match_id, admin_id, winner_team_id=team_id, bonus_points=20)

        row = await _match_row(db_session, match_id)
        assert row.status == "finished"
        assert await points_of(db_session, alice) == 1

    @pytest.mark.asyncio
    async def test_finalize_is_logged(self, db_session, make_user, admin_id):
        alice = await make_user("alice")
        match_id = await _solo_match_with_participant(db_session, admin_id, alice)
        await adjudication.finalize(db_session, match_id, admin_id, winner_user_id=alice)
        assert await count_logs(db_session, "admin_set_winner") == 1
