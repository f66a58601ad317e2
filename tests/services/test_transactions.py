"""Transaction helper tests."""

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from arena.database import atomic
from arena.db.models import User
from arena.errors import MatchNotOpen, StorageFailure


async def _user_count(db, username: str) -> int:
    result = await db.execute(select(func.count(User.id)).where(User.username == username))
    return result.scalar_one()


async def _write_then_raise(db, exc: BaseException) -> None:
    async with atomic(db, "test"):
        db.add(User(username="ghost"))
        await db.flush()
        raise exc


class TestAtomic:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, db_session):
        async with atomic(db_session, "test"):
            db_session.add(User(username="kept"))
        assert await _user_count(db_session, "kept") == 1

    @pytest.mark.asyncio
    async def test_domain_error_rolls_back(self, db_session):
        with pytest.raises(MatchNotOpen):
            await _write_then_raise(db_session, MatchNotOpen())
        assert await _user_count(db_session, "ghost") == 0

    @pytest.mark.asyncio
    async def test_storage_error_becomes_retryable_failure(self, db_session):
        with pytest.raises(StorageFailure) as exc_info:
            await _write_then_raise(db_session, OperationalError("UPDATE", {}, Exception("gone")))
        assert exc_info.value.retryable
        assert await _user_count(db_session, "ghost") == 0

    @pytest.mark.asyncio
    async def test_unexpected_error_rolls_back(self, db_session):
        """Errors outside the taxonomy propagate unchanged after rollback."""
        with pytest.raises(RuntimeError):
            await _write_then_raise(db_session, RuntimeError("bug"))
        assert await _user_count(db_session, "ghost") == 0

    @pytest.mark.asyncio
    async def test_cancellation_rolls_back(self, db_session):
        with pytest.raises(asyncio.CancelledError):
            await _write_then_raise(db_session, asyncio.CancelledError())
        assert await _user_count(db_session, "ghost") == 0
