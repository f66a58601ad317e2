"""Team and user endpoint tests."""

import pytest
from httpx import AsyncClient

from arena.auth.roles import Role
from helpers import auth_headers


class TestTeamsApi:
    @pytest.mark.asyncio
    async def test_create_join_leave(self, client: AsyncClient, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")

        response = await client.post("/api/v1/teams", json={"name": "Red", "is_open": True}, headers=auth_headers(alice))
        assert response.status_code == 200
        team_id = response.json()["team_id"]

        response = await client.get("/api/v1/teams/open", headers=auth_headers(bob))
        assert [t["id"] for t in response.json()] == [team_id]

        response = await client.post(f"/api/v1/teams/{team_id}/join", headers=auth_headers(bob))
        assert response.json() == {"ok": True}

        response = await client.get("/api/v1/my/teams", headers=auth_headers(bob))
        assert [t["name"] for t in response.json()] == ["Red"]

        response = await client.post(f"/api/v1/teams/{team_id}/leave", headers=auth_headers(bob))
        assert response.json() == {"ok": True}
        response = await client.get("/api/v1/my/teams", headers=auth_headers(bob))
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_second_team_conflict(self, client: AsyncClient, make_user):
        alice = await make_user("alice")
        await client.post("/api/v1/teams", json={"name": "Red"}, headers=auth_headers(alice))

        response = await client.post("/api/v1/teams", json={"name": "Blue"}, headers=auth_headers(alice))
        assert response.status_code == 409
        assert response.json()["code"] == "AlreadyInTeam"

    @pytest.mark.asyncio
    async def test_join_closed_team(self, client: AsyncClient, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        response = await client.post("/api/v1/teams", json={"name": "Red", "is_open": False}, headers=auth_headers(alice))
        team_id = response.json()["team_id"]

        response = await client.post(f"/api/v1/teams/{team_id}/join", headers=auth_headers(bob))
        assert response.status_code == 409
        assert response.json()["code"] == "TeamUnavailable"


class TestUsersApi:
    @pytest.mark.asyncio
    async def test_rating(self, client: AsyncClient, make_user):
        alice = await make_user("alice", points=5)
        await make_user("bob", points=9)

        response = await client.get("/api/v1/rating", headers=auth_headers(alice))
        assert [u["username"] for u in response.json()] == ["bob", "alice"]

    @pytest.mark.asyncio
    async def test_admin_set_points(self, client: AsyncClient, make_user, admin_id):
        alice = await make_user("alice")
        response = await client.post(
            f"/api/v1/admin/users/{alice}/points",
            json={"points": 77},
            headers=auth_headers(admin_id, Role.ADMIN),
        )
        assert response.status_code == 200
        assert response.json()["points"] == 77

    @pytest.mark.asyncio
    async def test_admin_cannot_delete_self(self, client: AsyncClient, admin_id):
        response = await client.delete(f"/api/v1/admin/users/{admin_id}", headers=auth_headers(admin_id, Role.ADMIN))
        assert response.status_code == 400
        assert response.json()["code"] == "CannotDeleteSelf"

    @pytest.mark.asyncio
    async def test_admin_delete_user(self, client: AsyncClient, make_user, admin_id):
        admin = auth_headers(admin_id, Role.ADMIN)
        alice = await make_user("alice")

        response = await client.delete(f"/api/v1/admin/users/{alice}", headers=admin)
        assert response.json() == {"ok": True}

        response = await client.get("/api/v1/admin/users", headers=admin)
        assert [u["username"] for u in response.json()] == ["admin"]
