"""Integration tests for the election endpoints."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from httpx import AsyncClient

from evote_api.models.election import Election
from evote_api.models.user import User


def _window(start_offset_hours: int, duration_hours: int = 8) -> dict[str, str]:
    start = datetime.now(UTC) + timedelta(hours=start_offset_hours)
    return {"start_at": start.isoformat(), "end_at": (start + timedelta(hours=duration_hours)).isoformat()}


class TestElectionsApi:
    async def test_create_add_candidate_and_stop(
        self, client: AsyncClient, admin_user: User, auth_headers: Callable[[User], dict[str, str]]
    ) -> None:
        headers = auth_headers(admin_user)

        created = await client.post(
            "/api/v1/elections", json={"title": "Ward 3", "region": "Mysuru", **_window(-1)}, headers=headers
        )
        assert created.status_code == 201
        election = created.json()
        assert election["status"] == "ACTIVE"
        assert election["candidates"] == []

        candidate = await client.post(
            f"/api/v1/elections/{election['id']}/candidates", json={"name": "K. Rao"}, headers=headers
        )
        assert candidate.status_code == 201
        assert candidate.json()["vote_count"] == 0

        stopped = await client.post(f"/api/v1/elections/{election['id']}/stop", headers=headers)
        assert stopped.status_code == 200
        assert stopped.json()["status"] == "ENDED"
        assert stopped.json()["stopped_at"] is not None

        late = await client.post(
            f"/api/v1/elections/{election['id']}/candidates", json={"name": "Too Late"}, headers=headers
        )
        assert late.status_code == 409
        assert late.json()["code"] == "election_ended"

        refreshed = await client.post("/api/v1/elections/refresh-status", headers=headers)
        assert refreshed.json() == {"updated": 0}
        detail = await client.get(f"/api/v1/elections/{election['id']}")
        assert detail.json()["status"] == "ENDED"

    async def test_invalid_window(
        self, client: AsyncClient, admin_user: User, auth_headers: Callable[[User], dict[str, str]]
    ) -> None:
        window = _window(1)
        body = {"title": "Backwards", "start_at": window["end_at"], "end_at": window["start_at"]}
        response = await client.post("/api/v1/elections", json=body, headers=auth_headers(admin_user))
        assert response.status_code == 422

    async def test_public_listing(self, client: AsyncClient, active_election: Election) -> None:
        response = await client.get("/api/v1/elections", params={"status": "ACTIVE"})
        assert response.status_code == 200
        body = response.json()
        assert body["pagination"]["total"] == 1
        assert body["items"][0]["title"] == "Municipal Ward 12"
        assert len(body["items"][0]["candidates"]) == 2

    async def test_unknown_election(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/elections/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404

    async def test_create_requires_admin(
        self, client: AsyncClient, make_voter: Callable, auth_headers: Callable[[User], dict[str, str]]
    ) -> None:
        voter = await make_voter()
        response = await client.post(
            "/api/v1/elections", json={"title": "Nope", **_window(1)}, headers=auth_headers(voter.user)
        )
        assert response.status_code == 403
