"""HTTP tests for the picks and league endpoints."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from tests.helpers import (
    SEASON,
    auth,
    create_gameweek,
    create_pick,
    create_pick_rule,
    create_season,
    create_team,
    create_user,
    hours_from_now,
)


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> dict[str, int]:
    await create_season(db_session)
    ids = {
        "ann": await create_user(db_session, "ann@example.com", "Ann"),
        "ben": await create_user(db_session, "ben@example.com", "Ben"),
        "inactive": await create_user(db_session, "gone@example.com", is_active=False),
        "arsenal": await create_team(db_session, "Arsenal"),
        "chelsea": await create_team(db_session, "Chelsea"),
    }
    await create_gameweek(db_session, 1, hours_from_now(-24))
    await create_gameweek(db_session, 2, hours_from_now(24))
    return ids


@pytest.mark.asyncio
class TestIdentity:
    async def test_health(self, app_client: AsyncClient):
        response = await app_client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_missing_header_is_unauthenticated(self, app_client, seeded):
        response = await app_client.get("/api/picks")
        assert response.status_code == 401

    async def test_garbage_header_is_unauthenticated(self, app_client, seeded):
        response = await app_client.get("/api/picks", headers={"X-User-Id": "abc"})
        assert response.status_code == 401

    async def test_inactive_user_is_unauthenticated(self, app_client, seeded):
        response = await app_client.get("/api/picks", headers=auth(seeded["inactive"]))
        assert response.status_code == 401


@pytest.mark.asyncio
class TestPicksApi:
    async def test_create_and_list(self, app_client, seeded):
        response = await app_client.post(
            "/api/picks",
            json={"season_id": SEASON, "gameweek_number": 2, "team_id": seeded["arsenal"]},
            headers=auth(seeded["ann"]),
        )
        assert response.status_code == 201
        body = response.json()
        assert body["user_id"] == seeded["ann"]
        assert body["team"]["name"] == "Arsenal"
        assert body["points"] == 0

        listed = await app_client.get(
            "/api/picks", params={"season_id": SEASON}, headers=auth(seeded["ann"])
        )
        assert listed.status_code == 200
        assert [p["id"] for p in listed.json()] == [body["id"]]

    async def test_deadline_passed_is_conflict(self, app_client, seeded):
        response = await app_client.post(
            "/api/picks",
            json={"season_id": SEASON, "gameweek_number": 1, "team_id": seeded["arsenal"]},
            headers=auth(seeded["ann"]),
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Gameweek deadline has passed"

    async def test_duplicate_is_conflict(self, app_client, seeded):
        payload = {"season_id": SEASON, "gameweek_number": 2, "team_id": seeded["arsenal"]}
        first = await app_client.post("/api/picks", json=payload, headers=auth(seeded["ann"]))
        second = await app_client.post("/api/picks", json=payload, headers=auth(seeded["ann"]))
        assert first.status_code == 201
        assert second.status_code == 409

    async def test_rule_violation_is_bad_request(self, app_client, db_session, seeded):
        await create_pick_rule(db_session, half=1, max_team=1, max_opposition=19)
        await create_pick(db_session, seeded["ann"], 1, seeded["arsenal"])
        response = await app_client.post(
            "/api/picks",
            json={"season_id": SEASON, "gameweek_number": 2, "team_id": seeded["arsenal"]},
            headers=auth(seeded["ann"]),
        )
        assert response.status_code == 400
        assert "Maximum allowed: 1" in response.json()["detail"]

    async def test_unknown_gameweek_is_not_found(self, app_client, seeded):
        response = await app_client.post(
            "/api/picks",
            json={"season_id": SEASON, "gameweek_number": 9, "team_id": seeded["arsenal"]},
            headers=auth(seeded["ann"]),
        )
        assert response.status_code == 404

    async def test_invalid_payload(self, app_client, seeded):
        response = await app_client.post(
            "/api/picks",
            json={"season_id": SEASON, "gameweek_number": 39, "team_id": seeded["arsenal"]},
            headers=auth(seeded["ann"]),
        )
        assert response.status_code == 422

    async def test_update_get_and_delete(self, app_client, db_session, seeded):
        pick_id = await create_pick(db_session, seeded["ann"], 2, seeded["arsenal"])

        forbidden = await app_client.put(
            f"/api/picks/{pick_id}",
            json={"team_id": seeded["chelsea"]},
            headers=auth(seeded["ben"]),
        )
        assert forbidden.status_code == 403

        updated = await app_client.put(
            f"/api/picks/{pick_id}",
            json={"team_id": seeded["chelsea"]},
            headers=auth(seeded["ann"]),
        )
        assert updated.status_code == 200
        assert updated.json()["team_id"] == seeded["chelsea"]

        fetched = await app_client.get(f"/api/picks/{pick_id}", headers=auth(seeded["ben"]))
        assert fetched.status_code == 200
        assert fetched.json()["gameweek_name"] == "Gameweek 2"

        deleted = await app_client.delete(f"/api/picks/{pick_id}", headers=auth(seeded["ann"]))
        assert deleted.status_code == 204
        missing = await app_client.get(f"/api/picks/{pick_id}", headers=auth(seeded["ann"]))
        assert missing.status_code == 404

    async def test_gameweek_listing(self, app_client, db_session, seeded):
        await create_pick(db_session, seeded["ann"], 2, seeded["arsenal"])
        await create_pick(db_session, seeded["ben"], 2, seeded["chelsea"])
        response = await app_client.get(
            f"/api/picks/gameweek/{SEASON}/2", headers=auth(seeded["ann"])
        )
        assert response.status_code == 200
        assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_league_standings(app_client, db_session, seeded):
    await create_pick(db_session, seeded["ben"], 1, seeded["arsenal"], points=3, goals_for=2)
    response = await app_client.get("/api/league/standings")
    assert response.status_code == 200
    body = response.json()
    assert body["season_id"] == SEASON
    assert [e["user_id"] for e in body["standings"]][:2] == [seeded["ben"], seeded["ann"]]
    assert body["standings"][0]["wins"] == 1

    unknown = await app_client.get("/api/league/standings", params={"season_id": "1900/1901"})
    assert unknown.status_code == 200
    assert unknown.json()["standings"] == []
