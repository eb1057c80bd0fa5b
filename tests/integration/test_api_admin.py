"""HTTP tests for the admin endpoints."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.schemas.fixtures import FixtureStatus
from predictions.services.notification_service import ELIMINATIONS_PROCESSED
from tests.helpers import (
    SEASON,
    auth,
    create_fixture,
    create_gameweek,
    create_pick,
    create_season,
    create_team,
    create_user,
    hours_from_now,
)

FINISHED = FixtureStatus.FINISHED.value


@pytest_asyncio.fixture
async def admin_world(db_session: AsyncSession) -> dict[str, int]:
    await create_season(db_session)
    ids = {
        "admin": await create_user(
            db_session, "admin@example.com", "Ada", "Admin", is_admin=True, approved_for=None
        ),
        "ann": await create_user(db_session, "ann@example.com", "Ann"),
        "ben": await create_user(db_session, "ben@example.com", "Ben"),
        "arsenal": await create_team(db_session, "Arsenal"),
        "chelsea": await create_team(db_session, "Chelsea"),
    }
    await create_gameweek(db_session, 1, hours_from_now(-48), elimination_count=1)
    await create_gameweek(db_session, 2, hours_from_now(48))
    return ids


@pytest.mark.asyncio
class TestAdminAccess:
    async def test_players_are_forbidden(self, app_client, admin_world):
        response = await app_client.post("/api/admin/auto-picks", headers=auth(admin_world["ann"]))
        assert response.status_code == 403

    async def test_anonymous_is_unauthenticated(self, app_client, admin_world):
        response = await app_client.get(f"/api/admin/pick-rules/{SEASON}")
        assert response.status_code == 401


@pytest.mark.asyncio
class TestAdminAutoPicks:
    async def test_sweep_all(self, app_client, admin_world, notifier):
        response = await app_client.post(
            "/api/admin/auto-picks", headers=auth(admin_world["admin"])
        )
        assert response.status_code == 200
        assert response.json() == {"picks_assigned": 2, "picks_failed": 0, "gameweeks_processed": 1}
        assert {user for user, _, _ in notifier.auto_picks} == {
            admin_world["ann"],
            admin_world["ben"],
        }

    async def test_single_gameweek_errors_map_to_status(self, app_client, admin_world):
        open_week = await app_client.post(
            f"/api/admin/auto-picks/{SEASON}/2", headers=auth(admin_world["admin"])
        )
        assert open_week.status_code == 409
        missing = await app_client.post(
            f"/api/admin/auto-picks/{SEASON}/20", headers=auth(admin_world["admin"])
        )
        assert missing.status_code == 404


@pytest.mark.asyncio
class TestAdminEliminations:
    async def test_process_and_read_back(self, app_client, db_session, admin_world):
        await create_pick(db_session, admin_world["ann"], 1, admin_world["arsenal"], points=3)
        await create_pick(db_session, admin_world["ben"], 1, admin_world["chelsea"], points=0)
        headers = auth(admin_world["admin"])

        processed = await app_client.post(
            f"/api/admin/eliminations/{SEASON}/1/process", headers=headers
        )
        assert processed.status_code == 200
        body = processed.json()
        assert body["players_eliminated"] == 1
        assert body["eliminated_players"][0]["user_id"] == admin_world["ben"]
        assert body["eliminated_players"][0]["eliminated_by"] == admin_world["admin"]

        again = await app_client.post(
            f"/api/admin/eliminations/{SEASON}/1/process", headers=headers
        )
        assert again.json()["players_eliminated"] == 0

        season = await app_client.get(f"/api/admin/eliminations/{SEASON}", headers=headers)
        assert [e["user_id"] for e in season.json()] == [admin_world["ben"]]
        week = await app_client.get(
            f"/api/admin/eliminations/{SEASON}/gameweeks/1", headers=headers
        )
        assert len(week.json()) == 1

        configs = await app_client.get(
            f"/api/admin/eliminations/{SEASON}/configs", headers=headers
        )
        assert [(c["week_number"], c["has_been_processed"]) for c in configs.json()] == [
            (1, True),
            (2, False),
        ]

        locked = await app_client.put(
            f"/api/admin/eliminations/{SEASON}/1/count",
            json={"elimination_count": 3},
            headers=headers,
        )
        assert locked.status_code == 409

    async def test_update_counts(self, app_client, admin_world):
        headers = auth(admin_world["admin"])
        single = await app_client.put(
            f"/api/admin/eliminations/{SEASON}/2/count",
            json={"elimination_count": 2},
            headers=headers,
        )
        assert single.status_code == 204

        too_many = await app_client.put(
            f"/api/admin/eliminations/{SEASON}/2/count",
            json={"elimination_count": 101},
            headers=headers,
        )
        assert too_many.status_code == 422

        bulk = await app_client.put(
            f"/api/admin/eliminations/{SEASON}/counts",
            json={"counts": {"1": 4, "2": 5, "9": 1}},
            headers=headers,
        )
        assert bulk.status_code == 200
        assert bulk.json() == {"updated": 2, "skipped": 1}


@pytest.mark.asyncio
class TestAdminPickRules:
    async def test_rule_crud(self, app_client, admin_world):
        headers = auth(admin_world["admin"])
        created = await app_client.post(
            "/api/admin/pick-rules",
            json={
                "season_id": SEASON,
                "half": 1,
                "max_times_team_can_be_picked": 2,
                "max_times_opposition_can_be_targeted": 2,
            },
            headers=headers,
        )
        assert created.status_code == 201
        rule_id = created.json()["id"]

        duplicate = await app_client.post(
            "/api/admin/pick-rules",
            json={
                "season_id": SEASON,
                "half": 1,
                "max_times_team_can_be_picked": 1,
                "max_times_opposition_can_be_targeted": 1,
            },
            headers=headers,
        )
        assert duplicate.status_code == 409

        updated = await app_client.put(
            f"/api/admin/pick-rules/{rule_id}",
            json={"max_times_team_can_be_picked": 3, "max_times_opposition_can_be_targeted": 1},
            headers=headers,
        )
        assert updated.json()["max_times_team_can_be_picked"] == 3

        rules = await app_client.get(f"/api/admin/pick-rules/{SEASON}", headers=headers)
        assert rules.json()["first_half"]["id"] == rule_id
        assert rules.json()["second_half"] is None

        deleted = await app_client.delete(f"/api/admin/pick-rules/{rule_id}", headers=headers)
        assert deleted.status_code == 204
        gone = await app_client.delete(f"/api/admin/pick-rules/{rule_id}", headers=headers)
        assert gone.status_code == 404

    async def test_defaults(self, app_client, admin_world):
        headers = auth(admin_world["admin"])
        first = await app_client.post(f"/api/admin/pick-rules/{SEASON}/defaults", headers=headers)
        assert first.status_code == 201
        assert first.json()["second_half"]["half"] == 2
        second = await app_client.post(f"/api/admin/pick-rules/{SEASON}/defaults", headers=headers)
        assert second.status_code == 409


@pytest.mark.asyncio
class TestAdminSeasonsAndResults:
    async def test_create_and_activate_season(self, app_client, admin_world):
        headers = auth(admin_world["admin"])
        created = await app_client.post(
            "/api/admin/seasons",
            json={
                "name": "2026/2027",
                "start_date": "2026-08-14T00:00:00Z",
                "end_date": "2027-05-23T00:00:00Z",
            },
            headers=headers,
        )
        assert created.status_code == 201
        assert created.json()["is_active"] is True

        duplicate = await app_client.post(
            "/api/admin/seasons",
            json={
                "name": "2026/2027",
                "start_date": "2026-08-14T00:00:00Z",
                "end_date": "2027-05-23T00:00:00Z",
            },
            headers=headers,
        )
        assert duplicate.status_code == 409

        back = await app_client.post(
            f"/api/admin/seasons/{SEASON}/activate", headers=headers
        )
        assert back.status_code == 200
        assert back.json()["name"] == SEASON

    async def test_bad_season_dates(self, app_client, admin_world):
        response = await app_client.post(
            "/api/admin/seasons",
            json={
                "name": "2030/2031",
                "start_date": "2031-05-01T00:00:00Z",
                "end_date": "2030-08-01T00:00:00Z",
            },
            headers=auth(admin_world["admin"]),
        )
        assert response.status_code == 422

    async def test_recalculate_closes_out_gameweek(
        self, app_client, db_session, admin_world, notifier
    ):
        await create_fixture(
            db_session,
            1,
            admin_world["arsenal"],
            admin_world["chelsea"],
            hours_from_now(-40),
            status=FINISHED,
            home_score=2,
            away_score=1,
        )
        await create_pick(db_session, admin_world["ann"], 1, admin_world["arsenal"])
        await create_pick(db_session, admin_world["ben"], 1, admin_world["chelsea"])

        response = await app_client.post(
            f"/api/admin/results/{SEASON}/1/recalculate", headers=auth(admin_world["admin"])
        )
        assert response.status_code == 200
        assert response.json()["picks_recalculated"] == 2
        assert [kind for kind, _ in notifier.broadcasts] == [ELIMINATIONS_PROCESSED]
