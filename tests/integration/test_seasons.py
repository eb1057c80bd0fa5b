"""Integration tests for season creation and activation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from predictions.services import season_service
from predictions.services.errors import NotFoundError, StateConflictError


async def _new(db, name: str):
    return await season_service.create_season(
        db,
        name,
        datetime(2025, 8, 15, tzinfo=timezone.utc),
        datetime(2026, 5, 24, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_new_season_becomes_the_only_active_one(db_session):
    await _new(db_session, "2024/2025")
    created = await _new(db_session, "2025/2026")

    assert created.is_active
    assert created.start_date == datetime(2025, 8, 15)
    active = await season_service.get_active_season(db_session)
    assert active is not None and active.name == "2025/2026"
    seasons = {s.name: s.is_active for s in await season_service.list_seasons(db_session)}
    assert seasons == {"2024/2025": False, "2025/2026": True}


@pytest.mark.asyncio
async def test_duplicate_name_conflicts(db_session):
    await _new(db_session, "2025/2026")
    with pytest.raises(StateConflictError, match="already exists"):
        await _new(db_session, "2025/2026")


@pytest.mark.asyncio
async def test_activate_switches_in_one_step(db_session):
    await _new(db_session, "2024/2025")
    await _new(db_session, "2025/2026")

    activated = await season_service.activate_season(db_session, "2024/2025")

    assert activated.is_active
    seasons = {s.name: s.is_active for s in await season_service.list_seasons(db_session)}
    assert seasons == {"2024/2025": True, "2025/2026": False}


@pytest.mark.asyncio
async def test_activate_unknown_season(db_session):
    with pytest.raises(NotFoundError):
        await season_service.activate_season(db_session, "1999/2000")
