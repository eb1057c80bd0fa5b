"""Shared seeding helpers and test doubles.

Seed helpers commit in their own transaction and return plain ids, never ORM
instances: a service that fails rolls back the shared session, which expires
every instance it holds.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from predictions.schemas.eliminations import UserElimination
from predictions.schemas.fixtures import Fixture, FixtureStatus
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.participations import SeasonParticipation
from predictions.schemas.pick_rules import PickRule
from predictions.schemas.picks import Pick
from predictions.schemas.seasons import Season
from predictions.schemas.teams import Team
from predictions.schemas.users import User
from predictions.services.notification_service import NotificationSender
from predictions.utils.dates import utcnow

SEASON = "2025/2026"


class FakeNotifier(NotificationSender):
    """Records every notification; optionally fails to simulate a delivery outage."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.auto_picks: list[tuple[int, str, int]] = []
        self.reminders: list[dict[str, Any]] = []
        self.broadcasts: list[tuple[str, dict[str, Any]]] = []

    def _check(self) -> None:
        if self.fail:
            raise RuntimeError("notification delivery is down")

    async def send_auto_pick_assigned(
        self, user_id: int, team_name: str, gameweek_number: int
    ) -> None:
        self._check()
        self.auto_picks.append((user_id, team_name, gameweek_number))

    async def send_pick_reminder(
        self,
        user_id: int,
        email: str,
        user_name: str,
        gameweek_number: int,
        deadline: datetime,
        hours_before_deadline: int,
    ) -> None:
        self._check()
        self.reminders.append(
            {
                "user_id": user_id,
                "email": email,
                "user_name": user_name,
                "gameweek_number": gameweek_number,
                "hours_before_deadline": hours_before_deadline,
            }
        )

    async def broadcast(self, kind: str, payload: dict[str, Any]) -> None:
        self._check()
        self.broadcasts.append((kind, payload))


def auth(user_id: int) -> dict[str, str]:
    """Headers the upstream auth layer would set for ``user_id``."""
    return {"X-User-Id": str(user_id)}


def hours_from_now(hours: float) -> datetime:
    return utcnow() + timedelta(hours=hours)


async def create_season(
    db: AsyncSession, name: str = SEASON, is_active: bool = True
) -> str:
    async with db.begin():
        db.add(
            Season(
                name=name,
                start_date=datetime(2025, 8, 15),
                end_date=datetime(2026, 5, 24),
                is_active=is_active,
            )
        )
    return name


async def create_user(
    db: AsyncSession,
    email: str,
    first_name: str = "",
    last_name: str = "",
    is_admin: bool = False,
    is_active: bool = True,
    approved_for: Optional[str] = SEASON,
) -> int:
    """Create a user, approved for ``approved_for`` unless it is None."""
    async with db.begin():
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            is_admin=is_admin,
            is_active=is_active,
        )
        db.add(user)
        await db.flush()
        user_id = user.id
        if approved_for is not None:
            db.add(
                SeasonParticipation(
                    user_id=user_id, season_id=approved_for, is_approved=True
                )
            )
    assert user_id is not None
    return user_id


async def create_participation(
    db: AsyncSession, user_id: int, season_id: str = SEASON, is_approved: bool = False
) -> None:
    async with db.begin():
        db.add(SeasonParticipation(user_id=user_id, season_id=season_id, is_approved=is_approved))


async def create_team(db: AsyncSession, name: str, is_active: bool = True) -> int:
    async with db.begin():
        team = Team(name=name, short_name=name[:3].upper(), is_active=is_active)
        db.add(team)
        await db.flush()
        team_id = team.id
    assert team_id is not None
    return team_id


async def create_gameweek(
    db: AsyncSession,
    week_number: int,
    deadline: datetime,
    season_id: str = SEASON,
    elimination_count: int = 0,
    is_locked: bool = False,
) -> int:
    async with db.begin():
        gameweek = Gameweek(
            season_id=season_id,
            week_number=week_number,
            deadline=deadline,
            elimination_count=elimination_count,
            is_locked=is_locked,
        )
        db.add(gameweek)
        await db.flush()
        gameweek_id = gameweek.id
    assert gameweek_id is not None
    return gameweek_id


async def create_fixture(
    db: AsyncSession,
    week_number: int,
    home_team_id: int,
    away_team_id: int,
    kickoff_time: Optional[datetime] = None,
    status: str = FixtureStatus.SCHEDULED.value,
    home_score: Optional[int] = None,
    away_score: Optional[int] = None,
    season_id: str = SEASON,
    external_id: Optional[int] = None,
) -> int:
    async with db.begin():
        fixture = Fixture(
            season_id=season_id,
            gameweek_number=week_number,
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            kickoff_time=kickoff_time or utcnow(),
            status=status,
            home_score=home_score,
            away_score=away_score,
            external_id=external_id,
        )
        db.add(fixture)
        await db.flush()
        fixture_id = fixture.id
    assert fixture_id is not None
    return fixture_id


async def create_pick(
    db: AsyncSession,
    user_id: int,
    week_number: int,
    team_id: int,
    points: int = 0,
    goals_for: int = 0,
    goals_against: int = 0,
    season_id: str = SEASON,
) -> int:
    """Insert a pick directly, bypassing the lifecycle checks."""
    async with db.begin():
        pick = Pick(
            user_id=user_id,
            season_id=season_id,
            gameweek_number=week_number,
            team_id=team_id,
            points=points,
            goals_for=goals_for,
            goals_against=goals_against,
        )
        db.add(pick)
        await db.flush()
        pick_id = pick.id
    assert pick_id is not None
    return pick_id


async def create_pick_rule(
    db: AsyncSession,
    half: int,
    max_team: int = 1,
    max_opposition: int = 1,
    season_id: str = SEASON,
) -> int:
    async with db.begin():
        rule = PickRule(
            season_id=season_id,
            half=half,
            max_times_team_can_be_picked=max_team,
            max_times_opposition_can_be_targeted=max_opposition,
        )
        db.add(rule)
        await db.flush()
        rule_id = rule.id
    assert rule_id is not None
    return rule_id


async def create_elimination(
    db: AsyncSession,
    user_id: int,
    week_number: int,
    position: int = 1,
    total_points: int = 0,
    season_id: str = SEASON,
) -> None:
    async with db.begin():
        db.add(
            UserElimination(
                user_id=user_id,
                season_id=season_id,
                gameweek_number=week_number,
                position=position,
                total_points=total_points,
            )
        )
