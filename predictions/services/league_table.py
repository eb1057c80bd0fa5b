"""Real-world Premier League table, as it stood before a given gameweek.

Auto-assignment walks this table from the bottom, so ties must resolve the same
way every run: points, goal difference and goals for (all descending), then
team name ascending.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.schemas.fixtures import Fixture, FixtureStatus
from predictions.schemas.teams import Team
from predictions.services.game_rules import POINTS_FOR_DRAW, POINTS_FOR_WIN

logger = logging.getLogger(__name__)


@dataclass
class TeamStanding:
    team_id: int
    team_name: str = ""
    is_active: bool = False
    position: int = 0
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


def _record(row: TeamStanding, scored: int, conceded: int) -> None:
    row.played += 1
    row.goals_for += scored
    row.goals_against += conceded
    if scored > conceded:
        row.won += 1
        row.points += POINTS_FOR_WIN
    elif scored == conceded:
        row.drawn += 1
        row.points += POINTS_FOR_DRAW
    else:
        row.lost += 1


def calculate_league_table(
    teams: Iterable[Team], fixtures: Iterable[Fixture]
) -> list[TeamStanding]:
    """Build the table from finished fixtures.

    Fixtures without both scores or not ``FINISHED`` are ignored. Every team in
    ``teams`` appears, with zeros if it has not played. Teams that only appear
    through fixtures keep whatever name ``teams`` gives them (possibly empty).
    """
    known = {team.id: team for team in teams if team.id is not None}
    rows: dict[int, TeamStanding] = {}

    def row_for(team_id: int) -> TeamStanding:
        if team_id not in rows:
            rows[team_id] = TeamStanding(team_id=team_id)
        return rows[team_id]

    for fixture in fixtures:
        if fixture.status != FixtureStatus.FINISHED.value:
            continue
        if fixture.home_score is None or fixture.away_score is None:
            continue
        _record(row_for(fixture.home_team_id), fixture.home_score, fixture.away_score)
        _record(row_for(fixture.away_team_id), fixture.away_score, fixture.home_score)

    for team_id, team in known.items():
        row = row_for(team_id)
        row.team_name = team.name
        row.is_active = team.is_active

    table = sorted(
        rows.values(),
        key=lambda r: (-r.points, -r.goal_difference, -r.goals_for, r.team_name),
    )
    for index, row in enumerate(table, start=1):
        row.position = index
    return table


async def build_league_table(
    db: AsyncSession, season_id: str, before_gameweek: int
) -> list[TeamStanding]:
    """Load the table from finished fixtures in gameweeks strictly before
    ``before_gameweek``. Runs inside the caller's transaction."""
    teams_result = await db.execute(select(Team))
    fixtures_result = await db.execute(
        select(Fixture).where(
            Fixture.season_id == season_id,
            Fixture.gameweek_number < before_gameweek,  # type: ignore[operator]
            Fixture.status == FixtureStatus.FINISHED.value,
        )
    )
    teams = [t for t in teams_result.scalars().all() if t.is_active]
    table = calculate_league_table(teams, fixtures_result.scalars().all())
    logger.debug(
        "League table before GW%s: %s",
        before_gameweek,
        [(row.position, row.team_id, row.points) for row in table],
    )
    return table
