"""Unit tests for the real-world league table used by auto-assignment."""

from datetime import datetime
from typing import Optional

from predictions.schemas.fixtures import Fixture, FixtureStatus
from predictions.schemas.teams import Team
from predictions.services.auto_pick_service import choose_lowest_available_team
from predictions.services.league_table import calculate_league_table

KICKOFF = datetime(2025, 8, 16, 15, 0)


def _team(team_id: int, name: str, active: bool = True) -> Team:
    return Team(id=team_id, name=name, is_active=active)


def _fixture(
    home: int,
    away: int,
    home_score: Optional[int],
    away_score: Optional[int],
    status: str = FixtureStatus.FINISHED.value,
    week: int = 1,
) -> Fixture:
    return Fixture(
        season_id="2025/2026",
        gameweek_number=week,
        home_team_id=home,
        away_team_id=away,
        kickoff_time=KICKOFF,
        home_score=home_score,
        away_score=away_score,
        status=status,
    )


TEAMS = [_team(1, "Arsenal"), _team(2, "Brentford"), _team(3, "Chelsea"), _team(4, "Everton")]


def test_points_and_goals_from_finished_fixtures():
    table = calculate_league_table(TEAMS, [_fixture(1, 2, 2, 0), _fixture(3, 4, 1, 1)])
    by_id = {row.team_id: row for row in table}
    assert (by_id[1].points, by_id[1].won, by_id[1].goal_difference) == (3, 1, 2)
    assert (by_id[2].points, by_id[2].lost, by_id[2].goals_against) == (0, 1, 2)
    assert (by_id[3].points, by_id[3].drawn) == (1, 1)
    assert [row.team_id for row in table] == [1, 3, 4, 2]
    assert [row.position for row in table] == [1, 2, 3, 4]


def test_unfinished_or_unscored_fixtures_are_ignored():
    fixtures = [
        _fixture(1, 2, 5, 0, status=FixtureStatus.IN_PLAY.value),
        _fixture(3, 4, None, None),
    ]
    table = calculate_league_table(TEAMS, fixtures)
    assert all(row.played == 0 for row in table)


def test_full_ties_are_broken_by_team_name():
    table = calculate_league_table(list(reversed(TEAMS)), [])
    assert [row.team_name for row in table] == ["Arsenal", "Brentford", "Chelsea", "Everton"]


def test_teams_only_seen_in_fixtures_are_inactive():
    table = calculate_league_table(TEAMS[:2], [_fixture(1, 9, 0, 3)])
    stranger = next(row for row in table if row.team_id == 9)
    assert not stranger.is_active
    assert stranger.points == 3


def test_lowest_available_team_skips_used_and_inactive_teams():
    teams = TEAMS + [_team(5, "Southampton", active=False)]
    fixtures = [_fixture(1, 2, 1, 0), _fixture(3, 4, 2, 0), _fixture(4, 5, 0, 0, week=2)]
    table = calculate_league_table(teams, fixtures)
    # bottom of the table is Brentford (0 pts, -1); Southampton is inactive
    assert choose_lowest_available_team(table, set()).team_id == 2
    assert choose_lowest_available_team(table, {2}).team_id == 4
    assert choose_lowest_available_team(table, {1, 2, 3, 4}) is None
