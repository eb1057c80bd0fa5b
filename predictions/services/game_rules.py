"""Fixed rules of the game: scoring, season halves and fixture states."""

from typing import Optional

from predictions.config import settings
from predictions.schemas.fixtures import FixtureStatus

POINTS_FOR_WIN = 3
POINTS_FOR_DRAW = 1
POINTS_FOR_LOSS = 0

TOTAL_GAMEWEEKS = 38
FIRST_HALF = 1
SECOND_HALF = 2

TERMINAL_FIXTURE_STATUSES = frozenset(
    {
        FixtureStatus.FINISHED.value,
        FixtureStatus.CANCELLED.value,
        FixtureStatus.POSTPONED.value,
    }
)


def first_half_end(boundary: Optional[int] = None) -> int:
    """Last gameweek of the first half (configurable, 19 by default)."""
    return settings.first_half_last_gameweek if boundary is None else boundary


def half_for_gameweek(gameweek_number: int, boundary: Optional[int] = None) -> int:
    return FIRST_HALF if gameweek_number <= first_half_end(boundary) else SECOND_HALF


def half_bounds(half: int, boundary: Optional[int] = None) -> tuple[int, int]:
    """Inclusive (first, last) gameweek numbers of a half."""
    end = first_half_end(boundary)
    if half == FIRST_HALF:
        return 1, end
    return end + 1, TOTAL_GAMEWEEKS


def result_points(goals_for: int, goals_against: int) -> int:
    if goals_for > goals_against:
        return POINTS_FOR_WIN
    if goals_for == goals_against:
        return POINTS_FOR_DRAW
    return POINTS_FOR_LOSS


def is_terminal_status(status: str) -> bool:
    return status in TERMINAL_FIXTURE_STATUSES
