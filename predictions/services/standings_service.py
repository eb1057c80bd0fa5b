"""Participant leaderboard.

The aggregation itself is a pure function over users, picks, gameweeks and
eliminations so it can be reasoned about (and tested) without a database.
``get_standings`` loads those inputs for one season and caches the result
briefly; every service that changes picks, points or eliminations calls
``invalidate_standings_cache``.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.config import settings
from predictions.models.league import LeagueStandingsResponse, StandingEntry
from predictions.schemas.eliminations import UserElimination
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.participations import SeasonParticipation
from predictions.schemas.picks import Pick
from predictions.schemas.seasons import Season
from predictions.schemas.users import User
from predictions.services.game_rules import POINTS_FOR_DRAW, POINTS_FOR_WIN
from predictions.utils.dates import utcnow

logger = logging.getLogger(__name__)


@dataclass
class _CachedStandings:
    expires_at: float  # time.monotonic() deadline
    response: LeagueStandingsResponse


_cache: dict[str, _CachedStandings] = {}


def invalidate_standings_cache(season_id: Optional[str] = None) -> None:
    """Drop cached standings for one season, or for all seasons."""
    if season_id is None:
        _cache.clear()
    else:
        _cache.pop(season_id, None)


def cache_lifetime(ttl: float, deadlines: Iterable[datetime], now: datetime) -> float:
    """Seconds a freshly built leaderboard stays valid.

    The TTL is cut short by the next upcoming deadline: once it passes, that
    gameweek's picks start counting towards picks made, W/D/L and goals.
    """
    upcoming = [(deadline - now).total_seconds() for deadline in deadlines if deadline >= now]
    return min([ttl, *upcoming])


def _sort_key(entry: StandingEntry) -> tuple[int, int, int]:
    return (-entry.total_points, -entry.goal_difference, -entry.goals_for)


def calculate_standings(
    users: Iterable[User],
    picks: Iterable[Pick],
    gameweeks: Iterable[Gameweek],
    eliminations: Iterable[UserElimination] = (),
    now: Optional[datetime] = None,
) -> list[StandingEntry]:
    """Aggregate picks into an ordered leaderboard.

    ``total_points`` sums every pick. The secondary stats (picks made, W/D/L,
    goals) only count picks whose gameweek deadline has already passed. Ties
    on points, goal difference and goals for keep the order of ``users``.

    Args:
        users: Participants to rank, in encounter order
        picks: Picks of those participants (others are ignored)
        gameweeks: Gameweeks the picks refer to
        eliminations: Elimination records used to annotate entries
        now: Reference time for "completed" (defaults to current UTC)

    Returns:
        Standing entries sorted best-first with 1-based position and rank
    """
    now = now or utcnow()
    completed = {
        (gw.season_id, gw.week_number) for gw in gameweeks if gw.deadline < now
    }
    eliminated = {e.user_id: e for e in eliminations}

    entries: dict[int, StandingEntry] = {}
    for user in users:
        if user.id is None or user.id in entries:
            continue
        entries[user.id] = StandingEntry(user_id=user.id, user_name=user.full_name)

    for pick in picks:
        entry = entries.get(pick.user_id)
        if entry is None:
            continue
        entry.total_points += pick.points
        if (pick.season_id, pick.gameweek_number) not in completed:
            continue
        entry.picks_made += 1
        entry.goals_for += pick.goals_for
        entry.goals_against += pick.goals_against
        if pick.points == POINTS_FOR_WIN:
            entry.wins += 1
        elif pick.points == POINTS_FOR_DRAW:
            entry.draws += 1
        else:
            entry.losses += 1

    for entry in entries.values():
        entry.goal_difference = entry.goals_for - entry.goals_against
        elimination = eliminated.get(entry.user_id)
        if elimination is not None:
            entry.is_eliminated = True
            entry.eliminated_in_gameweek = elimination.gameweek_number
            entry.elimination_position = elimination.position

    # sorted() is stable, so equal keys keep encounter order
    ordered = sorted(entries.values(), key=_sort_key)
    for index, entry in enumerate(ordered, start=1):
        entry.position = index
        entry.rank = index
    return ordered


async def resolve_season_id(db: AsyncSession, season_id: Optional[str]) -> Optional[str]:
    """Return ``season_id`` if it exists, else the active season when none was given."""
    if season_id:
        result = await db.execute(select(Season.name).where(Season.name == season_id))
    else:
        result = await db.execute(
            select(Season.name).where(Season.is_active.is_(True))  # type: ignore[attr-defined]
        )
    return result.scalars().first()


async def get_standings(
    db: AsyncSession,
    season_id: Optional[str] = None,
) -> LeagueStandingsResponse:
    """Build the leaderboard for a season (the active one by default).

    Only approved participants are ranked. Unknown seasons, or a missing active
    season, produce an empty leaderboard rather than an error.
    """
    async with db.begin():
        resolved = await resolve_season_id(db, season_id)
        if resolved is None:
            return LeagueStandingsResponse(season_id=season_id, last_updated=utcnow())

        cached = _cache.get(resolved)
        if cached is not None and time.monotonic() < cached.expires_at:
            logger.debug("Returning standings from cache for season %s", resolved)
            return cached.response

        logger.info("Calculating standings for season %s", resolved)

        users_result = await db.execute(
            select(User)
            .join(SeasonParticipation, SeasonParticipation.user_id == User.id)
            .where(
                SeasonParticipation.season_id == resolved,
                SeasonParticipation.is_approved.is_(True),  # type: ignore[attr-defined]
            )
            .order_by(User.id)
        )
        users = list(users_result.scalars().all())

        picks_result = await db.execute(select(Pick).where(Pick.season_id == resolved))
        gameweeks_result = await db.execute(
            select(Gameweek).where(Gameweek.season_id == resolved)
        )
        eliminations_result = await db.execute(
            select(UserElimination).where(UserElimination.season_id == resolved)
        )

        gameweeks = list(gameweeks_result.scalars().all())
        now = utcnow()
        standings = calculate_standings(
            users,
            picks_result.scalars().all(),
            gameweeks,
            eliminations_result.scalars().all(),
            now=now,
        )
        lifetime = cache_lifetime(
            settings.standings_cache_seconds, (gw.deadline for gw in gameweeks), now
        )

    logger.info("Calculated standings for %d players", len(standings))
    response = LeagueStandingsResponse(
        season_id=resolved,
        standings=standings,
        total_players=len(standings),
        last_updated=now,
    )
    if lifetime > 0:
        _cache[resolved] = _CachedStandings(
            expires_at=time.monotonic() + lifetime, response=response
        )
    return response
