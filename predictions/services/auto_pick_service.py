"""Auto-assignment of picks for participants who missed a deadline.

Each missing participant gets the lowest-placed active team in the real league
table that they have not already used in the current half of the season.
Assignments are written one user per transaction so that one failure (or a
concurrent writer) never undoes the others. Running the same gameweek twice
is harmless: users with a pick are no longer in the needs-pick set.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.auto_picks import AutoPickResult
from predictions.schemas.eliminations import UserElimination
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.participations import SeasonParticipation
from predictions.schemas.picks import Pick
from predictions.services import admin_action_service
from predictions.services.errors import NotFoundError, StateConflictError
from predictions.services.game_rules import half_bounds, half_for_gameweek
from predictions.services.league_table import TeamStanding, build_league_table
from predictions.services.notification_service import NotificationSender
from predictions.services.pick_service import get_gameweek
from predictions.services.standings_service import invalidate_standings_cache
from predictions.utils.dates import utcnow

logger = logging.getLogger(__name__)


async def users_needing_picks(
    db: AsyncSession, season_id: str, gameweek_number: int
) -> list[int]:
    """Approved participants who are not eliminated and have no pick for the
    gameweek, in user id order. Runs inside the caller's transaction."""
    approved = await db.execute(
        select(SeasonParticipation.user_id).where(
            SeasonParticipation.season_id == season_id,
            SeasonParticipation.is_approved.is_(True),  # type: ignore[attr-defined]
        )
    )
    eliminated = await db.execute(
        select(UserElimination.user_id).where(UserElimination.season_id == season_id)
    )
    picked = await db.execute(
        select(Pick.user_id).where(
            Pick.season_id == season_id, Pick.gameweek_number == gameweek_number
        )
    )
    excluded = set(eliminated.scalars().all()) | set(picked.scalars().all())
    return sorted(set(approved.scalars().all()) - excluded)


def choose_lowest_available_team(
    table: list[TeamStanding], used_team_ids: set[int]
) -> Optional[TeamStanding]:
    """Walk the table from the bottom and return the first active, unused team."""
    for row in reversed(table):
        if row.is_active and row.team_id not in used_team_ids:
            return row
    return None


async def _teams_used_in_half(
    db: AsyncSession, user_id: int, season_id: str, gameweek_number: int
) -> set[int]:
    first, last = half_bounds(half_for_gameweek(gameweek_number))
    result = await db.execute(
        select(Pick.team_id).where(
            Pick.user_id == user_id,
            Pick.season_id == season_id,
            Pick.gameweek_number >= first,  # type: ignore[operator]
            Pick.gameweek_number <= last,  # type: ignore[operator]
        )
    )
    return set(result.scalars().all())


async def _assign_for_user(
    db: AsyncSession,
    user_id: int,
    season_id: str,
    gameweek_number: int,
    table: list[TeamStanding],
) -> Optional[TeamStanding]:
    async with db.begin():
        used = await _teams_used_in_half(db, user_id, season_id, gameweek_number)
        choice = choose_lowest_available_team(table, used)
        if choice is None:
            return None
        db.add(
            Pick(
                user_id=user_id,
                season_id=season_id,
                gameweek_number=gameweek_number,
                team_id=choice.team_id,
                is_auto_assigned=True,
            )
        )
        await db.flush()
    return choice


async def assign_missed_picks_for_gameweek(
    db: AsyncSession,
    season_id: str,
    gameweek_number: int,
    notifier: NotificationSender,
    now: Optional[datetime] = None,
) -> AutoPickResult:
    """Assign a team to every participant without a pick for one gameweek.

    Args:
        db: Async database session
        season_id: Season name
        gameweek_number: Gameweek whose deadline has passed
        notifier: Told about each assignment after it commits
        now: Reference time (defaults to current UTC)

    Returns:
        AutoPickResult for this gameweek

    Raises:
        NotFoundError: Gameweek does not exist
        StateConflictError: Deadline has not passed yet, or the gameweek is locked
    """
    now = now or utcnow()
    async with db.begin():
        gameweek = await get_gameweek(db, season_id, gameweek_number)
        if gameweek is None:
            logger.warning("Gameweek %s-%s not found", season_id, gameweek_number)
            raise NotFoundError(f"Gameweek {season_id}-{gameweek_number} not found")

        if gameweek.deadline >= now:
            logger.info(
                "Gameweek %s-%s deadline has not passed yet (deadline %s, now %s)",
                season_id,
                gameweek_number,
                gameweek.deadline,
                now,
            )
            raise StateConflictError(
                f"Gameweek {season_id}-{gameweek_number} deadline has not passed yet. "
                f"Deadline is {gameweek.deadline.isoformat()}"
            )

        if gameweek.is_locked:
            raise StateConflictError(
                f"Gameweek {season_id}-{gameweek_number} is already locked and cannot "
                "have auto-picks assigned"
            )

        needing = await users_needing_picks(db, season_id, gameweek_number)
        if not needing:
            logger.info("No users need auto-pick assignments for GW%s", gameweek_number)
            return AutoPickResult(gameweeks_processed=1)

        logger.info(
            "Found %d users needing auto-picks for GW%s", len(needing), gameweek_number
        )
        table = await build_league_table(db, season_id, gameweek_number)

    assigned = 0
    failed = 0
    for user_id in needing:
        try:
            # plain values only: a failed insert rolls back and expires ORM instances
            choice = await _assign_for_user(db, user_id, season_id, gameweek_number, table)
        except IntegrityError:
            logger.info(
                "User %s already has a pick for GW%s, skipping", user_id, gameweek_number
            )
            continue
        except Exception:
            failed += 1
            logger.exception(
                "Failed to auto-assign pick for user %s in GW%s", user_id, gameweek_number
            )
            continue

        if choice is None:
            failed += 1
            logger.error(
                "Could not find available team for user %s in GW%s",
                user_id,
                gameweek_number,
            )
            continue

        assigned += 1
        logger.info(
            "Auto-assigned %s (position %s) to user %s for GW%s",
            choice.team_name,
            choice.position,
            user_id,
            gameweek_number,
        )
        try:
            await notifier.send_auto_pick_assigned(user_id, choice.team_name, gameweek_number)
        except Exception:
            logger.exception("Failed to send auto-pick notification to user %s", user_id)

    if assigned:
        invalidate_standings_cache(season_id)
    logger.info(
        "Auto-assigned %d picks for GW%s, %d failed", assigned, gameweek_number, failed
    )
    return AutoPickResult(picks_assigned=assigned, picks_failed=failed, gameweeks_processed=1)


async def assign_all_missed_picks(
    db: AsyncSession,
    notifier: NotificationSender,
    now: Optional[datetime] = None,
) -> AutoPickResult:
    """Sweep every unlocked gameweek whose deadline has passed, oldest first."""
    now = now or utcnow()
    async with db.begin():
        result = await db.execute(
            select(Gameweek.season_id, Gameweek.week_number)
            .where(
                Gameweek.deadline < now,  # type: ignore[operator]
                Gameweek.is_locked.is_(False),  # type: ignore[attr-defined]
            )
            .order_by(Gameweek.deadline)
        )
        targets = [(row.season_id, row.week_number) for row in result.all()]

    if not targets:
        logger.info("No in-progress gameweeks with passed deadlines found at %s", now)
        return AutoPickResult()

    logger.info("Processing auto-picks for %d gameweeks with passed deadlines", len(targets))
    total = AutoPickResult()
    for season_id, week_number in targets:
        try:
            outcome = await assign_missed_picks_for_gameweek(
                db, season_id, week_number, notifier, now=now
            )
        except Exception:
            logger.exception("Auto-pick failed for GW%s of %s", week_number, season_id)
            continue
        total = total.merge(outcome)
    return total


async def run_auto_assignment(
    db: AsyncSession,
    notifier: NotificationSender,
    season_id: Optional[str] = None,
    gameweek_number: Optional[int] = None,
    *,
    admin_id: Optional[int] = None,
) -> AutoPickResult:
    """Entry point for admins and the cron runner.

    With both ``season_id`` and ``gameweek_number`` only that gameweek is
    processed (and its errors propagate); otherwise every eligible gameweek is
    swept. When an admin triggered the run, a summary is added to the audit
    trail once the per-user transactions are done.
    """
    if season_id is not None and gameweek_number is not None:
        result = await assign_missed_picks_for_gameweek(db, season_id, gameweek_number, notifier)
    else:
        result = await assign_all_missed_picks(db, notifier)

    if admin_id is not None:
        async with db.begin():
            admin_action_service.record_admin_action(
                db,
                admin_id,
                admin_action_service.AUTO_ASSIGN_PICKS,
                result.model_dump(),
                season_id=season_id,
                gameweek_number=gameweek_number,
            )
    return result
