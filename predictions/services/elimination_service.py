"""Bottom-N eliminations after configured gameweeks, plus their administration.

A gameweek is processed at most once: the ``elimination_batches`` row written
alongside the eliminations is the marker, and its unique key turns a
concurrent second run into a no-op instead of a double elimination.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.eliminations import (
    BulkUpdateResult,
    EliminationConfig,
    ProcessEliminationsResponse,
    UserEliminationRead,
)
from predictions.schemas.eliminations import (
    SYSTEM_ACTOR_ID,
    EliminationBatch,
    EliminationTrigger,
    UserElimination,
)
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.picks import Pick
from predictions.schemas.users import User
from predictions.services import admin_action_service
from predictions.services.errors import NotFoundError, StateConflictError
from predictions.services.pick_service import get_gameweek
from predictions.services.standings_service import invalidate_standings_cache
from predictions.utils.dates import utcnow

logger = logging.getLogger(__name__)

MAX_ELIMINATION_COUNT = 100
SYSTEM_ACTOR_NAME = "System"


@dataclass(frozen=True)
class EliminationCandidate:
    user_id: int
    total_points: int


def rank_for_elimination(
    pick_points: Iterable[tuple[int, int]],
    excluded_user_ids: set[int],
    count: int,
) -> list[EliminationCandidate]:
    """Pick the ``count`` lowest scorers.

    Args:
        pick_points: (user_id, points) for every pick up to the gameweek
        excluded_user_ids: Users already eliminated earlier in the season
        count: How many to eliminate

    Returns:
        Candidates ordered by total points, then user id (both ascending)
    """
    totals: dict[int, int] = {}
    for user_id, points in pick_points:
        if user_id in excluded_user_ids:
            continue
        totals[user_id] = totals.get(user_id, 0) + points
    ranked = sorted(totals.items(), key=lambda item: (item[1], item[0]))
    return [EliminationCandidate(user_id=u, total_points=p) for u, p in ranked[: max(count, 0)]]


def trigger_for_actor(actor_id: int) -> EliminationTrigger:
    return EliminationTrigger.SYSTEM if actor_id == SYSTEM_ACTOR_ID else EliminationTrigger.ADMIN


async def _user_names(db: AsyncSession, user_ids: Iterable[Optional[int]]) -> dict[int, str]:
    ids = {uid for uid in user_ids if uid is not None and uid != SYSTEM_ACTOR_ID}
    names: dict[int, str] = {SYSTEM_ACTOR_ID: SYSTEM_ACTOR_NAME}
    if ids:
        result = await db.execute(select(User).where(User.id.in_(ids)))  # type: ignore[union-attr]
        names.update({u.id: u.full_name for u in result.scalars().all() if u.id is not None})
    return names


def _to_read(elimination: UserElimination, names: dict[int, str]) -> UserEliminationRead:
    return UserEliminationRead(
        id=elimination.id or 0,
        user_id=elimination.user_id,
        user_name=names.get(elimination.user_id, "Unknown"),
        season_id=elimination.season_id,
        gameweek_number=elimination.gameweek_number,
        position=elimination.position,
        total_points=elimination.total_points,
        eliminated_at=elimination.eliminated_at,
        eliminated_by=elimination.eliminated_by,
        eliminated_by_name=(
            names.get(elimination.eliminated_by)
            if elimination.eliminated_by is not None
            else None
        ),
        trigger=elimination.trigger,
    )


async def is_gameweek_processed(db: AsyncSession, season_id: str, gameweek_number: int) -> bool:
    result = await db.execute(
        select(EliminationBatch.id).where(
            EliminationBatch.season_id == season_id,
            EliminationBatch.gameweek_number == gameweek_number,
        )
    )
    return result.first() is not None


async def process_gameweek_eliminations(
    db: AsyncSession,
    season_id: str,
    gameweek_number: int,
    actor_id: int,
) -> ProcessEliminationsResponse:
    """Eliminate the lowest-scoring active players after a gameweek.

    Totals cover every pick up to and including the gameweek. Players already
    eliminated earlier in the season are left out. Ties on points go to the
    lower user id.

    Args:
        db: Async database session
        season_id: Season name
        gameweek_number: Gameweek being closed out
        actor_id: Admin user id, or ``SYSTEM_ACTOR_ID`` for the results pipeline

    Returns:
        ProcessEliminationsResponse; a no-op when nothing is configured or the
        gameweek was already processed

    Raises:
        NotFoundError: Gameweek does not exist
    """
    try:
        async with db.begin():
            gameweek = await get_gameweek(db, season_id, gameweek_number)
            if gameweek is None:
                raise NotFoundError("Gameweek not found")

            count = gameweek.elimination_count
            if count == 0:
                return ProcessEliminationsResponse(
                    message=f"No eliminations configured for GW{gameweek_number}"
                )

            if await is_gameweek_processed(db, season_id, gameweek_number):
                return ProcessEliminationsResponse(
                    message=f"Eliminations already processed for GW{gameweek_number}"
                )

            logger.info(
                "Processing eliminations for GW%s. Eliminating %s players",
                gameweek_number,
                count,
            )

            earlier = await db.execute(
                select(UserElimination.user_id).where(
                    UserElimination.season_id == season_id,
                    UserElimination.gameweek_number != gameweek_number,
                )
            )
            picks = await db.execute(
                select(Pick.user_id, Pick.points).where(
                    Pick.season_id == season_id,
                    Pick.gameweek_number <= gameweek_number,  # type: ignore[operator]
                )
            )
            candidates = rank_for_elimination(
                ((row.user_id, row.points) for row in picks.all()),
                set(earlier.scalars().all()),
                count,
            )

            now = utcnow()
            trigger = trigger_for_actor(actor_id).value
            db.add(
                EliminationBatch(
                    season_id=season_id,
                    gameweek_number=gameweek_number,
                    eliminated_count=len(candidates),
                    processed_at=now,
                    processed_by=actor_id,
                )
            )
            # the marker goes first so a lost race fails before any elimination row
            await db.flush()

            eliminations = [
                UserElimination(
                    user_id=candidate.user_id,
                    season_id=season_id,
                    gameweek_number=gameweek_number,
                    position=position,
                    total_points=candidate.total_points,
                    eliminated_at=now,
                    eliminated_by=actor_id,
                    trigger=trigger,
                )
                for position, candidate in enumerate(candidates, start=1)
            ]
            db.add_all(eliminations)
            await db.flush()
            if actor_id != SYSTEM_ACTOR_ID:
                admin_action_service.record_admin_action(
                    db,
                    actor_id,
                    admin_action_service.PROCESS_ELIMINATIONS,
                    {"players_eliminated": len(eliminations)},
                    season_id=season_id,
                    gameweek_number=gameweek_number,
                )

            names = await _user_names(
                db, [e.user_id for e in eliminations] + [actor_id]
            )
            eliminated = [_to_read(e, names) for e in eliminations]
    except IntegrityError:
        logger.info(
            "Eliminations for GW%s of %s were processed concurrently", gameweek_number, season_id
        )
        return ProcessEliminationsResponse(
            message=f"Eliminations already processed for GW{gameweek_number}"
        )

    invalidate_standings_cache(season_id)
    logger.info("Elimination processing completed for GW%s", gameweek_number)
    return ProcessEliminationsResponse(
        players_eliminated=len(eliminated),
        eliminated_players=eliminated,
        message=(
            f"Successfully eliminated {len(eliminated)} player(s) from GW{gameweek_number}"
        ),
    )


async def get_season_eliminations(db: AsyncSession, season_id: str) -> list[UserEliminationRead]:
    async with db.begin():
        result = await db.execute(
            select(UserElimination)
            .where(UserElimination.season_id == season_id)
            .order_by(UserElimination.gameweek_number, UserElimination.position)
        )
        rows = list(result.scalars().all())
        names = await _user_names(
            db, [r.user_id for r in rows] + [r.eliminated_by for r in rows]
        )
    return [_to_read(r, names) for r in rows]


async def get_gameweek_eliminations(
    db: AsyncSession, season_id: str, gameweek_number: int
) -> list[UserEliminationRead]:
    async with db.begin():
        result = await db.execute(
            select(UserElimination)
            .where(
                UserElimination.season_id == season_id,
                UserElimination.gameweek_number == gameweek_number,
            )
            .order_by(UserElimination.position)
        )
        rows = list(result.scalars().all())
        names = await _user_names(
            db, [r.user_id for r in rows] + [r.eliminated_by for r in rows]
        )
    return [_to_read(r, names) for r in rows]


async def is_user_eliminated(db: AsyncSession, user_id: int, season_id: str) -> bool:
    async with db.begin():
        result = await db.execute(
            select(UserElimination.id).where(
                UserElimination.user_id == user_id,
                UserElimination.season_id == season_id,
            )
        )
        return result.first() is not None


async def get_elimination_configs(db: AsyncSession, season_id: str) -> list[EliminationConfig]:
    """Per-gameweek elimination count and whether it has been processed."""
    async with db.begin():
        gameweeks = await db.execute(
            select(Gameweek)
            .where(Gameweek.season_id == season_id)
            .order_by(Gameweek.week_number)
        )
        processed = await db.execute(
            select(EliminationBatch.gameweek_number).where(
                EliminationBatch.season_id == season_id
            )
        )
        processed_weeks = set(processed.scalars().all())
        return [
            EliminationConfig(
                gameweek_id=gw.id or 0,
                week_number=gw.week_number,
                elimination_count=gw.elimination_count,
                has_been_processed=gw.week_number in processed_weeks,
                deadline=gw.deadline,
            )
            for gw in gameweeks.scalars().all()
        ]


async def update_elimination_count(
    db: AsyncSession,
    season_id: str,
    gameweek_number: int,
    elimination_count: int,
    *,
    admin_id: Optional[int] = None,
) -> None:
    """Set how many players are eliminated after a gameweek.

    Raises:
        NotFoundError: Gameweek does not exist
        StateConflictError: Eliminations for the gameweek were already processed
    """
    async with db.begin():
        gameweek = await get_gameweek(db, season_id, gameweek_number)
        if gameweek is None:
            raise NotFoundError("Gameweek not found")
        if await is_gameweek_processed(db, season_id, gameweek_number):
            raise StateConflictError(
                "Cannot update elimination count after eliminations have been processed"
            )
        gameweek.elimination_count = elimination_count
        gameweek.updated_at = utcnow()
        db.add(gameweek)
        if admin_id is not None:
            admin_action_service.record_admin_action(
                db,
                admin_id,
                admin_action_service.UPDATE_ELIMINATION_COUNT,
                {"elimination_count": elimination_count},
                season_id=season_id,
                gameweek_number=gameweek_number,
            )

    logger.info("Updated elimination count for GW%s to %s", gameweek_number, elimination_count)


async def bulk_update_elimination_counts(
    db: AsyncSession,
    season_id: str,
    counts: dict[int, int],
    *,
    admin_id: Optional[int] = None,
) -> BulkUpdateResult:
    """Apply many counts at once; missing, processed or out-of-range entries are
    logged and skipped rather than failing the whole request."""
    updated = 0
    skipped = 0
    async with db.begin():
        processed = await db.execute(
            select(EliminationBatch.gameweek_number).where(
                EliminationBatch.season_id == season_id
            )
        )
        processed_weeks = set(processed.scalars().all())
        for week_number, count in sorted(counts.items()):
            if not 0 <= count <= MAX_ELIMINATION_COUNT:
                logger.warning("Invalid elimination count %s for GW%s, skipping", count, week_number)
                skipped += 1
                continue
            gameweek = await get_gameweek(db, season_id, week_number)
            if gameweek is None:
                logger.warning("Gameweek %s-%s not found, skipping", season_id, week_number)
                skipped += 1
                continue
            if week_number in processed_weeks:
                logger.warning("Eliminations already processed for GW%s, skipping", week_number)
                skipped += 1
                continue
            gameweek.elimination_count = count
            gameweek.updated_at = utcnow()
            db.add(gameweek)
            updated += 1
        if admin_id is not None:
            admin_action_service.record_admin_action(
                db,
                admin_id,
                admin_action_service.BULK_UPDATE_ELIMINATION_COUNTS,
                {"counts": counts, "updated": updated, "skipped": skipped},
                season_id=season_id,
            )

    logger.info("Bulk updated elimination counts for %d gameweeks", updated)
    return BulkUpdateResult(updated=updated, skipped=skipped)
