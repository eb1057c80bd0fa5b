"""Results hook: rescoring picks from fixture results and closing out gameweeks.

Fixture data itself comes from an external source behind
``FixtureResultsProvider``; this module applies what it reports, rescoring the
affected picks and running the gameweek's eliminations once every fixture has
reached a terminal state.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.eliminations import ProcessEliminationsResponse
from predictions.models.results import FixtureUpdate, FixtureUpdateDetail, ResultsSyncResponse
from predictions.schemas.eliminations import SYSTEM_ACTOR_ID
from predictions.schemas.fixtures import Fixture, FixtureStatus
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.picks import Pick
from predictions.schemas.seasons import Season
from predictions.schemas.teams import Team
from predictions.services import admin_action_service
from predictions.services.elimination_service import (
    is_gameweek_processed,
    process_gameweek_eliminations,
)
from predictions.services.errors import NotFoundError
from predictions.services.game_rules import is_terminal_status, result_points
from predictions.services.notification_service import (
    ELIMINATIONS_PROCESSED,
    RESULTS_UPDATED,
    NotificationSender,
)
from predictions.services.pick_service import get_gameweek
from predictions.services.standings_service import invalidate_standings_cache
from predictions.utils.dates import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


class FixtureResultsProvider:
    """External fixture source, looked up by the fixture's ``external_id``."""

    async def get_fixture(self, external_id: int) -> Optional[FixtureUpdate]:
        raise NotImplementedError


def score_pick(team_id: int, fixtures: list[Fixture]) -> tuple[int, int, int]:
    """(points, goals_for, goals_against) for a team over its finished fixtures."""
    points = goals_for = goals_against = 0
    for fixture in fixtures:
        if fixture.status != FixtureStatus.FINISHED.value or not fixture.involves(team_id):
            continue
        home = fixture.home_team_id == team_id
        scored = (fixture.home_score if home else fixture.away_score) or 0
        conceded = (fixture.away_score if home else fixture.home_score) or 0
        goals_for += scored
        goals_against += conceded
        points += result_points(scored, conceded)
    return points, goals_for, goals_against


async def recalculate_points_for_gameweek(
    db: AsyncSession,
    season_id: str,
    gameweek_number: int,
    *,
    admin_id: Optional[int] = None,
) -> int:
    """Rescore every pick of a gameweek from its FINISHED fixtures.

    Only the scoring fields change; the chosen team never does.

    Returns:
        Number of picks rescored
    """
    logger.info("Recalculating points for GW%s of %s", gameweek_number, season_id)
    async with db.begin():
        fixtures_result = await db.execute(
            select(Fixture).where(
                Fixture.season_id == season_id, Fixture.gameweek_number == gameweek_number
            )
        )
        fixtures = list(fixtures_result.scalars().all())
        picks_result = await db.execute(
            select(Pick).where(
                Pick.season_id == season_id, Pick.gameweek_number == gameweek_number
            )
        )
        picks = list(picks_result.scalars().all())
        now = utcnow()
        for pick in picks:
            pick.points, pick.goals_for, pick.goals_against = score_pick(pick.team_id, fixtures)
            pick.updated_at = now
            db.add(pick)
        if admin_id is not None:
            admin_action_service.record_admin_action(
                db,
                admin_id,
                admin_action_service.RECALCULATE_POINTS,
                {"picks_recalculated": len(picks)},
                season_id=season_id,
                gameweek_number=gameweek_number,
            )

    invalidate_standings_cache(season_id)
    logger.info("Points recalculated for %d picks in GW%s", len(picks), gameweek_number)
    return len(picks)


async def process_eliminations_if_gameweek_complete(
    db: AsyncSession,
    season_id: str,
    gameweek_number: int,
    notifier: NotificationSender,
) -> Optional[ProcessEliminationsResponse]:
    """Run the gameweek's eliminations once all its fixtures are terminal.

    Never raises: failures are logged and ``None`` is returned, as it is when
    there is nothing to do.
    """
    try:
        async with db.begin():
            gameweek = await get_gameweek(db, season_id, gameweek_number)
            if gameweek is None or gameweek.elimination_count == 0:
                return None
            if await is_gameweek_processed(db, season_id, gameweek_number):
                logger.debug("Eliminations already processed for GW%s", gameweek_number)
                return None
            statuses = await db.execute(
                select(Fixture.status).where(
                    Fixture.season_id == season_id,
                    Fixture.gameweek_number == gameweek_number,
                )
            )
            statuses_list = list(statuses.scalars().all())
        if not statuses_list or not all(is_terminal_status(s) for s in statuses_list):
            logger.debug(
                "Not all fixtures finished for GW%s, skipping elimination processing",
                gameweek_number,
            )
            return None

        logger.info(
            "All fixtures finished for GW%s, processing eliminations automatically",
            gameweek_number,
        )
        response = await process_gameweek_eliminations(
            db, season_id, gameweek_number, SYSTEM_ACTOR_ID
        )
    except Exception:
        logger.exception(
            "Failed to automatically process eliminations for GW%s", gameweek_number
        )
        return None

    logger.info(
        "Automatic elimination processing completed for GW%s: %s",
        gameweek_number,
        response.message,
    )
    if response.players_eliminated > 0:
        try:
            await notifier.broadcast(
                ELIMINATIONS_PROCESSED,
                {
                    "season_id": season_id,
                    "gameweek_number": gameweek_number,
                    "players_eliminated": response.players_eliminated,
                    "eliminated_players": [
                        {
                            "user_id": e.user_id,
                            "user_name": e.user_name,
                            "position": e.position,
                            "total_points": e.total_points,
                        }
                        for e in response.eliminated_players
                    ],
                    "message": response.message,
                    "timestamp": utcnow(),
                },
            )
        except Exception:
            logger.exception("Failed to send elimination notification for GW%s", gameweek_number)
    return response


async def find_current_gameweek(
    db: AsyncSession, now: Optional[datetime] = None
) -> Optional[tuple[str, int]]:
    """Latest gameweek of the active season whose deadline has passed that still
    has unfinished or future fixtures, as ``(season_id, week_number)``."""
    now = now or utcnow()
    async with db.begin():
        gameweeks = await db.execute(
            select(Gameweek.season_id, Gameweek.week_number)
            .join(Season, Season.name == Gameweek.season_id)
            .where(
                Season.is_active.is_(True),  # type: ignore[attr-defined]
                Gameweek.deadline < now,  # type: ignore[operator]
            )
            .order_by(Gameweek.deadline.desc())  # type: ignore[attr-defined]
        )
        for season_id, week_number in gameweeks.all():
            fixtures = await db.execute(
                select(Fixture.status, Fixture.kickoff_time).where(
                    Fixture.season_id == season_id, Fixture.gameweek_number == week_number
                )
            )
            for status, kickoff in fixtures.all():
                if not is_terminal_status(status) or kickoff > now:
                    return season_id, week_number
    return None


async def _apply_fixture_updates(
    db: AsyncSession,
    season_id: str,
    gameweek_number: int,
    updates: dict[int, FixtureUpdate],
) -> list[FixtureUpdateDetail]:
    details: list[FixtureUpdateDetail] = []
    async with db.begin():
        teams_result = await db.execute(select(Team.id, Team.name))
        team_names = {row.id: row.name for row in teams_result.all()}
        fixtures_result = await db.execute(
            select(Fixture).where(
                Fixture.season_id == season_id, Fixture.gameweek_number == gameweek_number
            )
        )
        now = utcnow()
        for fixture in fixtures_result.scalars().all():
            update = updates.get(fixture.id or 0)
            if update is None:
                continue
            old_status = fixture.status
            old_scores = (fixture.home_score, fixture.away_score)

            fixture.status = update.status
            if update.home_score is not None and update.away_score is not None:
                fixture.home_score = update.home_score
                fixture.away_score = update.away_score
            if update.kickoff_time is not None:
                fixture.kickoff_time = as_naive_utc(update.kickoff_time)
            fixture.updated_at = now
            db.add(fixture)

            if old_status == fixture.status and old_scores == (
                fixture.home_score,
                fixture.away_score,
            ):
                continue
            detail = FixtureUpdateDetail(
                fixture_id=fixture.id or 0,
                gameweek_number=gameweek_number,
                home_team=team_names.get(fixture.home_team_id, "Unknown"),
                away_team=team_names.get(fixture.away_team_id, "Unknown"),
                old_status=old_status,
                new_status=fixture.status,
                home_score=fixture.home_score,
                away_score=fixture.away_score,
            )
            details.append(detail)
            logger.info(
                "Updated fixture: %s %s - %s %s (%s -> %s)",
                detail.home_team,
                detail.home_score,
                detail.away_score,
                detail.away_team,
                detail.old_status,
                detail.new_status,
            )
    return details


async def sync_gameweek_results(
    db: AsyncSession,
    season_id: str,
    gameweek_number: int,
    provider: FixtureResultsProvider,
    notifier: NotificationSender,
) -> ResultsSyncResponse:
    """Pull the latest state of a gameweek's fixtures and apply it.

    Args:
        db: Async database session
        season_id: Season name
        gameweek_number: Gameweek to sync
        provider: External fixture source
        notifier: Receives "results updated" and "eliminations processed"

    Returns:
        ResultsSyncResponse describing what changed

    Raises:
        NotFoundError: Gameweek does not exist
    """
    async with db.begin():
        if await get_gameweek(db, season_id, gameweek_number) is None:
            raise NotFoundError(f"Gameweek {season_id}-{gameweek_number} not found")
        linked = await db.execute(
            select(Fixture.id, Fixture.external_id).where(
                Fixture.season_id == season_id,
                Fixture.gameweek_number == gameweek_number,
                Fixture.external_id.is_not(None),  # type: ignore[union-attr]
            )
        )
        external_ids = {row.id: row.external_id for row in linked.all()}

    logger.info(
        "Updating %d fixtures from external source for GW%s", len(external_ids), gameweek_number
    )
    updates: dict[int, FixtureUpdate] = {}
    for fixture_id, external_id in external_ids.items():
        try:
            update = await provider.get_fixture(external_id)
        except Exception:
            logger.warning(
                "Failed to update fixture %s (external %s)", fixture_id, external_id, exc_info=True
            )
            continue
        if update is not None:
            updates[fixture_id] = update

    details = await _apply_fixture_updates(db, season_id, gameweek_number, updates)
    response = ResultsSyncResponse(
        fixtures_updated=len(details), gameweeks_processed=1, updated_fixtures=details
    )

    if details:
        logger.info(
            "Recalculating points for GW%s due to %d fixture updates",
            gameweek_number,
            len(details),
        )
        response.picks_recalculated = await recalculate_points_for_gameweek(
            db, season_id, gameweek_number
        )

    response.message = (
        f"GW{gameweek_number}: Updated {response.fixtures_updated} fixtures, "
        f"recalculated {response.picks_recalculated} picks"
    )

    if details:
        try:
            await notifier.broadcast(
                RESULTS_UPDATED,
                {
                    "season_id": season_id,
                    "fixtures_updated": response.fixtures_updated,
                    "picks_recalculated": response.picks_recalculated,
                    "updated_fixtures": [d.model_dump() for d in details],
                    "message": response.message,
                    "timestamp": utcnow(),
                },
            )
        except Exception:
            logger.exception("Failed to send results notification for GW%s", gameweek_number)

    await process_eliminations_if_gameweek_complete(db, season_id, gameweek_number, notifier)

    logger.info("Results sync completed for GW%s: %s", gameweek_number, response.message)
    return response


async def sync_recent_results(
    db: AsyncSession,
    provider: FixtureResultsProvider,
    notifier: NotificationSender,
    now: Optional[datetime] = None,
) -> ResultsSyncResponse:
    """Sync whichever gameweek is currently in play, if any."""
    current = await find_current_gameweek(db, now)
    if current is None:
        logger.info("No current gameweek found with unfinished fixtures")
        return ResultsSyncResponse(message="No current gameweek with unfinished fixtures")
    season_id, week_number = current
    logger.info("Found current gameweek: GW%s", week_number)
    return await sync_gameweek_results(db, season_id, week_number, provider, notifier)


async def gameweeks_pending_elimination(
    db: AsyncSession, now: Optional[datetime] = None
) -> list[tuple[str, int]]:
    """Gameweeks past their deadline with eliminations configured but not yet
    processed, oldest first."""
    now = now or utcnow()
    async with db.begin():
        result = await db.execute(
            select(Gameweek.season_id, Gameweek.week_number)
            .where(
                Gameweek.deadline < now,  # type: ignore[operator]
                Gameweek.elimination_count > 0,  # type: ignore[operator]
            )
            .order_by(Gameweek.deadline)
        )
        pending = []
        for season_id, week_number in result.all():
            if not await is_gameweek_processed(db, season_id, week_number):
                pending.append((season_id, week_number))
    return pending


async def run_results_pass(
    db: AsyncSession,
    notifier: NotificationSender,
    provider: Optional[FixtureResultsProvider] = None,
    now: Optional[datetime] = None,
) -> ResultsSyncResponse:
    """One pass of the results sweep.

    With a provider the current gameweek is synced from it. Without one the
    fixture rows are assumed to be kept up to date by the external sync, so
    the current gameweek and any gameweek still awaiting eliminations are
    rescored and closed out when complete.
    """
    if provider is not None:
        return await sync_recent_results(db, provider, notifier, now)

    targets: list[tuple[str, int]] = []
    current = await find_current_gameweek(db, now)
    if current is not None:
        targets.append(current)
    for key in await gameweeks_pending_elimination(db, now):
        if key not in targets:
            targets.append(key)

    response = ResultsSyncResponse()
    for season_id, week_number in targets:
        try:
            picks = await recalculate_points_for_gameweek(db, season_id, week_number)
        except Exception:
            logger.exception("Rescoring failed for GW%s of %s", week_number, season_id)
            continue
        response.picks_recalculated += picks
        await process_eliminations_if_gameweek_complete(db, season_id, week_number, notifier)
        response.gameweeks_processed += 1
    response.message = (
        f"Rescored {response.gameweeks_processed} gameweek(s), "
        f"recalculated {response.picks_recalculated} picks"
    )
    return response
