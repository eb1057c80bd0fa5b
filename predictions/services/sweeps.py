"""Periodic background sweeps: auto-pick, reminders and results.

Each sweep is an independent asyncio task started from the app lifespan. A
pass opens its own session; errors are logged and the loop backs off before
trying again. Cancelling the task stops the loop, and any open transaction is
rolled back when its session closes.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from predictions.config import settings
from predictions.schemas.fixtures import Fixture, FixtureStatus
from predictions.services.auto_pick_service import assign_all_missed_picks
from predictions.services.game_rules import is_terminal_status
from predictions.services.notification_service import NotificationSender
from predictions.services.reminder_service import send_pick_reminders
from predictions.services.results_service import FixtureResultsProvider, run_results_pass
from predictions.utils.dates import utcnow
from predictions.utils.db_async import SessionLocal

logger = logging.getLogger(__name__)

AUTO_PICK_INITIAL_DELAY = 60
AUTO_PICK_ERROR_BACKOFF = 120
REMINDER_INITIAL_DELAY = 120
REMINDER_ERROR_BACKOFF = 300
RESULTS_INITIAL_DELAY = 30
RESULTS_ERROR_BACKOFF = 300

# 90 minutes plus stoppage and half-time
GAME_LENGTH = timedelta(minutes=105)
LIVE_WINDOW = timedelta(hours=3.5)
RECENTLY_FINISHED_WINDOW = timedelta(hours=3)
LOOKBACK = timedelta(hours=24)
LOOKAHEAD = timedelta(days=7)
LIVE_POLL = timedelta(minutes=2)
AFTER_FINISH_GRACE = timedelta(minutes=5)
RECENT_POLL = timedelta(minutes=15)
FALLBACK_INTERVAL = timedelta(hours=6)


def calculate_next_sync_time(
    fixtures: Iterable[tuple[datetime, str]], now: datetime
) -> datetime:
    """Decide when the results sweep should next run.

    ``fixtures`` are (kickoff_time, status) pairs; only those between 24 hours
    ago and 7 days ahead are considered.
    """
    window = sorted(
        (kickoff, status)
        for kickoff, status in fixtures
        if now - LOOKBACK <= kickoff <= now + LOOKAHEAD
    )
    if not window:
        logger.info("No upcoming fixtures found, using fallback interval")
        return now + FALLBACK_INTERVAL

    live = [
        k for k, s in window if now - LIVE_WINDOW <= k <= now and not is_terminal_status(s)
    ]
    if live:
        logger.info("Found %d games currently in progress, will sync in 2 minutes", len(live))
        return now + LIVE_POLL

    upcoming = [
        k
        for k, s in window
        if k > now
        and s not in (FixtureStatus.CANCELLED.value, FixtureStatus.POSTPONED.value)
    ]
    if upcoming:
        expected_end = upcoming[0] + GAME_LENGTH
        logger.info(
            "Next fixture kicks off at %s, expected to finish at %s", upcoming[0], expected_end
        )
        return expected_end + AFTER_FINISH_GRACE

    recent = [
        k
        for k, s in window
        if now - RECENTLY_FINISHED_WINDOW <= k <= now and s == FixtureStatus.FINISHED.value
    ]
    if recent:
        logger.info("Found %d recently finished games, will sync again in 15 minutes", len(recent))
        return now + RECENT_POLL

    logger.info("No active or upcoming games in next 7 days, using fallback interval")
    return now + FALLBACK_INTERVAL


async def next_sync_time(db: AsyncSession, now: Optional[datetime] = None) -> datetime:
    now = now or utcnow()
    async with db.begin():
        result = await db.execute(
            select(Fixture.kickoff_time, Fixture.status).where(
                Fixture.kickoff_time >= now - LOOKBACK,  # type: ignore[operator]
                Fixture.kickoff_time <= now + LOOKAHEAD,  # type: ignore[operator]
            )
        )
        rows = [(row.kickoff_time, row.status) for row in result.all()]
    return calculate_next_sync_time(rows, now)


async def auto_pick_sweep(
    notifier: NotificationSender,
    session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
) -> None:
    logger.info("Auto-pick sweep is starting")
    await asyncio.sleep(AUTO_PICK_INITIAL_DELAY)
    while True:
        delay: float = settings.auto_pick_interval_seconds
        try:
            async with session_factory() as db:
                result = await assign_all_missed_picks(db, notifier)
            if result.picks_assigned or result.picks_failed:
                logger.info(
                    "Auto-pick sweep: %d assigned, %d failed across %d gameweeks",
                    result.picks_assigned,
                    result.picks_failed,
                    result.gameweeks_processed,
                )
        except Exception:
            logger.exception("Error occurred during auto-pick sweep")
            delay = AUTO_PICK_ERROR_BACKOFF
        await asyncio.sleep(delay)


async def reminder_sweep(
    notifier: NotificationSender,
    session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
) -> None:
    logger.info("Pick reminder sweep is starting")
    await asyncio.sleep(REMINDER_INITIAL_DELAY)
    while True:
        delay: float = settings.reminder_interval_seconds
        try:
            async with session_factory() as db:
                await send_pick_reminders(db, notifier)
        except Exception:
            logger.exception("Error occurred during pick reminder sweep")
            delay = REMINDER_ERROR_BACKOFF
        await asyncio.sleep(delay)


async def results_sweep(
    notifier: NotificationSender,
    provider: Optional[FixtureResultsProvider] = None,
    session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
) -> None:
    """Adaptive results loop: polls often while games are live, otherwise
    sleeps until shortly after the next fixture should have finished."""
    logger.info("Results sweep is starting")
    await asyncio.sleep(RESULTS_INITIAL_DELAY)
    while True:
        try:
            async with session_factory() as db:
                wake_at = await next_sync_time(db)
            delay = (wake_at - utcnow()).total_seconds()
            if delay > 0:
                logger.info(
                    "Next results sync scheduled for %s (in %.1f minutes)", wake_at, delay / 60
                )
                await asyncio.sleep(delay)

            async with session_factory() as db:
                response = await run_results_pass(db, notifier, provider)
            if response.fixtures_updated > 0:
                logger.info("Auto-sync completed: %s", response.message)
            else:
                logger.debug("Auto-sync completed: %s", response.message)
        except Exception:
            logger.exception("Error occurred while syncing results in background sweep")
            await asyncio.sleep(RESULTS_ERROR_BACKOFF)


def start_sweeps(
    notifier: NotificationSender,
    provider: Optional[FixtureResultsProvider] = None,
) -> list[asyncio.Task]:
    return [
        asyncio.create_task(auto_pick_sweep(notifier), name="auto-pick-sweep"),
        asyncio.create_task(reminder_sweep(notifier), name="reminder-sweep"),
        asyncio.create_task(results_sweep(notifier, provider), name="results-sweep"),
    ]


async def stop_sweeps(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("Background sweeps stopped")
