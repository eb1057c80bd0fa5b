"""Standalone cron runner for the periodic game sweeps.

Runs a single pass of one sweep and exits, for deployments that schedule
machines instead of keeping the background loops inside the web process.

Usage:
    python -m predictions.cli.cron_runner auto-picks
    python -m predictions.cli.cron_runner reminders
    python -m predictions.cli.cron_runner results

Exit codes:
    0 - Success
    1 - Failure (check logs for details)
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone

from predictions.services.auto_pick_service import assign_all_missed_picks
from predictions.services.notification_service import get_notifier
from predictions.services.reminder_service import send_pick_reminders
from predictions.services.results_service import run_results_pass
from predictions.utils.db_async import SessionLocal, dispose_engine

# Configure logging for cron context
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("cron_runner")

TASKS = ("auto-picks", "reminders", "results")


async def run_task(task: str) -> str:
    """Run one sweep pass and return a one-line summary."""
    notifier = get_notifier()
    async with SessionLocal() as db:
        if task == "auto-picks":
            result = await assign_all_missed_picks(db, notifier)
            return (
                f"{result.picks_assigned} assigned, {result.picks_failed} failed "
                f"across {result.gameweeks_processed} gameweeks"
            )
        if task == "reminders":
            reminders = await send_pick_reminders(db, notifier)
            return f"{reminders.reminders_sent} sent, {reminders.reminders_failed} failed"
        response = await run_results_pass(db, notifier)
        return response.message


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run one pass of a game sweep")
    parser.add_argument("task", choices=TASKS)
    args = parser.parse_args(argv)

    start_time = datetime.now(timezone.utc)
    logger.info(f"Starting scheduled {args.task} run")

    try:
        summary = await run_task(args.task)
        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.info(f"{args.task} complete in {elapsed:.1f}s: {summary}")
        return 0

    except Exception as e:
        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.error(f"{args.task} failed after {elapsed:.1f}s: {e}", exc_info=True)
        return 1

    finally:
        await dispose_engine()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
