"""Pick reminders ahead of gameweek deadlines.

A reminder goes out when the time left before a deadline falls inside one of
the configured windows (24, 12 and 3 hours by default). Each window is half an
hour wide so a sweep running every 30 minutes hits it once.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.config import settings
from predictions.models.auto_picks import ReminderResult
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.users import User
from predictions.services.auto_pick_service import users_needing_picks
from predictions.services.notification_service import NotificationSender
from predictions.utils.dates import utcnow

logger = logging.getLogger(__name__)

WINDOW_WIDTH_HOURS = 0.5


def reminder_window_for(
    hours_until_deadline: float, windows: Optional[Sequence[int]] = None
) -> Optional[int]:
    """Return the first window ``w`` with ``w - 0.5 <= hours <= w``, else None."""
    for window in windows if windows is not None else settings.reminder_windows_hours:
        if window - WINDOW_WIDTH_HOURS <= hours_until_deadline <= window:
            return window
    return None


async def send_pick_reminders(
    db: AsyncSession,
    notifier: NotificationSender,
    now: Optional[datetime] = None,
) -> ReminderResult:
    """Remind participants without a pick for gameweeks closing soon.

    At most one window fires per gameweek per pass. Failures for one user are
    logged and counted without stopping the others.
    """
    now = now or utcnow()
    logger.info("Starting pick reminder check at %s", now)

    due: list[tuple[int, str, int, datetime, list[User]]] = []
    async with db.begin():
        result = await db.execute(
            select(Gameweek)
            .where(Gameweek.deadline > now)  # type: ignore[operator]
            .order_by(Gameweek.deadline)
        )
        for gameweek in result.scalars().all():
            hours = (gameweek.deadline - now).total_seconds() / 3600
            window = reminder_window_for(hours)
            if window is None:
                continue
            user_ids = await users_needing_picks(db, gameweek.season_id, gameweek.week_number)
            if not user_ids:
                logger.info(
                    "No users need reminders for GW%s (%sh)", gameweek.week_number, window
                )
                continue
            users_result = await db.execute(
                select(User).where(User.id.in_(user_ids)).order_by(User.id)  # type: ignore[union-attr]
            )
            due.append(
                (
                    window,
                    gameweek.season_id,
                    gameweek.week_number,
                    gameweek.deadline,
                    list(users_result.scalars().all()),
                )
            )

    sent = 0
    failed = 0
    for window, season_id, week_number, deadline, users in due:
        logger.info(
            "Sending %d reminders for GW%s of %s (%sh before deadline)",
            len(users),
            week_number,
            season_id,
            window,
        )
        for user in users:
            if user.id is None or not user.email:
                logger.warning("User %s has no email, skipping reminder", user.id)
                continue
            try:
                await notifier.send_pick_reminder(
                    user.id, user.email, user.full_name, week_number, deadline, window
                )
            except Exception:
                failed += 1
                logger.exception(
                    "Failed to send pick reminder to user %s for GW%s", user.id, week_number
                )
                continue
            sent += 1

    logger.info("Pick reminder check completed: %d sent, %d failed", sent, failed)
    return ReminderResult(reminders_sent=sent, reminders_failed=failed)
