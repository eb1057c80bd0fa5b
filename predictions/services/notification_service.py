"""Notification hand-off to the external delivery layer.

The engine never renders or delivers anything itself. Senders are
fire-and-forget from the caller's point of view: services call them after
their own transaction has committed and log any failure instead of raising.
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from predictions.config import settings
from predictions.schemas.notifications import NotificationOutbox
from predictions.utils.db_async import SessionLocal

logger = logging.getLogger(__name__)

AUTO_PICK_ASSIGNED = "AutoPickAssigned"
PICK_REMINDER = "PickReminder"
ELIMINATIONS_PROCESSED = "EliminationsProcessed"
RESULTS_UPDATED = "ResultsUpdated"


class NotificationSender:
    """Interface used by the services; subclasses decide where messages go."""

    async def send_auto_pick_assigned(
        self, user_id: int, team_name: str, gameweek_number: int
    ) -> None:
        raise NotImplementedError

    async def send_pick_reminder(
        self,
        user_id: int,
        email: str,
        user_name: str,
        gameweek_number: int,
        deadline: datetime,
        hours_before_deadline: int,
    ) -> None:
        raise NotImplementedError

    async def broadcast(self, kind: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotificationSender(NotificationSender):
    """Writes notifications to the log only. Useful in dev and the cron runner."""

    async def send_auto_pick_assigned(
        self, user_id: int, team_name: str, gameweek_number: int
    ) -> None:
        logger.info(
            "Auto-pick notification: user %s was assigned %s for GW%s",
            user_id,
            team_name,
            gameweek_number,
        )

    async def send_pick_reminder(
        self,
        user_id: int,
        email: str,
        user_name: str,
        gameweek_number: int,
        deadline: datetime,
        hours_before_deadline: int,
    ) -> None:
        logger.info(
            "Pick reminder: %s <%s> has no pick for GW%s (%sh before %s)",
            user_name,
            email,
            gameweek_number,
            hours_before_deadline,
            deadline.isoformat(),
        )

    async def broadcast(self, kind: str, payload: dict[str, Any]) -> None:
        logger.info("Broadcast %s: %s", kind, payload)


class OutboxNotificationSender(NotificationSender):
    """Queues notifications in ``notification_outbox`` for the delivery layer.

    Each message is written in its own short session so that a failure here
    never touches the caller's transaction.
    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] = SessionLocal
    ) -> None:
        self._session_factory = session_factory

    async def _enqueue(
        self, kind: str, payload: dict[str, Any], user_id: Optional[int] = None
    ) -> None:
        row = NotificationOutbox(
            user_id=user_id, kind=kind, payload=json.dumps(payload, default=str)
        )
        async with self._session_factory() as db:
            async with db.begin():
                db.add(row)
        logger.debug("Queued %s notification for user %s", kind, user_id)

    async def send_auto_pick_assigned(
        self, user_id: int, team_name: str, gameweek_number: int
    ) -> None:
        await self._enqueue(
            AUTO_PICK_ASSIGNED,
            {
                "team_name": team_name,
                "gameweek_number": gameweek_number,
                "message": (
                    f"You missed the deadline for Gameweek {gameweek_number}. "
                    f"{team_name} has been auto-assigned to you."
                ),
            },
            user_id=user_id,
        )

    async def send_pick_reminder(
        self,
        user_id: int,
        email: str,
        user_name: str,
        gameweek_number: int,
        deadline: datetime,
        hours_before_deadline: int,
    ) -> None:
        await self._enqueue(
            PICK_REMINDER,
            {
                "email": email,
                "user_name": user_name,
                "gameweek_number": gameweek_number,
                "deadline": deadline,
                "hours_before_deadline": hours_before_deadline,
            },
            user_id=user_id,
        )

    async def broadcast(self, kind: str, payload: dict[str, Any]) -> None:
        await self._enqueue(kind, payload)


def get_notifier() -> NotificationSender:
    """FastAPI dependency (and default for sweeps) selecting the configured sender."""
    if settings.notification_backend == "log":
        return LoggingNotificationSender()
    return OutboxNotificationSender()
