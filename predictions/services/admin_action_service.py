"""Audit trail for admin operations.

``record_admin_action`` adds a row inside the caller's open transaction, so
the audit entry commits or rolls back together with the change it describes.
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.admin_actions import AdminActionRead
from predictions.schemas.admin_actions import AdminAction

logger = logging.getLogger(__name__)

CREATE_SEASON = "CREATE_SEASON"
ACTIVATE_SEASON = "ACTIVATE_SEASON"
CREATE_PICK_RULE = "CREATE_PICK_RULE"
UPDATE_PICK_RULE = "UPDATE_PICK_RULE"
DELETE_PICK_RULE = "DELETE_PICK_RULE"
INITIALIZE_PICK_RULES = "INITIALIZE_PICK_RULES"
UPDATE_ELIMINATION_COUNT = "UPDATE_ELIMINATION_COUNT"
BULK_UPDATE_ELIMINATION_COUNTS = "BULK_UPDATE_ELIMINATION_COUNTS"
PROCESS_ELIMINATIONS = "PROCESS_ELIMINATIONS"
AUTO_ASSIGN_PICKS = "AUTO_ASSIGN_PICKS"
RECALCULATE_POINTS = "RECALCULATE_POINTS"

DEFAULT_LIMIT = 50


def record_admin_action(
    db: AsyncSession,
    admin_id: int,
    action_type: str,
    details: Optional[dict[str, Any]] = None,
    *,
    season_id: Optional[str] = None,
    gameweek_number: Optional[int] = None,
    target_user_id: Optional[int] = None,
) -> AdminAction:
    """Stage an audit row in the current transaction."""
    action = AdminAction(
        admin_user_id=admin_id,
        action_type=action_type,
        target_user_id=target_user_id,
        target_season_id=season_id,
        target_gameweek_number=gameweek_number,
        details=json.dumps(details, default=str) if details is not None else None,
    )
    db.add(action)
    logger.info("Admin action %s by user %s", action_type, admin_id)
    return action


def _to_read(action: AdminAction) -> AdminActionRead:
    return AdminActionRead(
        id=action.id,
        admin_user_id=action.admin_user_id,
        action_type=action.action_type,
        target_user_id=action.target_user_id,
        target_season_id=action.target_season_id,
        target_gameweek_number=action.target_gameweek_number,
        details=json.loads(action.details) if action.details else None,
        created_at=action.created_at,
    )


async def list_admin_actions(
    db: AsyncSession, season_id: Optional[str] = None, limit: int = DEFAULT_LIMIT
) -> list[AdminActionRead]:
    """Most recent admin actions first, optionally narrowed to one season."""
    async with db.begin():
        query = select(AdminAction)
        if season_id is not None:
            query = query.where(AdminAction.target_season_id == season_id)
        result = await db.execute(
            query.order_by(
                AdminAction.created_at.desc(),  # type: ignore[attr-defined]
                AdminAction.id.desc(),  # type: ignore[union-attr]
            ).limit(limit)
        )
        return [_to_read(action) for action in result.scalars().all()]
