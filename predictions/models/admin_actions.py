"""Pydantic response model for the admin audit trail."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class AdminActionRead(BaseModel):
    id: int
    admin_user_id: int
    action_type: str
    target_user_id: Optional[int] = None
    target_season_id: Optional[str] = None
    target_gameweek_number: Optional[int] = None
    details: Optional[dict[str, Any]] = None
    created_at: datetime
