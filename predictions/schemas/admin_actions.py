"""Audit trail of admin operations."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class AdminAction(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "admin_actions"

    id: Optional[int] = Field(default=None, primary_key=True)
    admin_user_id: int = Field(foreign_key="users.id", index=True)
    action_type: str = Field(max_length=100, index=True)  # CREATE_SEASON, PROCESS_ELIMINATIONS, ...
    target_user_id: Optional[int] = Field(default=None, foreign_key="users.id")
    target_season_id: Optional[str] = Field(default=None, index=True)
    target_gameweek_number: Optional[int] = None
    details: Optional[str] = None  # JSON document
    created_at: datetime = Field(default_factory=utcnow, index=True)
