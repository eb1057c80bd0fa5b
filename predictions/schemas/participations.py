from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class SeasonParticipation(SQLModel, table=True):  # type: ignore[call-arg]
    """Approval gate: only approved participants can pick or be auto-assigned."""

    __tablename__ = "season_participations"
    __table_args__ = (
        UniqueConstraint("user_id", "season_id", name="uq_participations_user_season"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    season_id: str = Field(foreign_key="seasons.name", index=True)
    is_approved: bool = Field(default=False, index=True)
    requested_at: datetime = Field(default_factory=utcnow)
    approved_at: Optional[datetime] = Field(default=None)
    approved_by_user_id: Optional[int] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
