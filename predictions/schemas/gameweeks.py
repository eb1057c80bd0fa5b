from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class Gameweek(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "gameweeks"
    __table_args__ = (
        UniqueConstraint("season_id", "week_number", name="uq_gameweeks_season_week"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: str = Field(foreign_key="seasons.name", index=True)
    week_number: int = Field(index=True)
    deadline: datetime = Field(index=True)  # picks lock at this instant
    is_locked: bool = Field(default=False)
    # 0 = nobody is eliminated after this round
    elimination_count: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
