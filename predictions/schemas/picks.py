from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class Pick(SQLModel, table=True):  # type: ignore[call-arg]
    """One team selection per user per gameweek.

    Scoring fields stay at zero until the team's fixture finishes and the
    results hook recalculates them; ``team_id`` is never touched after the
    deadline.
    """

    __tablename__ = "picks"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "season_id", "gameweek_number", name="uq_picks_user_gameweek"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    season_id: str = Field(foreign_key="seasons.name", index=True)
    gameweek_number: int = Field(index=True)
    team_id: int = Field(foreign_key="teams.id", index=True)
    points: int = Field(default=0)
    goals_for: int = Field(default=0)
    goals_against: int = Field(default=0)
    is_auto_assigned: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
