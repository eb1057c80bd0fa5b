from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class PickRule(SQLModel, table=True):  # type: ignore[call-arg]
    """Per-half pick limits. A missing rule means no limit is enforced."""

    __tablename__ = "pick_rules"
    __table_args__ = (UniqueConstraint("season_id", "half", name="uq_pick_rules_half"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: str = Field(foreign_key="seasons.name", index=True)
    half: int  # 1 or 2
    max_times_team_can_be_picked: int = Field(default=1)
    max_times_opposition_can_be_targeted: int = Field(default=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
