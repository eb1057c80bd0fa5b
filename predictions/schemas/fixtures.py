"""Fixtures are owned by the external sync collaborator; the engine only reads
them, apart from the result fields written during a results sync."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class FixtureStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    TIMED = "TIMED"
    IN_PLAY = "IN_PLAY"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"
    POSTPONED = "POSTPONED"
    CANCELLED = "CANCELLED"


class Fixture(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "fixtures"

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: str = Field(foreign_key="seasons.name", index=True)
    gameweek_number: int = Field(index=True)
    home_team_id: int = Field(foreign_key="teams.id", index=True)
    away_team_id: int = Field(foreign_key="teams.id", index=True)
    kickoff_time: datetime = Field(index=True)
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)
    status: str = Field(default=FixtureStatus.SCHEDULED.value, index=True)
    external_id: Optional[int] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def opponent_of(self, team_id: int) -> int:
        return self.away_team_id if self.home_team_id == team_id else self.home_team_id
