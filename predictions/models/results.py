"""Pydantic models for results sync."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class FixtureUpdate(BaseModel):
    """One fixture's latest state as reported by the external fixture source."""

    status: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    kickoff_time: Optional[datetime] = None


class FixtureUpdateDetail(BaseModel):
    fixture_id: int
    gameweek_number: int
    home_team: str
    away_team: str
    old_status: str
    new_status: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None


class ResultsSyncResponse(BaseModel):
    fixtures_updated: int = 0
    picks_recalculated: int = 0
    gameweeks_processed: int = 0
    updated_fixtures: list[FixtureUpdateDetail] = Field(default_factory=list)
    message: str = ""
