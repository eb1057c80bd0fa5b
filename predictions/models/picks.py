"""Pydantic request/response models for picks."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class TeamSummary(BaseModel):
    id: int
    name: str
    short_name: Optional[str] = None
    logo_url: Optional[str] = None


class PickRead(BaseModel):
    id: int
    user_id: int
    season_id: str
    gameweek_number: int
    team_id: int
    points: int
    goals_for: int
    goals_against: int
    is_auto_assigned: bool
    created_at: datetime
    updated_at: datetime
    team: Optional[TeamSummary] = None
    gameweek_name: Optional[str] = None


class PickCreate(BaseModel):
    season_id: str = Field(min_length=1)
    gameweek_number: int = Field(ge=1, le=38)
    team_id: int = Field(ge=1)


class PickUpdate(BaseModel):
    team_id: int = Field(ge=1)
