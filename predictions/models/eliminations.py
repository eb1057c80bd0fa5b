"""Pydantic request/response models for eliminations."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserEliminationRead(BaseModel):
    id: int
    user_id: int
    user_name: str = "Unknown"
    season_id: str
    gameweek_number: int
    position: int
    total_points: int
    eliminated_at: datetime
    eliminated_by: Optional[int] = None
    eliminated_by_name: Optional[str] = None
    trigger: str


class ProcessEliminationsResponse(BaseModel):
    players_eliminated: int = 0
    eliminated_players: list[UserEliminationRead] = Field(default_factory=list)
    message: str = ""


class EliminationConfig(BaseModel):
    gameweek_id: int
    week_number: int
    elimination_count: int
    has_been_processed: bool
    deadline: datetime


class EliminationCountUpdate(BaseModel):
    elimination_count: int = Field(ge=0, le=100)


class BulkEliminationCountUpdate(BaseModel):
    # week number -> elimination count
    counts: dict[int, int]


class BulkUpdateResult(BaseModel):
    updated: int = 0
    skipped: int = 0
