"""Pydantic response models for the participant leaderboard."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class StandingEntry(BaseModel):
    # position and rank carry the same value; both are kept for API clients
    position: int = 0
    rank: int = 0
    user_id: int
    user_name: str = ""
    total_points: int = 0
    picks_made: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    goal_difference: int = 0
    is_eliminated: bool = False
    eliminated_in_gameweek: Optional[int] = None
    elimination_position: Optional[int] = None


class LeagueStandingsResponse(BaseModel):
    season_id: Optional[str] = None
    standings: list[StandingEntry] = Field(default_factory=list)
    total_players: int = 0
    last_updated: datetime
