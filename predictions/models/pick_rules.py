"""Pydantic request/response models for per-half pick rules."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class PickRuleRead(BaseModel):
    id: int
    season_id: str
    half: int
    max_times_team_can_be_picked: int
    max_times_opposition_can_be_targeted: int
    created_at: datetime
    updated_at: datetime


class PickRuleCreate(BaseModel):
    season_id: str = Field(min_length=1)
    half: int = Field(ge=1, le=2)
    max_times_team_can_be_picked: int = Field(ge=1, le=19)
    max_times_opposition_can_be_targeted: int = Field(ge=1, le=19)


class PickRuleUpdate(BaseModel):
    max_times_team_can_be_picked: int = Field(ge=1, le=19)
    max_times_opposition_can_be_targeted: int = Field(ge=1, le=19)


class PickRulesResponse(BaseModel):
    first_half: Optional[PickRuleRead] = None
    second_half: Optional[PickRuleRead] = None
