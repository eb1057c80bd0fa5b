"""Pydantic request/response models for seasons."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator


class SeasonCreate(BaseModel):
    name: str = Field(min_length=1, description="Season name like '2025/2026'")
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def _check_dates(self) -> "SeasonCreate":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class SeasonRead(BaseModel):
    name: str
    start_date: datetime
    end_date: datetime
    is_active: bool
    is_archived: bool
