from datetime import datetime

from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class Season(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "seasons"

    name: str = Field(primary_key=True, description="Season name like '2025/2026'")
    start_date: datetime
    end_date: datetime
    is_active: bool = Field(default=False, index=True)
    is_archived: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
