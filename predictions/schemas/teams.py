from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class Team(SQLModel, table=True):  # type: ignore[call-arg]
    """A club. Inactive teams (e.g. relegated) are never auto-assigned."""

    __tablename__ = "teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    short_name: Optional[str] = Field(default=None)
    code: Optional[str] = Field(default=None)
    logo_url: Optional[str] = Field(default=None)
    external_id: Optional[int] = Field(default=None, index=True)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
