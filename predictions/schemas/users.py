"""Participant accounts.

Identity is issued by the external auth layer; this table is the read model the
engine needs for display names, admin checks and reminder addresses.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class User(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    first_name: str = Field(default="")
    last_name: str = Field(default="")
    is_admin: bool = Field(default=False)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
