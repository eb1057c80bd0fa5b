"""Outbox of notifications handed to the external delivery collaborator."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow


class NotificationOutbox(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "notification_outbox"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: Optional[int] = Field(default=None, index=True)  # None = broadcast
    kind: str = Field(index=True)
    payload: str  # JSON document
    created_at: datetime = Field(default_factory=utcnow)
    delivered_at: Optional[datetime] = Field(default=None, index=True)
