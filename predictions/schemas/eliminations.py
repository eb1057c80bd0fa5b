"""Elimination records.

A ``UserElimination`` row *is* the eliminated state. ``EliminationBatch`` is the
per-gameweek "already processed" marker; its unique key makes a second run for
the same gameweek fail at the write instead of double-eliminating.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from predictions.utils.dates import utcnow

# Reserved actor for eliminations triggered by the results pipeline.
# User ids are autoincrement from 1, so 0 never names a real person.
SYSTEM_ACTOR_ID = 0


class EliminationTrigger(str, Enum):
    ADMIN = "admin"
    SYSTEM = "system"


class UserElimination(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "user_eliminations"
    __table_args__ = (
        UniqueConstraint("user_id", "season_id", name="uq_user_eliminations_user_season"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    season_id: str = Field(foreign_key="seasons.name", index=True)
    gameweek_number: int = Field(index=True)
    position: int  # 1 = lowest score among those eliminated this round
    total_points: int
    eliminated_at: datetime = Field(default_factory=utcnow)
    eliminated_by: Optional[int] = Field(default=None)  # no FK: may be SYSTEM_ACTOR_ID
    trigger: str = Field(default=EliminationTrigger.ADMIN.value)


class EliminationBatch(SQLModel, table=True):  # type: ignore[call-arg]
    __tablename__ = "elimination_batches"
    __table_args__ = (
        UniqueConstraint(
            "season_id", "gameweek_number", name="uq_elimination_batches_gameweek"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    season_id: str = Field(foreign_key="seasons.name", index=True)
    gameweek_number: int
    eliminated_count: int = Field(default=0)
    processed_at: datetime = Field(default_factory=utcnow)
    processed_by: Optional[int] = Field(default=None)
