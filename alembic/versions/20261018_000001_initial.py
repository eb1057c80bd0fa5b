"""Initial schema for the predictions game.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:01
"""

from alembic import op  # type: ignore[attr-defined]
from sqlmodel import SQLModel

from predictions.schemas.admin_actions import AdminAction
from predictions.schemas.eliminations import EliminationBatch, UserElimination
from predictions.schemas.fixtures import Fixture
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.notifications import NotificationOutbox
from predictions.schemas.participations import SeasonParticipation
from predictions.schemas.pick_rules import PickRule
from predictions.schemas.picks import Pick
from predictions.schemas.seasons import Season
from predictions.schemas.teams import Team
from predictions.schemas.users import User

revision = "20261018_000001"
down_revision = None
branch_labels = None
depends_on = None

# Parents before children; downgrade walks this in reverse.
TABLES = [
    Season.__table__,  # type: ignore[attr-defined]
    Team.__table__,  # type: ignore[attr-defined]
    User.__table__,  # type: ignore[attr-defined]
    Gameweek.__table__,  # type: ignore[attr-defined]
    Fixture.__table__,  # type: ignore[attr-defined]
    SeasonParticipation.__table__,  # type: ignore[attr-defined]
    PickRule.__table__,  # type: ignore[attr-defined]
    Pick.__table__,  # type: ignore[attr-defined]
    UserElimination.__table__,  # type: ignore[attr-defined]
    EliminationBatch.__table__,  # type: ignore[attr-defined]
    NotificationOutbox.__table__,  # type: ignore[attr-defined]
    AdminAction.__table__,  # type: ignore[attr-defined]
]


def upgrade() -> None:
    bind = op.get_bind()
    SQLModel.metadata.create_all(bind=bind, tables=TABLES)


def downgrade() -> None:
    bind = op.get_bind()
    SQLModel.metadata.drop_all(bind=bind, tables=list(reversed(TABLES)))
