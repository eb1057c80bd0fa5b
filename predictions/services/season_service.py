"""Season creation and activation.

At most one season is active at a time; switching happens in a single
transaction so readers never see zero or two active seasons.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.seasons import SeasonRead
from predictions.schemas.seasons import Season
from predictions.services import admin_action_service
from predictions.services.errors import NotFoundError, StateConflictError
from predictions.services.standings_service import invalidate_standings_cache
from predictions.utils.dates import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


def _to_read(season: Season) -> SeasonRead:
    return SeasonRead.model_validate(season, from_attributes=True)


async def _deactivate_others(db: AsyncSession, keep: str, now: datetime) -> None:
    await db.execute(
        update(Season)
        .where(Season.is_active.is_(True), Season.name != keep)  # type: ignore[attr-defined]
        .values(is_active=False, updated_at=now)
    )


async def create_season(
    db: AsyncSession,
    name: str,
    start_date: datetime,
    end_date: datetime,
    *,
    admin_id: Optional[int] = None,
) -> SeasonRead:
    """Create a season and make it the active one.

    Raises:
        StateConflictError: A season with that name already exists
    """
    logger.info("Creating new season: %s", name)
    duplicate = f"A season with the name '{name}' already exists."
    try:
        async with db.begin():
            if await db.get(Season, name) is not None:
                logger.warning("Attempted to create duplicate season: %s", name)
                raise StateConflictError(duplicate)
            now = utcnow()
            await _deactivate_others(db, name, now)
            season = Season(
                name=name,
                start_date=as_naive_utc(start_date),
                end_date=as_naive_utc(end_date),
                is_active=True,
                created_at=now,
                updated_at=now,
            )
            db.add(season)
            await db.flush()
            created = _to_read(season)
            if admin_id is not None:
                admin_action_service.record_admin_action(
                    db,
                    admin_id,
                    admin_action_service.CREATE_SEASON,
                    {"start_date": created.start_date, "end_date": created.end_date},
                    season_id=name,
                )
    except IntegrityError as exc:
        raise StateConflictError(duplicate) from exc

    invalidate_standings_cache()
    logger.info("Season %s created", name)
    return created


async def activate_season(
    db: AsyncSession, name: str, *, admin_id: Optional[int] = None
) -> SeasonRead:
    """Make ``name`` the only active season.

    Raises:
        NotFoundError: Unknown season
    """
    async with db.begin():
        season = await db.get(Season, name)
        if season is None:
            raise NotFoundError(f"Season {name} not found")
        now = utcnow()
        await _deactivate_others(db, name, now)
        season.is_active = True
        season.updated_at = now
        db.add(season)
        await db.flush()
        activated = _to_read(season)
        if admin_id is not None:
            admin_action_service.record_admin_action(
                db, admin_id, admin_action_service.ACTIVATE_SEASON, season_id=name
            )

    invalidate_standings_cache()
    logger.info("Season %s activated", name)
    return activated


async def get_active_season(db: AsyncSession) -> Optional[SeasonRead]:
    async with db.begin():
        result = await db.execute(
            select(Season).where(Season.is_active.is_(True))  # type: ignore[attr-defined]
        )
        season = result.scalars().first()
        return _to_read(season) if season is not None else None


async def list_seasons(db: AsyncSession) -> list[SeasonRead]:
    async with db.begin():
        result = await db.execute(
            select(Season).order_by(Season.start_date.desc())  # type: ignore[attr-defined]
        )
        return [_to_read(s) for s in result.scalars().all()]
