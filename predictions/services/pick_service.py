"""Pick lifecycle: create, change and remove a user's pick before the deadline."""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.picks import PickRead, TeamSummary
from predictions.schemas.gameweeks import Gameweek
from predictions.schemas.participations import SeasonParticipation
from predictions.schemas.picks import Pick
from predictions.schemas.teams import Team
from predictions.services.errors import (
    AuthorizationError,
    NotFoundError,
    StateConflictError,
)
from predictions.services.pick_rule_service import validate_pick
from predictions.services.standings_service import invalidate_standings_cache
from predictions.utils.dates import utcnow

logger = logging.getLogger(__name__)

DUPLICATE_PICK_MESSAGE = "Pick already exists for this gameweek"


def to_pick_read(
    pick: Pick, team: Optional[Team] = None, gameweek: Optional[Gameweek] = None
) -> PickRead:
    data = pick.model_dump()
    if team is not None and team.id is not None:
        data["team"] = TeamSummary(
            id=team.id, name=team.name, short_name=team.short_name, logo_url=team.logo_url
        )
    if gameweek is not None:
        data["gameweek_name"] = f"Gameweek {gameweek.week_number}"
    return PickRead(**data)


async def get_gameweek(
    db: AsyncSession, season_id: str, gameweek_number: int
) -> Optional[Gameweek]:
    result = await db.execute(
        select(Gameweek).where(
            Gameweek.season_id == season_id, Gameweek.week_number == gameweek_number
        )
    )
    return result.scalars().first()


async def is_approved_participant(db: AsyncSession, user_id: int, season_id: str) -> bool:
    result = await db.execute(
        select(SeasonParticipation.id).where(
            SeasonParticipation.user_id == user_id,
            SeasonParticipation.season_id == season_id,
            SeasonParticipation.is_approved.is_(True),  # type: ignore[attr-defined]
        )
    )
    return result.first() is not None


async def _find_pick(
    db: AsyncSession, user_id: int, season_id: str, gameweek_number: int
) -> Optional[Pick]:
    result = await db.execute(
        select(Pick).where(
            Pick.user_id == user_id,
            Pick.season_id == season_id,
            Pick.gameweek_number == gameweek_number,
        )
    )
    return result.scalars().first()


def _deadline_passed(gameweek: Gameweek, now: datetime) -> bool:
    return gameweek.deadline < now


async def create_pick(
    db: AsyncSession,
    user_id: int,
    season_id: str,
    gameweek_number: int,
    team_id: int,
) -> PickRead:
    """Validate and create a pick.

    Checks run in a fixed order so the caller always sees the first failing
    reason: gameweek, participation, duplicate, deadline, team, pick rules.

    Args:
        db: Async database session
        user_id: Acting user
        season_id: Season name
        gameweek_number: Gameweek to pick for
        team_id: Selected team

    Returns:
        The stored pick with zeroed scoring fields

    Raises:
        NotFoundError: Unknown gameweek or team
        AuthorizationError: User is not an approved participant
        StateConflictError: Pick exists already or the deadline has passed
        RuleViolationError: A per-half limit would be exceeded
    """
    try:
        async with db.begin():
            gameweek = await get_gameweek(db, season_id, gameweek_number)
            if gameweek is None:
                raise NotFoundError("Gameweek not found")

            if not await is_approved_participant(db, user_id, season_id):
                logger.warning(
                    "User %s attempted to create pick without approved participation",
                    user_id,
                )
                raise AuthorizationError("You must be approved to participate in this season")

            if await _find_pick(db, user_id, season_id, gameweek_number) is not None:
                raise StateConflictError(DUPLICATE_PICK_MESSAGE)

            if _deadline_passed(gameweek, utcnow()):
                raise StateConflictError("Gameweek deadline has passed")

            team = await db.get(Team, team_id)
            if team is None:
                raise NotFoundError("Team not found")

            await validate_pick(db, user_id, season_id, gameweek_number, team_id)

            pick = Pick(
                user_id=user_id,
                season_id=season_id,
                gameweek_number=gameweek_number,
                team_id=team_id,
            )
            db.add(pick)
            await db.flush()
    except IntegrityError as exc:
        # a concurrent request inserted the same (user, season, gameweek)
        raise StateConflictError(DUPLICATE_PICK_MESSAGE) from exc

    invalidate_standings_cache(season_id)
    logger.info(
        "Pick created for user %s in gameweek %s-%s", user_id, season_id, gameweek_number
    )
    return to_pick_read(pick, team, gameweek)


async def update_pick(
    db: AsyncSession, pick_id: int, user_id: int, team_id: int
) -> PickRead:
    """Change the team of an existing pick before its deadline.

    Only ``team_id`` changes; scoring fields are left to the results hook.

    Raises:
        NotFoundError: Unknown pick or team
        AuthorizationError: Not the owner, or no longer an approved participant
        StateConflictError: Deadline has passed
        RuleViolationError: A per-half limit would be exceeded
    """
    async with db.begin():
        pick = await db.get(Pick, pick_id)
        if pick is None:
            raise NotFoundError("Pick not found")
        if pick.user_id != user_id:
            raise AuthorizationError("Not authorized to update this pick")

        gameweek = await get_gameweek(db, pick.season_id, pick.gameweek_number)
        if gameweek is None or _deadline_passed(gameweek, utcnow()):
            raise StateConflictError("Cannot update pick after gameweek deadline")

        if not await is_approved_participant(db, user_id, pick.season_id):
            logger.warning(
                "User %s attempted to update pick without approved participation", user_id
            )
            raise AuthorizationError("You must be approved to participate in this season")

        team = await db.get(Team, team_id)
        if team is None:
            raise NotFoundError("Team not found")

        await validate_pick(
            db,
            user_id,
            pick.season_id,
            pick.gameweek_number,
            team_id,
            exclude_pick_id=pick.id,
        )

        pick.team_id = team_id
        pick.updated_at = utcnow()
        db.add(pick)

    invalidate_standings_cache(pick.season_id)
    logger.info("Pick %s updated by user %s", pick_id, user_id)
    return to_pick_read(pick, team, gameweek)


async def delete_pick(db: AsyncSession, pick_id: int, user_id: int) -> None:
    async with db.begin():
        pick = await db.get(Pick, pick_id)
        if pick is None:
            raise NotFoundError("Pick not found")
        if pick.user_id != user_id:
            raise AuthorizationError("Not authorized to delete this pick")

        gameweek = await get_gameweek(db, pick.season_id, pick.gameweek_number)
        if gameweek is None or _deadline_passed(gameweek, utcnow()):
            raise StateConflictError("Cannot delete pick after gameweek deadline")

        season_id = pick.season_id
        await db.delete(pick)

    invalidate_standings_cache(season_id)
    logger.info("Pick %s deleted by user %s", pick_id, user_id)


async def _decorate(db: AsyncSession, picks: Iterable[Pick]) -> list[PickRead]:
    picks = list(picks)
    team_ids = {p.team_id for p in picks}
    teams: dict[int, Team] = {}
    if team_ids:
        result = await db.execute(select(Team).where(Team.id.in_(team_ids)))  # type: ignore[union-attr]
        teams = {t.id: t for t in result.scalars().all() if t.id is not None}

    season_ids = {p.season_id for p in picks}
    gameweeks: dict[tuple[str, int], Gameweek] = {}
    if season_ids:
        result = await db.execute(
            select(Gameweek).where(Gameweek.season_id.in_(season_ids))  # type: ignore[attr-defined]
        )
        gameweeks = {(g.season_id, g.week_number): g for g in result.scalars().all()}

    return [
        to_pick_read(
            p, teams.get(p.team_id), gameweeks.get((p.season_id, p.gameweek_number))
        )
        for p in picks
    ]


async def get_pick(db: AsyncSession, pick_id: int) -> Optional[PickRead]:
    async with db.begin():
        pick = await db.get(Pick, pick_id)
        if pick is None:
            return None
        return (await _decorate(db, [pick]))[0]


async def list_user_picks(
    db: AsyncSession, user_id: int, season_id: Optional[str] = None
) -> list[PickRead]:
    """All of a user's picks, optionally limited to one season, by gameweek."""
    query = select(Pick).where(Pick.user_id == user_id)
    if season_id:
        query = query.where(Pick.season_id == season_id)
    query = query.order_by(Pick.season_id, Pick.gameweek_number)
    async with db.begin():
        result = await db.execute(query)
        return await _decorate(db, result.scalars().all())


async def list_gameweek_picks(
    db: AsyncSession, season_id: str, gameweek_number: int
) -> list[PickRead]:
    async with db.begin():
        result = await db.execute(
            select(Pick)
            .where(Pick.season_id == season_id, Pick.gameweek_number == gameweek_number)
            .order_by(Pick.user_id)
        )
        return await _decorate(db, result.scalars().all())
