"""Per-half pick limits: validation and administration.

``validate_pick`` is read-only and runs inside the caller's transaction; the
CRUD helpers each own their transaction.
"""

import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.pick_rules import (
    PickRuleCreate,
    PickRuleRead,
    PickRulesResponse,
    PickRuleUpdate,
)
from predictions.schemas.fixtures import Fixture
from predictions.schemas.pick_rules import PickRule
from predictions.schemas.picks import Pick
from predictions.schemas.seasons import Season
from predictions.services import admin_action_service
from predictions.services.errors import NotFoundError, RuleViolationError, StateConflictError
from predictions.services.game_rules import (
    FIRST_HALF,
    SECOND_HALF,
    half_bounds,
    half_for_gameweek,
)
from predictions.utils.dates import utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_TEAM_PICKS = 1
DEFAULT_MAX_OPPOSITION_TARGETS = 1


def _to_read(rule: PickRule) -> PickRuleRead:
    return PickRuleRead.model_validate(rule, from_attributes=True)


async def get_rule_for_half(
    db: AsyncSession, season_id: str, half: int
) -> Optional[PickRule]:
    result = await db.execute(
        select(PickRule).where(PickRule.season_id == season_id, PickRule.half == half)
    )
    return result.scalars().first()


async def _opponent_in_gameweek(
    db: AsyncSession, season_id: str, gameweek_number: int, team_id: int
) -> Optional[int]:
    result = await db.execute(
        select(Fixture)
        .where(
            Fixture.season_id == season_id,
            Fixture.gameweek_number == gameweek_number,
            or_(Fixture.home_team_id == team_id, Fixture.away_team_id == team_id),
        )
        .order_by(Fixture.kickoff_time)
    )
    fixture = result.scalars().first()
    return fixture.opponent_of(team_id) if fixture is not None else None


async def validate_pick(
    db: AsyncSession,
    user_id: int,
    season_id: str,
    gameweek_number: int,
    team_id: int,
    exclude_pick_id: Optional[int] = None,
) -> None:
    """Check a prospective pick against the half's limits.

    Counts the user's other picks in the same half of the season. When no rule
    is configured for the half, every pick is allowed. If the team has no
    fixture in the candidate gameweek the opposition limit is not checked.

    Args:
        db: Async database session (caller owns the transaction)
        user_id: Picking user
        season_id: Season name
        gameweek_number: Gameweek of the candidate pick
        team_id: Candidate team
        exclude_pick_id: Pick being replaced, ignored when counting

    Raises:
        RuleViolationError: A team or opposition limit would be exceeded
    """
    half = half_for_gameweek(gameweek_number)
    rule = await get_rule_for_half(db, season_id, half)
    if rule is None:
        return

    first, last = half_bounds(half)
    query = select(Pick).where(
        Pick.user_id == user_id,
        Pick.season_id == season_id,
        Pick.gameweek_number >= first,  # type: ignore[operator]
        Pick.gameweek_number <= last,  # type: ignore[operator]
    )
    if exclude_pick_id is not None:
        query = query.where(Pick.id != exclude_pick_id)
    result = await db.execute(query)
    half_picks = list(result.scalars().all())

    team_count = sum(1 for p in half_picks if p.team_id == team_id)
    if team_count >= rule.max_times_team_can_be_picked:
        raise RuleViolationError(
            f"You have already picked this team {team_count} time(s) in this half. "
            f"Maximum allowed: {rule.max_times_team_can_be_picked}"
        )

    opposition = await _opponent_in_gameweek(db, season_id, gameweek_number, team_id)
    if opposition is None:
        return

    fixtures_result = await db.execute(
        select(Fixture).where(
            Fixture.season_id == season_id,
            Fixture.gameweek_number >= first,  # type: ignore[operator]
            Fixture.gameweek_number <= last,  # type: ignore[operator]
        )
    )
    fixtures_by_week: dict[int, list[Fixture]] = {}
    for fixture in fixtures_result.scalars().all():
        fixtures_by_week.setdefault(fixture.gameweek_number, []).append(fixture)

    targeted = 0
    for pick in half_picks:
        for fixture in fixtures_by_week.get(pick.gameweek_number, []):
            if fixture.involves(pick.team_id):
                if fixture.opponent_of(pick.team_id) == opposition:
                    targeted += 1
                break

    if targeted >= rule.max_times_opposition_can_be_targeted:
        raise RuleViolationError(
            f"You have already targeted this opposition {targeted} time(s) in this half. "
            f"Maximum allowed: {rule.max_times_opposition_can_be_targeted}"
        )


async def get_pick_rules(db: AsyncSession, season_id: str) -> PickRulesResponse:
    async with db.begin():
        result = await db.execute(select(PickRule).where(PickRule.season_id == season_id))
        rules = {rule.half: rule for rule in result.scalars().all()}
    first = rules.get(FIRST_HALF)
    second = rules.get(SECOND_HALF)
    return PickRulesResponse(
        first_half=_to_read(first) if first else None,
        second_half=_to_read(second) if second else None,
    )


async def _require_season(db: AsyncSession, season_id: str) -> Season:
    season = await db.get(Season, season_id)
    if season is None:
        raise NotFoundError(f"Season {season_id} not found")
    return season


async def create_pick_rule(
    db: AsyncSession, payload: PickRuleCreate, *, admin_id: Optional[int] = None
) -> PickRuleRead:
    """Create the rule for one half of a season.

    Raises:
        NotFoundError: Season does not exist
        StateConflictError: A rule for that half already exists
    """
    try:
        async with db.begin():
            await _require_season(db, payload.season_id)
            if await get_rule_for_half(db, payload.season_id, payload.half):
                raise StateConflictError(
                    f"Pick rule for {payload.season_id} half {payload.half} already exists"
                )
            rule = PickRule(**payload.model_dump())
            db.add(rule)
            await db.flush()
            if admin_id is not None:
                admin_action_service.record_admin_action(
                    db,
                    admin_id,
                    admin_action_service.CREATE_PICK_RULE,
                    payload.model_dump(),
                    season_id=payload.season_id,
                )
    except IntegrityError as exc:
        raise StateConflictError(
            f"Pick rule for {payload.season_id} half {payload.half} already exists"
        ) from exc

    logger.info("Created pick rule for %s half %s", payload.season_id, payload.half)
    return _to_read(rule)


async def update_pick_rule(
    db: AsyncSession,
    rule_id: int,
    payload: PickRuleUpdate,
    *,
    admin_id: Optional[int] = None,
) -> PickRuleRead:
    async with db.begin():
        rule = await db.get(PickRule, rule_id)
        if rule is None:
            raise NotFoundError(f"Pick rule {rule_id} not found")
        rule.max_times_team_can_be_picked = payload.max_times_team_can_be_picked
        rule.max_times_opposition_can_be_targeted = (
            payload.max_times_opposition_can_be_targeted
        )
        rule.updated_at = utcnow()
        db.add(rule)
        if admin_id is not None:
            admin_action_service.record_admin_action(
                db,
                admin_id,
                admin_action_service.UPDATE_PICK_RULE,
                {"rule_id": rule_id, "half": rule.half, **payload.model_dump()},
                season_id=rule.season_id,
            )

    logger.info("Updated pick rule %s for %s half %s", rule_id, rule.season_id, rule.half)
    return _to_read(rule)


async def delete_pick_rule(
    db: AsyncSession, rule_id: int, *, admin_id: Optional[int] = None
) -> None:
    async with db.begin():
        rule = await db.get(PickRule, rule_id)
        if rule is None:
            raise NotFoundError(f"Pick rule {rule_id} not found")
        await db.delete(rule)
        if admin_id is not None:
            admin_action_service.record_admin_action(
                db,
                admin_id,
                admin_action_service.DELETE_PICK_RULE,
                {"rule_id": rule_id, "half": rule.half},
                season_id=rule.season_id,
            )

    logger.info("Deleted pick rule %s for %s half %s", rule_id, rule.season_id, rule.half)


async def initialize_default_pick_rules(
    db: AsyncSession, season_id: str, *, admin_id: Optional[int] = None
) -> PickRulesResponse:
    """Create both halves' rules with the default limits (one pick per team and
    one target per opposition)."""
    async with db.begin():
        await _require_season(db, season_id)
        existing = await db.execute(
            select(PickRule.id).where(PickRule.season_id == season_id)
        )
        if existing.first() is not None:
            raise StateConflictError(f"Pick rules for {season_id} already exist")

        rules = [
            PickRule(
                season_id=season_id,
                half=half,
                max_times_team_can_be_picked=DEFAULT_MAX_TEAM_PICKS,
                max_times_opposition_can_be_targeted=DEFAULT_MAX_OPPOSITION_TARGETS,
            )
            for half in (FIRST_HALF, SECOND_HALF)
        ]
        db.add_all(rules)
        await db.flush()
        if admin_id is not None:
            admin_action_service.record_admin_action(
                db, admin_id, admin_action_service.INITIALIZE_PICK_RULES, season_id=season_id
            )

    logger.info("Initialized default pick rules for %s", season_id)
    return PickRulesResponse(first_half=_to_read(rules[0]), second_half=_to_read(rules[1]))
