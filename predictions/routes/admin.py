"""Admin API: auto-picks, eliminations, pick rules, seasons, results and the
audit trail.

Every route requires an authenticated admin (``users.is_admin``). Mutating
routes pass the admin's id down so the service records the action in the
same transaction as the change.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.admin_actions import AdminActionRead
from predictions.models.auto_picks import AutoPickResult
from predictions.models.eliminations import (
    BulkEliminationCountUpdate,
    BulkUpdateResult,
    EliminationConfig,
    EliminationCountUpdate,
    ProcessEliminationsResponse,
    UserEliminationRead,
)
from predictions.models.pick_rules import (
    PickRuleCreate,
    PickRuleRead,
    PickRulesResponse,
    PickRuleUpdate,
)
from predictions.models.results import ResultsSyncResponse
from predictions.models.seasons import SeasonCreate, SeasonRead
from predictions.routes.deps import require_admin, require_admin_id, to_http_exception
from predictions.services import (
    admin_action_service,
    auto_pick_service,
    elimination_service,
    pick_rule_service,
    results_service,
    season_service,
)
from predictions.services.errors import GameError
from predictions.services.notification_service import NotificationSender, get_notifier
from predictions.utils.db_async import get_session

router = APIRouter(
    prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)]
)


# --- auto-picks ---


@router.post("/auto-picks", response_model=AutoPickResult)
async def assign_all_auto_picks(
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
    notifier: NotificationSender = Depends(get_notifier),
) -> AutoPickResult:
    """Sweep every unlocked gameweek whose deadline has passed."""
    return await auto_pick_service.run_auto_assignment(db, notifier, admin_id=admin_id)


@router.post(
    "/auto-picks/{season_id:path}/{gameweek_number:int}", response_model=AutoPickResult
)
async def assign_gameweek_auto_picks(
    season_id: str,
    gameweek_number: int,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
    notifier: NotificationSender = Depends(get_notifier),
) -> AutoPickResult:
    try:
        return await auto_pick_service.run_auto_assignment(
            db,
            notifier,
            season_id=season_id,
            gameweek_number=gameweek_number,
            admin_id=admin_id,
        )
    except GameError as exc:
        raise to_http_exception(exc) from exc


# --- eliminations ---
# season names contain "/": per-gameweek listings sit under a literal
# "gameweeks" segment and the bare season route is registered last


@router.get(
    "/eliminations/{season_id:path}/configs", response_model=List[EliminationConfig]
)
async def elimination_configs(
    season_id: str,
    db: AsyncSession = Depends(get_session),
) -> List[EliminationConfig]:
    return await elimination_service.get_elimination_configs(db, season_id)


@router.get(
    "/eliminations/{season_id:path}/gameweeks/{gameweek_number:int}",
    response_model=List[UserEliminationRead],
)
async def gameweek_eliminations(
    season_id: str,
    gameweek_number: int,
    db: AsyncSession = Depends(get_session),
) -> List[UserEliminationRead]:
    return await elimination_service.get_gameweek_eliminations(db, season_id, gameweek_number)


@router.get("/eliminations/{season_id:path}", response_model=List[UserEliminationRead])
async def season_eliminations(
    season_id: str,
    db: AsyncSession = Depends(get_session),
) -> List[UserEliminationRead]:
    return await elimination_service.get_season_eliminations(db, season_id)


@router.put("/eliminations/{season_id:path}/counts", response_model=BulkUpdateResult)
async def bulk_update_elimination_counts(
    season_id: str,
    payload: BulkEliminationCountUpdate,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> BulkUpdateResult:
    return await elimination_service.bulk_update_elimination_counts(
        db, season_id, payload.counts, admin_id=admin_id
    )


@router.put(
    "/eliminations/{season_id:path}/{gameweek_number:int}/count", status_code=204
)
async def update_elimination_count(
    season_id: str,
    gameweek_number: int,
    payload: EliminationCountUpdate,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await elimination_service.update_elimination_count(
            db, season_id, gameweek_number, payload.elimination_count, admin_id=admin_id
        )
    except GameError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)


@router.post(
    "/eliminations/{season_id:path}/{gameweek_number:int}/process",
    response_model=ProcessEliminationsResponse,
)
async def process_eliminations(
    season_id: str,
    gameweek_number: int,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> ProcessEliminationsResponse:
    try:
        return await elimination_service.process_gameweek_eliminations(
            db, season_id, gameweek_number, admin_id
        )
    except GameError as exc:
        raise to_http_exception(exc) from exc


# --- pick rules ---


@router.get("/pick-rules/{season_id:path}", response_model=PickRulesResponse)
async def get_pick_rules(
    season_id: str,
    db: AsyncSession = Depends(get_session),
) -> PickRulesResponse:
    return await pick_rule_service.get_pick_rules(db, season_id)


@router.post("/pick-rules", response_model=PickRuleRead, status_code=201)
async def create_pick_rule(
    payload: PickRuleCreate,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> PickRuleRead:
    try:
        return await pick_rule_service.create_pick_rule(db, payload, admin_id=admin_id)
    except GameError as exc:
        raise to_http_exception(exc) from exc


@router.put("/pick-rules/{rule_id:int}", response_model=PickRuleRead)
async def update_pick_rule(
    rule_id: int,
    payload: PickRuleUpdate,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> PickRuleRead:
    try:
        return await pick_rule_service.update_pick_rule(db, rule_id, payload, admin_id=admin_id)
    except GameError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/pick-rules/{rule_id:int}", status_code=204)
async def delete_pick_rule(
    rule_id: int,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await pick_rule_service.delete_pick_rule(db, rule_id, admin_id=admin_id)
    except GameError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)


@router.post(
    "/pick-rules/{season_id:path}/defaults", response_model=PickRulesResponse, status_code=201
)
async def initialize_default_pick_rules(
    season_id: str,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> PickRulesResponse:
    try:
        return await pick_rule_service.initialize_default_pick_rules(
            db, season_id, admin_id=admin_id
        )
    except GameError as exc:
        raise to_http_exception(exc) from exc


# --- seasons ---


@router.post("/seasons", response_model=SeasonRead, status_code=201)
async def create_season(
    payload: SeasonCreate,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> SeasonRead:
    try:
        return await season_service.create_season(
            db, payload.name, payload.start_date, payload.end_date, admin_id=admin_id
        )
    except GameError as exc:
        raise to_http_exception(exc) from exc


@router.post("/seasons/{season_id:path}/activate", response_model=SeasonRead)
async def activate_season(
    season_id: str,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
) -> SeasonRead:
    try:
        return await season_service.activate_season(db, season_id, admin_id=admin_id)
    except GameError as exc:
        raise to_http_exception(exc) from exc


# --- results ---


@router.post(
    "/results/{season_id:path}/{gameweek_number:int}/recalculate",
    response_model=ResultsSyncResponse,
)
async def recalculate_gameweek(
    season_id: str,
    gameweek_number: int,
    admin_id: int = Depends(require_admin_id),
    db: AsyncSession = Depends(get_session),
    notifier: NotificationSender = Depends(get_notifier),
) -> ResultsSyncResponse:
    """Rescore a gameweek from stored fixtures and close it out if complete."""
    picks = await results_service.recalculate_points_for_gameweek(
        db, season_id, gameweek_number, admin_id=admin_id
    )
    await results_service.process_eliminations_if_gameweek_complete(
        db, season_id, gameweek_number, notifier
    )
    return ResultsSyncResponse(
        picks_recalculated=picks,
        gameweeks_processed=1,
        message=f"GW{gameweek_number}: recalculated {picks} picks",
    )


# --- audit trail ---


@router.get("/actions", response_model=List[AdminActionRead])
async def admin_actions(
    season_id: Optional[str] = Query(default=None),
    limit: int = Query(default=admin_action_service.DEFAULT_LIMIT, ge=1, le=500),
    db: AsyncSession = Depends(get_session),
) -> List[AdminActionRead]:
    """Most recent admin actions first."""
    return await admin_action_service.list_admin_actions(db, season_id, limit)
