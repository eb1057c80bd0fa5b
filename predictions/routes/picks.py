from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.picks import PickCreate, PickRead, PickUpdate
from predictions.routes.deps import get_current_user_id, to_http_exception
from predictions.services import pick_service
from predictions.services.errors import GameError
from predictions.utils.db_async import get_session

router = APIRouter(prefix="/api/picks", tags=["picks"])


@router.get("", response_model=List[PickRead])
async def list_my_picks(
    season_id: Optional[str] = Query(default=None),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> List[PickRead]:
    """The caller's picks, optionally for one season."""
    return await pick_service.list_user_picks(db, user_id, season_id)


@router.post("", response_model=PickRead, status_code=201)
async def create_pick(
    payload: PickCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> PickRead:
    try:
        return await pick_service.create_pick(
            db, user_id, payload.season_id, payload.gameweek_number, payload.team_id
        )
    except GameError as exc:
        raise to_http_exception(exc) from exc


@router.get(
    "/gameweek/{season_id:path}/{gameweek_number:int}", response_model=List[PickRead]
)
async def list_gameweek_picks(
    season_id: str,
    gameweek_number: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> List[PickRead]:
    return await pick_service.list_gameweek_picks(db, season_id, gameweek_number)


@router.get("/{pick_id}", response_model=PickRead)
async def get_pick(
    pick_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> PickRead:
    pick = await pick_service.get_pick(db, pick_id)
    if pick is None:
        raise HTTPException(status_code=404, detail="Pick not found")
    return pick


@router.put("/{pick_id}", response_model=PickRead)
async def update_pick(
    pick_id: int,
    payload: PickUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> PickRead:
    try:
        return await pick_service.update_pick(db, pick_id, user_id, payload.team_id)
    except GameError as exc:
        raise to_http_exception(exc) from exc


@router.delete("/{pick_id}", status_code=204)
async def delete_pick(
    pick_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await pick_service.delete_pick(db, pick_id, user_id)
    except GameError as exc:
        raise to_http_exception(exc) from exc
    return Response(status_code=204)
