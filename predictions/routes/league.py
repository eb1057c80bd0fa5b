from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from predictions.models.league import LeagueStandingsResponse
from predictions.services.standings_service import get_standings
from predictions.utils.db_async import get_session

router = APIRouter(prefix="/api/league", tags=["league"])


@router.get("/standings", response_model=LeagueStandingsResponse)
async def league_standings(
    season_id: Optional[str] = Query(default=None, description="Defaults to the active season"),
    db: AsyncSession = Depends(get_session),
) -> LeagueStandingsResponse:
    """Participant leaderboard for a season."""
    return await get_standings(db, season_id)
