from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.player import PlayerProfileInfo, PlayerStats, RecentScore
from chiprace.db import get_db
from chiprace.services.player_service import PlayerService

router = APIRouter()


@router.put(
    "/profiles",
    response_model=PlayerProfileInfo,
    summary="Create or update a player profile",
)
async def upsert_profile(
    data: PlayerProfileInfo,
    db: AsyncSession = Depends(get_db),
) -> PlayerProfileInfo:
    service = PlayerService(db)
    profile = await service.upsert_profile(data)
    return PlayerProfileInfo.model_validate(profile)


@router.get(
    "/{name}/stats",
    response_model=PlayerStats,
    summary="Get player tournament statistics",
)
async def get_player_stats(
    name: str,
    ranking_id: str | None = Query(None, description="Count only this ranking's points"),
    db: AsyncSession = Depends(get_db),
) -> PlayerStats:
    """Tournament log, winnings, titles and ITM rate from closed events."""
    service = PlayerService(db)
    stats = await service.get_player_stats(name, ranking_id)
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Player {name} not found",
        )
    return stats


@router.get(
    "/{name}/recent-scores",
    response_model=list[RecentScore],
    summary="Get a player's latest scores in a ranking",
)
async def get_recent_scores(
    name: str,
    ranking_id: str = Query(..., description="Ranking to read points from"),
    limit: int = Query(3, ge=1, le=20),
    db: AsyncSession = Depends(get_db),
) -> list[RecentScore]:
    service = PlayerService(db)
    return await service.get_recent_scores(name, ranking_id, limit)
