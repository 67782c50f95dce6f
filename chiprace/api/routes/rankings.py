from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.ranking import (
    LeaderboardResponse,
    ManualPrizeUpdate,
    RankingCreate,
    RankingDetail,
    RankingUpdate,
    SchemaMappingUpdate,
    SimulationRequest,
    SimulationResponse,
)
from chiprace.db import get_db
from chiprace.services.leaderboard_service import LeaderboardService
from chiprace.services.ranking_service import RankingService

router = APIRouter()


def _not_found(ranking_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Ranking {ranking_id} not found",
    )


@router.get(
    "",
    response_model=list[RankingDetail],
    summary="List rankings",
)
async def list_rankings(
    db: AsyncSession = Depends(get_db),
) -> list[RankingDetail]:
    service = RankingService(db)
    return await service.list_rankings()


@router.post(
    "",
    response_model=RankingDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create a ranking",
)
async def create_ranking(
    data: RankingCreate,
    db: AsyncSession = Depends(get_db),
) -> RankingDetail:
    service = RankingService(db)
    try:
        ranking = await service.create_ranking(data)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return RankingDetail.model_validate(ranking)


@router.post(
    "/recalculate",
    response_model=list[RankingDetail],
    summary="Rebuild every ranking",
)
async def recalculate_rankings(
    reattribute: bool = Query(False, description="Re-score closed events first"),
    db: AsyncSession = Depends(get_db),
) -> list[RankingDetail]:
    """Rebuild all standings from the closed-event history."""
    service = LeaderboardService(db)
    return await service.recalculate_all(reattribute=reattribute)


@router.get(
    "/{ranking_id}",
    response_model=RankingDetail,
    summary="Get ranking details",
)
async def get_ranking(
    ranking_id: str,
    db: AsyncSession = Depends(get_db),
) -> RankingDetail:
    service = RankingService(db)
    ranking = await service.get_ranking(ranking_id)
    if not ranking:
        raise _not_found(ranking_id)
    return RankingDetail.model_validate(ranking)


@router.patch(
    "/{ranking_id}",
    response_model=RankingDetail,
    summary="Update ranking metadata",
)
async def update_ranking(
    ranking_id: str,
    data: RankingUpdate,
    db: AsyncSession = Depends(get_db),
) -> RankingDetail:
    service = RankingService(db)
    ranking = await service.update_ranking(ranking_id, data)
    if not ranking:
        raise _not_found(ranking_id)
    return RankingDetail.model_validate(ranking)


@router.delete(
    "/{ranking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a ranking",
)
async def delete_ranking(
    ranking_id: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    service = RankingService(db)
    if not await service.delete_ranking(ranking_id):
        raise _not_found(ranking_id)


@router.put(
    "/{ranking_id}/schema-map",
    response_model=RankingDetail,
    summary="Map an event type to a scoring schema",
)
async def set_schema_mapping(
    ranking_id: str,
    data: SchemaMappingUpdate,
    db: AsyncSession = Depends(get_db),
) -> RankingDetail:
    """Set which schema this ranking applies to an event type.

    A null ``schema_id`` removes the mapping; the string ``"null"`` makes the
    ranking award zero points for that event type.
    """
    service = RankingService(db)
    try:
        ranking = await service.set_schema_mapping(
            ranking_id, data.ranking_type.value, data.schema_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if not ranking:
        raise _not_found(ranking_id)
    return RankingDetail.model_validate(ranking)


@router.put(
    "/{ranking_id}/manual-prize",
    summary="Set a player's display prize",
)
async def set_manual_prize(
    ranking_id: str,
    data: ManualPrizeUpdate,
    db: AsyncSession = Depends(get_db),
) -> dict:
    service = RankingService(db)
    updated = await service.set_manual_prize(ranking_id, data.player_name, data.manual_prize)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Player {data.player_name} not found in ranking {ranking_id}",
        )
    return {"status": "updated"}


@router.get(
    "/{ranking_id}/leaderboard",
    response_model=LeaderboardResponse,
    summary="Get ranking standings",
)
async def get_leaderboard(
    ranking_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> LeaderboardResponse:
    service = LeaderboardService(db)
    result = await service.get_leaderboard(ranking_id, page, page_size)
    if result is None:
        raise _not_found(ranking_id)
    entries, total = result
    return LeaderboardResponse(
        ranking_id=ranking_id,
        entries=entries,
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post(
    "/{ranking_id}/simulate",
    response_model=SimulationResponse,
    summary="Simulate the points of a result",
)
async def simulate_points(
    ranking_id: str,
    request: SimulationRequest,
    db: AsyncSession = Depends(get_db),
) -> SimulationResponse:
    service = RankingService(db)
    simulation = await service.simulate(ranking_id, request)
    if simulation is None:
        raise _not_found(ranking_id)
    return simulation
