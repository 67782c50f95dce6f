from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.scoring import (
    PositionPointsUpdate,
    ScoringCriterion,
    ScoringSchemaCreate,
    ScoringSchemaDetail,
    ScoringSchemaUpdate,
)
from chiprace.db import get_db
from chiprace.services.scoring_service import ScoringService

router = APIRouter()


def _not_found(schema_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Scoring schema {schema_id} not found",
    )


@router.get(
    "/scoring",
    response_model=list[ScoringSchemaDetail],
    summary="List scoring schemas",
)
async def list_scoring_schemas(
    db: AsyncSession = Depends(get_db),
) -> list[ScoringSchemaDetail]:
    """Get every scoring schema, seeding the defaults on first use."""
    service = ScoringService(db)
    schemas = await service.list_schemas()
    return [ScoringSchemaDetail.model_validate(s) for s in schemas]


@router.post(
    "/scoring",
    response_model=ScoringSchemaDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create a scoring schema",
)
async def create_scoring_schema(
    data: ScoringSchemaCreate,
    db: AsyncSession = Depends(get_db),
) -> ScoringSchemaDetail:
    service = ScoringService(db)
    try:
        schema = await service.create_schema(data)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return ScoringSchemaDetail.model_validate(schema)


@router.get(
    "/scoring/{schema_id}",
    response_model=ScoringSchemaDetail,
    summary="Get a scoring schema",
)
async def get_scoring_schema(
    schema_id: str,
    db: AsyncSession = Depends(get_db),
) -> ScoringSchemaDetail:
    service = ScoringService(db)
    schema = await service.get_schema(schema_id)
    if not schema:
        raise _not_found(schema_id)
    return ScoringSchemaDetail.model_validate(schema)


@router.patch(
    "/scoring/{schema_id}",
    response_model=ScoringSchemaDetail,
    summary="Update a scoring schema",
)
async def update_scoring_schema(
    schema_id: str,
    data: ScoringSchemaUpdate,
    db: AsyncSession = Depends(get_db),
) -> ScoringSchemaDetail:
    """Rename a schema or replace its criteria and position table.

    Closed events are re-scored and every ranking is rebuilt.
    """
    service = ScoringService(db)
    schema = await service.update_schema(schema_id, data)
    if not schema:
        raise _not_found(schema_id)
    return ScoringSchemaDetail.model_validate(schema)


@router.post(
    "/scoring/{schema_id}/criteria",
    response_model=ScoringSchemaDetail,
    summary="Add a criterion to a schema",
)
async def add_scoring_criterion(
    schema_id: str,
    criterion: ScoringCriterion,
    db: AsyncSession = Depends(get_db),
) -> ScoringSchemaDetail:
    service = ScoringService(db)
    schema = await service.add_criterion(schema_id, criterion)
    if not schema:
        raise _not_found(schema_id)
    return ScoringSchemaDetail.model_validate(schema)


@router.delete(
    "/scoring/{schema_id}/criteria/{criterion_id}",
    response_model=ScoringSchemaDetail,
    summary="Remove a criterion from a schema",
)
async def remove_scoring_criterion(
    schema_id: str,
    criterion_id: str,
    db: AsyncSession = Depends(get_db),
) -> ScoringSchemaDetail:
    service = ScoringService(db)
    schema = await service.remove_criterion(schema_id, criterion_id)
    if not schema:
        raise _not_found(schema_id)
    return ScoringSchemaDetail.model_validate(schema)


@router.put(
    "/scoring/{schema_id}/positions",
    response_model=ScoringSchemaDetail,
    summary="Set the bonus for a finishing position",
)
async def set_position_points(
    schema_id: str,
    data: PositionPointsUpdate,
    db: AsyncSession = Depends(get_db),
) -> ScoringSchemaDetail:
    """Set a position bonus; a value of zero removes the position."""
    service = ScoringService(db)
    schema = await service.set_position_points(schema_id, data.position, data.points)
    if not schema:
        raise _not_found(schema_id)
    return ScoringSchemaDetail.model_validate(schema)


@router.delete(
    "/scoring/{schema_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a scoring schema",
)
async def delete_scoring_schema(
    schema_id: str,
    db: AsyncSession = Depends(get_db),
) -> None:
    service = ScoringService(db)
    try:
        deleted = await service.delete_schema(schema_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if not deleted:
        raise _not_found(schema_id)
