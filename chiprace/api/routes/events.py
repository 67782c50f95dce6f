from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.event import (
    EventClose,
    EventCreate,
    EventDetail,
    EventList,
    PlayerResult,
)
from chiprace.db import get_db
from chiprace.services.event_service import EventSaveError, EventService

router = APIRouter()


def _not_found(event_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Event {event_id} not found",
    )


def _save_failed(exc: EventSaveError) -> HTTPException:
    # The attributed rows are returned so the admin can resubmit them
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "message": str(exc),
            "results": [r.model_dump(mode="json") for r in exc.event.results or []],
        },
    )


@router.get(
    "",
    response_model=EventList,
    summary="List events",
)
async def list_events(
    status_filter: str | None = Query(None, alias="status", description="Filter by status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> EventList:
    service = EventService(db)
    events, total = await service.list_events(status_filter, page, page_size)
    return EventList(events=[EventDetail.model_validate(e) for e in events], total=total)


@router.post(
    "",
    response_model=EventDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Create an event",
)
async def create_event(
    data: EventCreate,
    db: AsyncSession = Depends(get_db),
) -> EventDetail:
    service = EventService(db)
    try:
        event = await service.create_event(data)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return EventDetail.model_validate(event)


@router.get(
    "/{event_id}",
    response_model=EventDetail,
    summary="Get event details",
)
async def get_event(
    event_id: str,
    db: AsyncSession = Depends(get_db),
) -> EventDetail:
    service = EventService(db)
    event = await service.get_event(event_id)
    if not event:
        raise _not_found(event_id)
    return EventDetail.model_validate(event)


@router.post(
    "/{event_id}/preview",
    response_model=list[PlayerResult],
    summary="Score draft results without saving",
)
async def preview_results(
    event_id: str,
    data: EventClose,
    db: AsyncSession = Depends(get_db),
) -> list[PlayerResult]:
    """Recompute points for the closing form after each edit."""
    service = EventService(db)
    results = await service.preview_results(event_id, data)
    if results is None:
        raise _not_found(event_id)
    return results


@router.post(
    "/{event_id}/close",
    response_model=EventDetail,
    summary="Close an event with its results",
)
async def close_event(
    event_id: str,
    data: EventClose,
    db: AsyncSession = Depends(get_db),
) -> EventDetail:
    """Attribute points per ranking, close the event and rebuild every ranking."""
    service = EventService(db)
    try:
        event = await service.close_event(event_id, data)
    except EventSaveError as exc:
        raise _save_failed(exc)
    if event is None:
        raise _not_found(event_id)
    return event


@router.put(
    "/{event_id}/results",
    response_model=EventDetail,
    summary="Edit the results of a closed event",
)
async def update_results(
    event_id: str,
    data: EventClose,
    db: AsyncSession = Depends(get_db),
) -> EventDetail:
    service = EventService(db)
    try:
        event = await service.update_results(event_id, data)
    except EventSaveError as exc:
        raise _save_failed(exc)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if event is None:
        raise _not_found(event_id)
    return event
