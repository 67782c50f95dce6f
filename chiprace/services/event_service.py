import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.event import EventClose, EventCreate, EventDetail, PlayerResult
from chiprace.api.schemas.scoring import new_id
from chiprace.db.models.event import Event, EventStatus
from chiprace.services.attribution_service import attribute_event, attribute_results
from chiprace.services.leaderboard_service import LeaderboardService
from chiprace.services.ranking_service import RankingService
from chiprace.services.scoring_service import ScoringService

logger = structlog.get_logger()


class EventSaveError(Exception):
    """Saving a closed event failed; ``event`` holds the attributed results."""

    def __init__(self, event_id: str, event: EventDetail) -> None:
        super().__init__(f"Failed to save closed event {event_id}")
        self.event_id = event_id
        self.event = event


class EventService:
    """Service for events and their closure into ranking points."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_event(self, event_id: str) -> Event | None:
        result = await self.db.execute(select(Event).where(Event.id == event_id))
        return result.scalar_one_or_none()

    async def list_events(
        self,
        status: str | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[Event], int]:
        """List events, newest first, with an optional status filter."""
        offset = (page - 1) * page_size

        query = select(Event)
        count_query = select(func.count(Event.id))
        if status:
            try:
                status_enum = EventStatus(status)
                query = query.where(Event.status == status_enum)
                count_query = count_query.where(Event.status == status_enum)
            except ValueError:
                pass

        count_result = await self.db.execute(count_query)
        total = count_result.scalar() or 0

        result = await self.db.execute(
            query.order_by(Event.event_date.desc(), Event.id).offset(offset).limit(page_size)
        )
        return list(result.scalars().all()), total

    async def create_event(self, data: EventCreate) -> Event:
        event_id = data.id or new_id("event")
        if await self.get_event(event_id):
            raise ValueError(f"Event {event_id} already exists")

        event = Event(
            id=event_id,
            status=EventStatus.OPEN,
            **data.model_dump(exclude={"id"}),
        )
        self.db.add(event)
        await self.db.flush()

        logger.info("Event created", event_id=event_id, title=data.title)
        return event

    def _apply_closing_data(self, event: Event, data: EventClose) -> EventDetail:
        detail = EventDetail.model_validate(event)
        updates = {
            "total_participants": data.total_participants,
            "total_rebuys": data.total_rebuys,
            "total_addons": data.total_addons,
            "total_prize": data.total_prize,
        }
        if data.ranking_type:
            updates["ranking_type"] = data.ranking_type
        if data.buyin is not None:
            updates["buyin"] = data.buyin
        return detail.model_copy(update=updates)

    async def preview_results(
        self,
        event_id: str,
        data: EventClose,
    ) -> list[PlayerResult] | None:
        """Score a draft results list without saving it.

        Used while an admin adds, edits or removes rows in the closing form.
        """
        event = await self.get_event(event_id)
        if not event:
            return None

        detail = self._apply_closing_data(event, data)
        registry = await ScoringService(self.db).get_registry()
        rankings = await RankingService(self.db).list_rankings()
        return attribute_results(detail, data.results, rankings, registry)

    async def close_event(self, event_id: str, data: EventClose) -> EventDetail | None:
        """Close (or re-close) an event with its results and rebuild the rankings.

        Attribution finishes for every result before the rankings are rebuilt.
        If the save fails, ``EventSaveError`` carries the attributed event so
        the computed points are not lost with the failed write.
        """
        event = await self.get_event(event_id)
        if not event:
            return None

        detail = self._apply_closing_data(event, data).model_copy(
            update={"results": data.results, "status": EventStatus.CLOSED}
        )
        registry = await ScoringService(self.db).get_registry()
        rankings = await RankingService(self.db).list_rankings()
        attributed = attribute_event(detail, rankings, registry)

        event.status = EventStatus.CLOSED
        event.ranking_type = attributed.ranking_type
        event.buyin = attributed.buyin
        event.total_participants = attributed.total_participants
        event.total_rebuys = attributed.total_rebuys
        event.total_addons = attributed.total_addons
        event.total_prize = attributed.total_prize
        event.results = [r.model_dump(mode="json") for r in attributed.results or []]

        try:
            await self.db.flush()
        except Exception as exc:
            logger.exception("Failed to save closed event", event_id=event_id)
            raise EventSaveError(event_id, attributed) from exc

        await LeaderboardService(self.db).recalculate_all()
        logger.info(
            "Event closed",
            event_id=event_id,
            results=len(attributed.results or []),
        )
        return attributed

    async def update_results(self, event_id: str, data: EventClose) -> EventDetail | None:
        """Replace the results of an already-closed event."""
        event = await self.get_event(event_id)
        if not event:
            return None
        if event.status != EventStatus.CLOSED:
            raise ValueError(f"Event {event_id} is not closed")
        return await self.close_event(event_id, data)
