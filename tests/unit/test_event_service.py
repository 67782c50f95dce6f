from decimal import Decimal

import pytest

from chiprace.api.schemas.event import EventClose, PlayerResult
from chiprace.db.models.event import Event, EventStatus
from chiprace.services.event_service import EventSaveError, EventService
from chiprace.services.ranking_service import RankingService
from chiprace.services.scoring_service import ScoringService


class FailingSession:
    """Session stand-in whose writes always fail."""

    async def flush(self) -> None:
        raise RuntimeError("connection lost")


@pytest.fixture
def open_event() -> Event:
    return Event(
        id="e1",
        title="Semanal",
        buyin="R$ 150",
        status=EventStatus.OPEN,
        ranking_type="weekly",
        included_rankings=["annual"],
        total_rebuys=0,
        total_addons=0,
        total_prize=Decimal("0"),
    )


class TestCloseEvent:
    """Tests for closing an event when the save fails."""

    @pytest.mark.asyncio
    async def test_save_failure_keeps_attributed_results(
        self, monkeypatch, open_event, registry, rankings
    ) -> None:
        async def get_event(self, event_id):
            return open_event

        async def get_registry(self):
            return registry

        async def list_rankings(self):
            return rankings

        monkeypatch.setattr(EventService, "get_event", get_event)
        monkeypatch.setattr(ScoringService, "get_registry", get_registry)
        monkeypatch.setattr(RankingService, "list_rankings", list_rankings)

        service = EventService(FailingSession())
        data = EventClose(results=[PlayerResult(name="Ana", position=1)], total_participants=30)

        with pytest.raises(EventSaveError) as exc_info:
            await service.close_event("e1", data)

        assert exc_info.value.event_id == "e1"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        [result] = exc_info.value.event.results
        assert result.points_per_ranking == {"annual": 70}
        assert result.calculated_points == 70
