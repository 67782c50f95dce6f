from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from chiprace.db.models.event import EventStatus


class PlayerResult(BaseModel):
    id: str | None = None
    player_id: str | None = None
    name: str = Field(..., min_length=1)
    position: int = 0
    prize: Decimal = Decimal("0")
    is_vip: bool = False
    rake: Decimal = Decimal("0")
    profit_loss: Decimal = Decimal("0")
    calculated_points: int = 0
    points_per_ranking: dict[str, int] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class EventDetail(BaseModel):
    id: str
    title: str
    event_date: date | None = None
    description: str | None = None
    buyin: str = ""
    status: EventStatus = EventStatus.OPEN
    ranking_type: str = "weekly"
    included_rankings: list[str] | None = None
    scoring_schema_id: str | None = None
    total_participants: int | None = None
    results: list[PlayerResult] | None = None
    total_rebuys: int = 0
    total_addons: int = 0
    total_prize: Decimal = Decimal("0")

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    id: str | None = Field(None, min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=255)
    event_date: date | None = None
    description: str | None = None
    buyin: str = ""
    ranking_type: str = "weekly"
    included_rankings: list[str] | None = None
    scoring_schema_id: str | None = None


class EventClose(BaseModel):
    """Results entered by an admin when closing (or re-closing) an event."""

    results: list[PlayerResult]
    total_participants: int | None = Field(None, ge=0)
    ranking_type: str | None = None
    buyin: str | None = None
    total_rebuys: int = Field(0, ge=0)
    total_addons: int = Field(0, ge=0)
    total_prize: Decimal = Field(Decimal("0"), ge=0)


class EventList(BaseModel):
    events: list[EventDetail]
    total: int
