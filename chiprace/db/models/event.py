from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chiprace.db.models.base import Base, JSONType, TimestampMixin


class EventStatus(str, Enum):
    OPEN = "open"
    RUNNING = "running"
    CLOSED = "closed"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    event_date: Mapped[date | None] = mapped_column(Date)
    description: Mapped[str | None] = mapped_column(Text)
    buyin: Mapped[str] = mapped_column(String(64), default="")
    status: Mapped[EventStatus] = mapped_column(String(20), default=EventStatus.OPEN)

    # Scoring configuration
    ranking_type: Mapped[str] = mapped_column(String(50), default="weekly")
    included_rankings: Mapped[list | None] = mapped_column(JSONType)
    scoring_schema_id: Mapped[str | None] = mapped_column(String(64))

    # Closure data
    total_participants: Mapped[int | None] = mapped_column()
    results: Mapped[list | None] = mapped_column(JSONType)
    total_rebuys: Mapped[int] = mapped_column(default=0)
    total_addons: Mapped[int] = mapped_column(default=0)
    total_prize: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    __table_args__ = (
        Index("idx_events_status", "status"),
        Index("idx_events_date", "event_date"),
    )

    def __repr__(self) -> str:
        return f"<Event {self.id} {self.title!r} status={self.status}>"
