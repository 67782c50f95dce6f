from datetime import date

from sqlalchemy import Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chiprace.db.models.base import Base, JSONType, TimestampMixin


class Ranking(Base, TimestampMixin):
    __tablename__ = "rankings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    rules: Mapped[str] = mapped_column(Text, default="")
    start_date: Mapped[date | None] = mapped_column(Date)
    end_date: Mapped[date | None] = mapped_column(Date)
    prize_info_title: Mapped[str | None] = mapped_column(String(255))
    prize_info_detail: Mapped[str | None] = mapped_column(Text)

    # ranking_type -> scoring schema id ("null" awards zero points)
    scoring_schema_map: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    # Derived standings, rebuilt from closed events on every recalculation
    players: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    def __repr__(self) -> str:
        return f"<Ranking {self.id} players={len(self.players or [])}>"
