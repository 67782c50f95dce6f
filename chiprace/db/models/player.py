from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from chiprace.db.models.base import Base, JSONType, TimestampMixin


class PlayerProfile(Base, TimestampMixin):
    __tablename__ = "player_profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar: Mapped[str | None] = mapped_column(Text)
    city: Mapped[str | None] = mapped_column(String(255))
    bio: Mapped[str | None] = mapped_column(Text)
    social: Mapped[dict | None] = mapped_column(JSONType)
    play_styles: Mapped[list | None] = mapped_column(JSONType)
    gallery: Mapped[list | None] = mapped_column(JSONType)

    # Gamification
    level: Mapped[int | None] = mapped_column()
    current_exp: Mapped[int | None] = mapped_column()
    next_level_exp: Mapped[int | None] = mapped_column()
    is_vip: Mapped[bool] = mapped_column(default=False)
    vip_status: Mapped[str] = mapped_column(String(20), default="nao_vip")

    __table_args__ = (Index("idx_player_profiles_name", "name"),)

    def __repr__(self) -> str:
        return f"<PlayerProfile {self.name}>"
