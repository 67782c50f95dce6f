from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class PlayerProfileInfo(BaseModel):
    id: str
    name: str
    avatar: str | None = None
    city: str | None = None
    bio: str | None = None
    social: dict[str, str] | None = None
    play_styles: list[str] | None = None
    gallery: list[str] | None = None
    level: int | None = None
    current_exp: int | None = None
    next_level_exp: int | None = None
    is_vip: bool = False
    vip_status: str = "nao_vip"

    model_config = {"from_attributes": True}


class TournamentLogEntry(BaseModel):
    event_id: str
    event_date: date | None
    event_name: str
    position: int
    points: int
    prize: Decimal


class PlayerStats(BaseModel):
    name: str
    player_id: str | None
    total_points: int
    total_winnings: Decimal
    titles: int
    itm_percentage: int
    events_played: int
    tournament_log: list[TournamentLogEntry]


class RecentScore(BaseModel):
    event_id: str
    event_date: date | None
    points: int
