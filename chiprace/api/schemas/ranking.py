from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from chiprace.db.models.scoring import RankingFormula


class RankingPlayer(BaseModel):
    id: str | None = None
    rank: int = 0
    name: str
    points: int = 0
    total_winnings: Decimal = Decimal("0")
    events_played: int = 0
    avatar: str | None = None
    city: str | None = None
    bio: str | None = None
    social: dict[str, str] | None = None
    play_styles: list[str] | None = None
    gallery: list[str] | None = None
    manual_prize: str | None = None
    level: int | None = None
    current_exp: int | None = None
    next_level_exp: int | None = None
    is_vip: bool = False
    vip_status: str = "nao_vip"

    model_config = {"from_attributes": True}


class RankingDetail(BaseModel):
    id: str
    label: str
    description: str = ""
    rules: str = ""
    start_date: date | None = None
    end_date: date | None = None
    prize_info_title: str | None = None
    prize_info_detail: str | None = None
    scoring_schema_map: dict[str, str] = Field(default_factory=dict)
    players: list[RankingPlayer] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class RankingCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    label: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    rules: str = ""
    start_date: date | None = None
    end_date: date | None = None
    prize_info_title: str | None = None
    prize_info_detail: str | None = None
    scoring_schema_map: dict[str, str] = Field(default_factory=dict)


class RankingUpdate(BaseModel):
    label: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    rules: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    prize_info_title: str | None = None
    prize_info_detail: str | None = None


class SchemaMappingUpdate(BaseModel):
    ranking_type: RankingFormula
    # None clears the mapping, "null" forces zero points
    schema_id: str | None = None


class ManualPrizeUpdate(BaseModel):
    player_name: str = Field(..., min_length=1)
    manual_prize: str | None = None


class LeaderboardResponse(BaseModel):
    ranking_id: str
    entries: list[RankingPlayer]
    total: int
    page: int
    page_size: int


class SimulationRequest(BaseModel):
    formula_type: RankingFormula = RankingFormula.WEEKLY
    participants: int = Field(0, ge=0)
    buyin: Decimal = Field(Decimal("0"), ge=0)
    prize: Decimal = Field(Decimal("0"), ge=0)
    is_final_table: bool = False
    is_vip: bool = False


class SimulationResponse(BaseModel):
    ranking_id: str
    formula_type: RankingFormula
    schema_id: str | None
    points: int
