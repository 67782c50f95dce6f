from chiprace.api.schemas.event import (
    EventClose,
    EventCreate,
    EventDetail,
    EventList,
    PlayerResult,
)
from chiprace.api.schemas.player import (
    PlayerProfileInfo,
    PlayerStats,
    RecentScore,
    TournamentLogEntry,
)
from chiprace.api.schemas.ranking import (
    LeaderboardResponse,
    ManualPrizeUpdate,
    RankingCreate,
    RankingDetail,
    RankingPlayer,
    RankingUpdate,
    SchemaMappingUpdate,
    SimulationRequest,
    SimulationResponse,
)
from chiprace.api.schemas.scoring import (
    PositionPointsUpdate,
    ScoringCriterion,
    ScoringSchemaCreate,
    ScoringSchemaDetail,
    ScoringSchemaUpdate,
)

__all__ = [
    "EventClose",
    "EventCreate",
    "EventDetail",
    "EventList",
    "PlayerResult",
    "PlayerProfileInfo",
    "PlayerStats",
    "RecentScore",
    "TournamentLogEntry",
    "LeaderboardResponse",
    "ManualPrizeUpdate",
    "RankingCreate",
    "RankingDetail",
    "RankingPlayer",
    "RankingUpdate",
    "SchemaMappingUpdate",
    "SimulationRequest",
    "SimulationResponse",
    "PositionPointsUpdate",
    "ScoringCriterion",
    "ScoringSchemaCreate",
    "ScoringSchemaDetail",
    "ScoringSchemaUpdate",
]
