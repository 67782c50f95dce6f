from chiprace.services.event_service import EventService
from chiprace.services.leaderboard_service import LeaderboardService
from chiprace.services.player_service import PlayerService
from chiprace.services.ranking_service import RankingService
from chiprace.services.scoring_service import ScoringService

__all__ = [
    "EventService",
    "LeaderboardService",
    "PlayerService",
    "RankingService",
    "ScoringService",
]
