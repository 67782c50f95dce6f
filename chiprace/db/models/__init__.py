from chiprace.db.models.base import Base
from chiprace.db.models.event import Event, EventStatus
from chiprace.db.models.player import PlayerProfile
from chiprace.db.models.ranking import Ranking
from chiprace.db.models.scoring import ScoringSchema

__all__ = [
    "Base",
    "Event",
    "EventStatus",
    "PlayerProfile",
    "Ranking",
    "ScoringSchema",
]
