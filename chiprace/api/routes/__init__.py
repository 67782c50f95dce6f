from fastapi import APIRouter

from chiprace.api.routes.events import router as events_router
from chiprace.api.routes.players import router as players_router
from chiprace.api.routes.rankings import router as rankings_router
from chiprace.api.routes.scoring import router as scoring_router

router = APIRouter()

router.include_router(events_router, prefix="/events", tags=["events"])
router.include_router(rankings_router, prefix="/rankings", tags=["rankings"])
router.include_router(players_router, prefix="/players", tags=["players"])
router.include_router(scoring_router, prefix="/config", tags=["configuration"])
