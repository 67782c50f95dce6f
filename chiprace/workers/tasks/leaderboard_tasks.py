import asyncio

import structlog

from chiprace.db.database import create_worker_session_maker
from chiprace.services.leaderboard_service import LeaderboardService
from chiprace.workers.celery_app import celery_app

logger = structlog.get_logger()


def run_async(coro):
    """Run async code in sync context."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _recalculate_all(reattribute: bool) -> dict:
    async with create_worker_session_maker()() as db:
        try:
            rankings = await LeaderboardService(db).recalculate_all(reattribute=reattribute)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    return {
        "status": "completed",
        "rankings": {ranking.id: len(ranking.players) for ranking in rankings},
    }


async def _recalculate_ranking(ranking_id: str) -> dict:
    async with create_worker_session_maker()() as db:
        try:
            ranking = await LeaderboardService(db).recalculate_ranking(ranking_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    if ranking is None:
        return {"status": "not_found", "ranking_id": ranking_id}
    return {"status": "completed", "ranking_id": ranking_id, "players": len(ranking.players)}


@celery_app.task
def recalculate_all_rankings(reattribute: bool = False) -> dict:
    """
    Full recalculation of every ranking.

    This task:
    1. Optionally re-scores closed events against the current schemas
    2. Rebuilds each ranking's standings from the closed-event history
    3. Stores the ranked players on each ranking
    """
    logger.info("Starting full ranking recalculation", reattribute=reattribute)
    result = run_async(_recalculate_all(reattribute))
    logger.info("Full ranking recalculation finished", rankings=len(result["rankings"]))
    return result


@celery_app.task
def recalculate_ranking(ranking_id: str) -> dict:
    """Rebuild a single ranking from the closed-event history."""
    logger.info("Recalculating ranking", ranking_id=ranking_id)
    return run_async(_recalculate_ranking(ranking_id))
