import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.ranking import (
    RankingCreate,
    RankingDetail,
    RankingUpdate,
    SimulationRequest,
    SimulationResponse,
)
from chiprace.db.models.ranking import Ranking
from chiprace.db.models.scoring import RankingFormula
from chiprace.services.leaderboard_service import LeaderboardService, normalize_name
from chiprace.services.scoring_service import (
    NO_POINTS_SCHEMA_ID,
    ScoringService,
    simulate_points,
)

logger = structlog.get_logger()

RANKING_TYPES = {formula.value for formula in RankingFormula}


class RankingService:
    """Service for ranking metadata and per-ranking scoring configuration."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_rankings(self) -> list[RankingDetail]:
        result = await self.db.execute(select(Ranking).order_by(Ranking.created_at, Ranking.id))
        return [RankingDetail.model_validate(r) for r in result.scalars().all()]

    async def get_ranking(self, ranking_id: str) -> Ranking | None:
        result = await self.db.execute(select(Ranking).where(Ranking.id == ranking_id))
        return result.scalar_one_or_none()

    async def create_ranking(self, data: RankingCreate) -> Ranking:
        """Create a ranking and score the closed events that already list it."""
        if await self.get_ranking(data.id):
            raise ValueError(f"Ranking {data.id} already exists")
        self._validate_schema_map(data.scoring_schema_map)

        ranking = Ranking(**data.model_dump(), players=[])
        self.db.add(ranking)
        await self.db.flush()

        logger.info("Ranking created", ranking_id=data.id, label=data.label)
        await LeaderboardService(self.db).recalculate_all(reattribute=True)
        return ranking

    async def update_ranking(self, ranking_id: str, data: RankingUpdate) -> Ranking | None:
        """Update display metadata. Point totals are untouched."""
        ranking = await self.get_ranking(ranking_id)
        if not ranking:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(ranking, field, value)
        await self.db.flush()

        logger.info("Ranking updated", ranking_id=ranking_id)
        return ranking

    async def delete_ranking(self, ranking_id: str) -> bool:
        ranking = await self.get_ranking(ranking_id)
        if not ranking:
            return False

        await self.db.delete(ranking)
        await self.db.flush()
        logger.info("Ranking deleted", ranking_id=ranking_id)
        return True

    async def set_schema_mapping(
        self,
        ranking_id: str,
        ranking_type: str,
        schema_id: str | None,
    ) -> Ranking | None:
        """Map an event ranking type to a schema for this ranking.

        ``None`` removes the mapping; ``"null"`` makes the ranking award zero
        points for that event type. Closed events are re-scored afterwards.
        """
        ranking = await self.get_ranking(ranking_id)
        if not ranking:
            return None

        schema_map = dict(ranking.scoring_schema_map or {})
        if schema_id is None:
            schema_map.pop(ranking_type, None)
        else:
            schema_map[ranking_type] = schema_id
        self._validate_schema_map(schema_map)
        if schema_id not in (None, NO_POINTS_SCHEMA_ID):
            if not await ScoringService(self.db).get_schema(schema_id):
                raise ValueError(f"Scoring schema {schema_id} not found")

        ranking.scoring_schema_map = schema_map
        await self.db.flush()

        logger.info(
            "Ranking schema mapping updated",
            ranking_id=ranking_id,
            ranking_type=ranking_type,
            schema_id=schema_id,
        )
        await LeaderboardService(self.db).recalculate_all(reattribute=True)
        return ranking

    async def set_manual_prize(
        self,
        ranking_id: str,
        player_name: str,
        manual_prize: str | None,
    ) -> bool:
        """Set the display-only prize label of a ranked player."""
        ranking = await self.get_ranking(ranking_id)
        if not ranking:
            return False

        detail = RankingDetail.model_validate(ranking)
        target = normalize_name(player_name)
        for player in detail.players:
            if normalize_name(player.name) == target:
                player.manual_prize = manual_prize
                break
        else:
            return False

        ranking.players = [p.model_dump(mode="json") for p in detail.players]
        await self.db.flush()
        return True

    async def simulate(
        self,
        ranking_id: str,
        request: SimulationRequest,
    ) -> SimulationResponse | None:
        """Preview the points a hypothetical result would earn in a ranking."""
        ranking = await self.get_ranking(ranking_id)
        if not ranking:
            return None

        registry = await ScoringService(self.db).get_registry()
        schema_id, points = simulate_points(
            RankingDetail.model_validate(ranking),
            request.formula_type,
            request.participants,
            request.buyin,
            request.prize,
            request.is_final_table,
            request.is_vip,
            registry,
        )
        return SimulationResponse(
            ranking_id=ranking_id,
            formula_type=request.formula_type,
            schema_id=schema_id,
            points=points,
        )

    @staticmethod
    def _validate_schema_map(schema_map: dict[str, str]) -> None:
        unknown = set(schema_map) - RANKING_TYPES
        if unknown:
            raise ValueError(f"Unknown ranking types: {', '.join(sorted(unknown))}")
