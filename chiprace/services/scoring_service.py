from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.ranking import RankingDetail
from chiprace.api.schemas.scoring import (
    ScoringCriterion,
    ScoringSchemaCreate,
    ScoringSchemaDetail,
    ScoringSchemaUpdate,
    new_id,
)
from chiprace.db.models.scoring import (
    CriterionDataType,
    CriterionOperation,
    CriterionType,
    RankingFormula,
    ScoringSchema,
)

logger = structlog.get_logger()

# Stored schema id meaning "this ranking awards no points for this event type"
NO_POINTS_SCHEMA_ID = "null"

FINAL_TABLE_SIZE = 9
VIP_BONUS = Decimal("5")
ZERO = Decimal("0")

# Formula types scored per session rather than per field size
CASH_GAME_FORMULAS = frozenset({RankingFormula.CASH_ONLINE.value})

# formula -> (participants divisor, buy-in divisor, final table bonus, prize divisor)
TOURNAMENT_FORMULAS: dict[str, tuple[int, int, int, int | None]] = {
    RankingFormula.WEEKLY.value: (3, 3, 10, 10),
    RankingFormula.MONTHLY.value: (3, 4, 15, 15),
    RankingFormula.SPECIAL.value: (4, 6, 30, 25),
    RankingFormula.MTT_ONLINE.value: (5, 10, 0, None),
    RankingFormula.SIT_N_GO.value: (2, 5, 0, None),
    RankingFormula.SATELLITE.value: (10, 50, 0, None),
}

LEGACY_POSITION_POINTS = {1: 100, 2: 80, 3: 70, 4: 60, 5: 50, 6: 40, 7: 30, 8: 20, 9: 10}
LEGACY_MINOR_PLACES = range(10, 16)
LEGACY_MINOR_PLACE_POINTS = 5
LEGACY_MULTIPLIERS = {
    RankingFormula.LEGACY_WEEKLY.value: Decimal("1"),
    RankingFormula.LEGACY_MONTHLY.value: Decimal("1.5"),
    RankingFormula.LEGACY_SPECIAL.value: Decimal("3"),
}


class SelectorKind(str, Enum):
    DEFAULT = "default"
    EXPLICIT = "explicit"
    SUPPRESSED = "suppressed"


@dataclass(frozen=True)
class SchemaSelector:
    """Which scoring schema applies to a calculation.

    DEFAULT means no override (legacy formulas), EXPLICIT names a schema,
    SUPPRESSED forces zero points.
    """

    kind: SelectorKind
    schema_id: str | None = None

    @classmethod
    def default(cls) -> "SchemaSelector":
        return cls(SelectorKind.DEFAULT)

    @classmethod
    def suppressed(cls) -> "SchemaSelector":
        return cls(SelectorKind.SUPPRESSED)

    @classmethod
    def explicit(cls, schema_id: str) -> "SchemaSelector":
        return cls(SelectorKind.EXPLICIT, schema_id)

    @classmethod
    def parse(cls, raw: "str | SchemaSelector | None") -> "SchemaSelector":
        """Parse a stored schema id, honouring the ``"null"`` sentinel."""
        if isinstance(raw, SchemaSelector):
            return raw
        if raw is None or raw == "":
            return cls.default()
        if raw == NO_POINTS_SCHEMA_ID:
            return cls.suppressed()
        return cls.explicit(raw)

    def to_raw(self) -> str | None:
        if self.kind == SelectorKind.SUPPRESSED:
            return NO_POINTS_SCHEMA_ID
        return self.schema_id


class SchemaRegistry:
    """Read-only snapshot of the scoring schemas, keyed by id."""

    def __init__(self, schemas: Iterable[ScoringSchemaDetail] = ()) -> None:
        self._schemas = {schema.id: schema for schema in schemas}

    def get(self, schema_id: str | None) -> ScoringSchemaDetail | None:
        if schema_id is None:
            return None
        return self._schemas.get(schema_id)

    def __contains__(self, schema_id: object) -> bool:
        return schema_id in self._schemas

    def __iter__(self) -> Iterator[ScoringSchemaDetail]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)


def _to_decimal(value: Any) -> Decimal:
    # Non-finite input (NaN, inf) is treated as zero
    if value is None:
        return ZERO
    number = value if isinstance(value, Decimal) else Decimal(str(value))
    return number if number.is_finite() else ZERO


def _round_points(points: Decimal) -> int:
    return int(points.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def is_final_table(position: int | None) -> bool:
    return position is not None and 1 <= position <= FINAL_TABLE_SIZE


def _as_registry(
    schemas: "SchemaRegistry | Iterable[ScoringSchemaDetail] | None",
) -> SchemaRegistry:
    if isinstance(schemas, SchemaRegistry):
        return schemas
    return SchemaRegistry(schemas or ())


def _criterion_input(
    criterion: ScoringCriterion,
    participants: Decimal,
    buyin: Decimal,
    position: int,
    prize: Decimal,
    is_vip: bool,
    rake: Decimal,
    profit_loss: Decimal,
) -> Decimal:
    """Return the event/result value a criterion reads from."""
    criterion_type = criterion.type
    if criterion_type == CriterionType.PARTICIPANTS:
        return participants
    # "spent" has no input of its own and reuses the buy-in
    if criterion_type in (CriterionType.BUYIN, CriterionType.SPENT):
        return buyin
    if criterion_type in (CriterionType.ITM, CriterionType.WINNINGS):
        return prize
    if criterion_type == CriterionType.RAKE:
        return rake
    if criterion_type == CriterionType.PROFIT_LOSS:
        return min(abs(profit_loss), rake)
    if criterion_type == CriterionType.IS_FT:
        return Decimal("1") if is_final_table(position) else ZERO
    if criterion_type == CriterionType.IS_VIP:
        return Decimal("1") if is_vip else ZERO
    return ZERO


def _criterion_points(criterion: ScoringCriterion, selected: Decimal) -> Decimal:
    value = _to_decimal(criterion.value)
    operation = criterion.operation
    if criterion.data_type == CriterionDataType.BOOLEAN:
        operation = CriterionOperation.SUM

    if operation == CriterionOperation.MULTIPLY:
        return selected * value
    if operation == CriterionOperation.DIVIDE:
        if value == 0:
            return ZERO
        return selected / value
    if operation == CriterionOperation.SUM:
        return value if selected > 0 else ZERO
    return ZERO


def score_with_schema(
    schema: ScoringSchemaDetail,
    participants: Decimal,
    buyin: Decimal,
    position: int,
    prize: Decimal,
    is_vip: bool,
    rake: Decimal = ZERO,
    profit_loss: Decimal = ZERO,
) -> Decimal:
    """Evaluate an admin-defined schema: position bonus plus every criterion."""
    points = _to_decimal(schema.position_points.get(position))

    for criterion in schema.criteria:
        selected = _criterion_input(
            criterion, participants, buyin, position, prize, is_vip, rake, profit_loss
        )
        points += _criterion_points(criterion, selected)

    return points


def score_with_legacy_formula(
    formula_type: str,
    participants: Decimal,
    buyin: Decimal,
    position: int,
    prize: Decimal,
    is_vip: bool,
    rake: Decimal = ZERO,
    profit_loss: Decimal = ZERO,
) -> Decimal:
    """Hard-coded formulas kept for events scored before schemas existed."""
    points = ZERO

    if formula_type in TOURNAMENT_FORMULAS:
        players_div, buyin_div, ft_bonus, prize_div = TOURNAMENT_FORMULAS[formula_type]
        points = participants / players_div + buyin / buyin_div
        if is_final_table(position):
            points += ft_bonus
        if prize_div and prize > 0:
            points += prize / prize_div
    elif formula_type in LEGACY_MULTIPLIERS:
        if position in LEGACY_POSITION_POINTS:
            base = Decimal(LEGACY_POSITION_POINTS[position])
        elif position in LEGACY_MINOR_PLACES:
            base = Decimal(LEGACY_MINOR_PLACE_POINTS)
        else:
            base = ZERO
        points = base * LEGACY_MULTIPLIERS[formula_type]
    elif formula_type == RankingFormula.CASH_ONLINE.value:
        points = rake + min(abs(profit_loss), rake)

    if is_vip:
        points += VIP_BONUS

    return points


def calculate_points(
    formula_type: str,
    total_participants: int,
    buyin_amount: Any,
    position: int | None,
    prize: Any,
    is_vip: bool,
    schema_id: "str | SchemaSelector | None" = None,
    available_schemas: "SchemaRegistry | Iterable[ScoringSchemaDetail] | None" = None,
    rake: Any = 0,
    profit_loss: Any = 0,
) -> int:
    """Convert one player's result into integer points.

    Args:
        formula_type: The event's ranking type (weekly, monthly, cash_online, ...).
        total_participants: Field size of the event.
        buyin_amount: Buy-in value already parsed to a number.
        position: Finishing position, 1 for the winner, 0 when not applicable.
        prize: Amount won.
        is_vip: Whether the player was VIP at the time of the event.
        schema_id: Schema selector or raw stored id (``"null"`` awards zero).
        available_schemas: Registry snapshot used to resolve ``schema_id``.
        rake: Rake generated (cash games).
        profit_loss: Session result (cash games).

    Returns:
        Points rounded half-up. Never raises on zero divisors or unknown
        schemas; unknown schemas fall back to the legacy formulas.
    """
    selector = SchemaSelector.parse(schema_id)
    if selector.kind == SelectorKind.SUPPRESSED:
        return 0

    formula = str(getattr(formula_type, "value", formula_type) or "")
    participants = _to_decimal(total_participants)
    if (
        participants <= 0
        and formula not in CASH_GAME_FORMULAS
        and selector.kind == SelectorKind.DEFAULT
    ):
        return 0

    position = position or 0
    args = (
        participants,
        _to_decimal(buyin_amount),
        position,
        _to_decimal(prize),
        bool(is_vip),
        _to_decimal(rake),
        _to_decimal(profit_loss),
    )

    if selector.kind == SelectorKind.EXPLICIT:
        schema = _as_registry(available_schemas).get(selector.schema_id)
        if schema is not None:
            return _round_points(score_with_schema(schema, *args))
        logger.warning(
            "Unknown scoring schema, using legacy formula",
            schema_id=selector.schema_id,
            formula_type=formula,
        )

    return _round_points(score_with_legacy_formula(formula, *args))


def simulate_points(
    ranking: RankingDetail,
    formula_type: str,
    participants: int,
    buyin: Any,
    prize: Any,
    is_final_table: bool,
    is_vip: bool,
    registry: SchemaRegistry,
) -> tuple[str | None, int]:
    """Preview the points a result would earn in one ranking.

    A final-table finish is simulated as 1st place, anything else as 10th.
    Returns the schema id that was applied (None for legacy) and the points.
    """
    formula = str(getattr(formula_type, "value", formula_type))
    selector = SchemaSelector.parse(ranking.scoring_schema_map.get(formula) or None)
    position = 1 if is_final_table else FINAL_TABLE_SIZE + 1
    points = calculate_points(
        formula, participants, buyin, position, prize, is_vip, selector, registry
    )
    if selector.kind == SelectorKind.EXPLICIT and selector.schema_id not in registry:
        return None, points
    return selector.to_raw(), points


def _legacy_schema(
    schema_id: str,
    name: str,
    players_div: int,
    buyin_div: int,
    ft_bonus: int,
    prize_div: int,
) -> dict:
    return {
        "id": schema_id,
        "name": name,
        "criteria": [
            {"type": "participants", "label": "Total de Participantes",
             "data_type": "integer", "operation": "divide", "value": players_div},
            {"type": "buyin", "label": "Valor do Buy-in",
             "data_type": "integer", "operation": "divide", "value": buyin_div},
            {"type": "isFt", "label": "Mesa Final",
             "data_type": "boolean", "operation": "sum", "value": ft_bonus},
            {"type": "itm", "label": "Valor do ITM",
             "data_type": "integer", "operation": "divide", "value": prize_div},
            {"type": "isVip", "label": "VIP",
             "data_type": "boolean", "operation": "sum", "value": 5},
        ],
        "position_points": {},
    }


DEFAULT_SCHEMAS = [
    _legacy_schema("weekly", "Semanal", 3, 3, 10, 10),
    _legacy_schema("monthly", "Mensal", 3, 4, 15, 15),
    _legacy_schema("special", "Especial", 4, 6, 30, 25),
]


class ScoringService:
    """Service for managing scoring schemas (the formula registry)."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_schemas(self) -> list[ScoringSchema]:
        """Get all scoring schemas, initializing defaults if needed."""
        result = await self.db.execute(select(ScoringSchema).order_by(ScoringSchema.name))
        schemas = list(result.scalars().all())

        if not schemas:
            schemas = await self._initialize_defaults()

        return schemas

    async def _initialize_defaults(self) -> list[ScoringSchema]:
        schemas = []
        for data in DEFAULT_SCHEMAS:
            detail = ScoringSchemaDetail.model_validate(data)
            schema = ScoringSchema(**self._to_columns(detail))
            self.db.add(schema)
            schemas.append(schema)

        await self.db.flush()
        logger.info("Initialized default scoring schemas", count=len(schemas))
        return schemas

    async def get_registry(self) -> SchemaRegistry:
        """Snapshot of the current schema set for the scoring engine."""
        schemas = await self.list_schemas()
        return SchemaRegistry(ScoringSchemaDetail.model_validate(s) for s in schemas)

    async def get_schema(self, schema_id: str) -> ScoringSchema | None:
        result = await self.db.execute(
            select(ScoringSchema).where(ScoringSchema.id == schema_id)
        )
        return result.scalar_one_or_none()

    async def create_schema(self, data: ScoringSchemaCreate) -> ScoringSchema:
        schema_id = data.id or new_id("schema")
        if schema_id == NO_POINTS_SCHEMA_ID:
            raise ValueError(f"Schema id {NO_POINTS_SCHEMA_ID!r} is reserved")
        if await self.get_schema(schema_id):
            raise ValueError(f"Scoring schema {schema_id} already exists")

        detail = ScoringSchemaDetail(
            id=schema_id,
            name=data.name,
            criteria=data.criteria,
            position_points=data.position_points,
        )
        schema = ScoringSchema(**self._to_columns(detail))
        self.db.add(schema)
        await self.db.flush()

        logger.info("Scoring schema created", schema_id=schema_id, name=data.name)
        await self._trigger_recalculation()
        return schema

    async def update_schema(
        self,
        schema_id: str,
        data: ScoringSchemaUpdate,
    ) -> ScoringSchema | None:
        """Rename a schema or replace its criteria / position table."""
        schema = await self.get_schema(schema_id)
        if not schema:
            return None

        detail = ScoringSchemaDetail.model_validate(schema)
        if data.name is not None:
            detail.name = data.name
        if data.criteria is not None:
            detail.criteria = data.criteria
        if data.position_points is not None:
            detail.position_points = {
                pos: pts for pos, pts in data.position_points.items() if pts != 0
            }

        return await self._save(schema, detail)

    async def add_criterion(
        self,
        schema_id: str,
        criterion: ScoringCriterion,
    ) -> ScoringSchema | None:
        schema = await self.get_schema(schema_id)
        if not schema:
            return None

        detail = ScoringSchemaDetail.model_validate(schema)
        detail.criteria.append(criterion)
        return await self._save(schema, detail)

    async def remove_criterion(
        self,
        schema_id: str,
        criterion_id: str,
    ) -> ScoringSchema | None:
        schema = await self.get_schema(schema_id)
        if not schema:
            return None

        detail = ScoringSchemaDetail.model_validate(schema)
        detail.criteria = [c for c in detail.criteria if c.id != criterion_id]
        return await self._save(schema, detail)

    async def set_position_points(
        self,
        schema_id: str,
        position: int,
        points: Decimal,
    ) -> ScoringSchema | None:
        """Set the fixed bonus for a finishing position; zero removes the row."""
        schema = await self.get_schema(schema_id)
        if not schema:
            return None

        detail = ScoringSchemaDetail.model_validate(schema)
        if points == 0:
            detail.position_points.pop(position, None)
        else:
            detail.position_points[position] = points
        return await self._save(schema, detail)

    async def delete_schema(self, schema_id: str) -> bool:
        """Delete a schema. Rankings still mapping to it fall back to legacy formulas."""
        schema = await self.get_schema(schema_id)
        if not schema:
            return False

        remaining = await self.list_schemas()
        if len(remaining) <= 1:
            raise ValueError("At least one scoring schema must remain")

        await self.db.delete(schema)
        await self.db.flush()
        logger.info("Scoring schema deleted", schema_id=schema_id)
        await self._trigger_recalculation()
        return True

    async def _save(
        self,
        schema: ScoringSchema,
        detail: ScoringSchemaDetail,
    ) -> ScoringSchema:
        for column, value in self._to_columns(detail).items():
            setattr(schema, column, value)
        await self.db.flush()

        logger.info(
            "Scoring schema updated",
            schema_id=schema.id,
            criteria=len(detail.criteria),
            positions=len(detail.position_points),
        )
        await self._trigger_recalculation()
        return schema

    async def _trigger_recalculation(self) -> None:
        """Re-score closed events with the edited schema set and rebuild rankings."""
        from chiprace.services.leaderboard_service import LeaderboardService

        await LeaderboardService(self.db).recalculate_all(reattribute=True)

    @staticmethod
    def _to_columns(detail: ScoringSchemaDetail) -> dict:
        data = detail.model_dump(mode="json")
        return {
            "id": data["id"],
            "name": data["name"],
            "criteria": data["criteria"],
            "position_points": data["position_points"],
        }
