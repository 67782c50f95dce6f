from decimal import Decimal

import pytest

from chiprace.api.schemas.ranking import RankingDetail
from chiprace.api.schemas.scoring import ScoringCriterion, ScoringSchemaDetail
from chiprace.db.models.scoring import CriterionDataType, CriterionOperation, CriterionType
from chiprace.services.scoring_service import (
    DEFAULT_SCHEMAS,
    SchemaRegistry,
    SchemaSelector,
    SelectorKind,
    calculate_points,
    is_final_table,
    simulate_points,
)


def criterion(
    criterion_type: CriterionType,
    value: str,
    operation: CriterionOperation | None = CriterionOperation.MULTIPLY,
    data_type: CriterionDataType = CriterionDataType.INTEGER,
) -> ScoringCriterion:
    return ScoringCriterion(
        type=criterion_type,
        value=Decimal(value),
        operation=operation,
        data_type=data_type,
    )


def schema_registry(*criteria: ScoringCriterion, position_points=None) -> SchemaRegistry:
    return SchemaRegistry(
        [
            ScoringSchemaDetail(
                id="custom",
                name="Custom",
                criteria=list(criteria),
                position_points=position_points or {},
            )
        ]
    )


class TestSchemaSelector:
    """Tests for parsing stored schema ids."""

    def test_null_sentinel_suppresses(self) -> None:
        selector = SchemaSelector.parse("null")
        assert selector.kind == SelectorKind.SUPPRESSED
        assert selector.to_raw() == "null"

    @pytest.mark.parametrize("raw", [None, ""])
    def test_missing_id_is_default(self, raw) -> None:
        selector = SchemaSelector.parse(raw)
        assert selector.kind == SelectorKind.DEFAULT
        assert selector.to_raw() is None

    def test_named_schema_is_explicit(self) -> None:
        selector = SchemaSelector.parse("weekly")
        assert selector == SchemaSelector.explicit("weekly")
        assert selector.to_raw() == "weekly"

    def test_selector_passes_through(self) -> None:
        selector = SchemaSelector.suppressed()
        assert SchemaSelector.parse(selector) is selector


class TestLegacyFormulas:
    """Tests for the hard-coded formulas used when no schema is selected."""

    def test_weekly_winner(self) -> None:
        # 30/3 + 150/3 + 10 (final table)
        assert calculate_points("weekly", 30, 150, 1, 0, False) == 70

    def test_weekly_vip_bonus(self) -> None:
        assert calculate_points("weekly", 30, 150, 1, 0, True) == 75

    def test_weekly_outside_final_table(self) -> None:
        assert calculate_points("weekly", 30, 150, 12, 0, False) == 60

    def test_weekly_prize_bonus(self) -> None:
        # 70 + 300/10
        assert calculate_points("weekly", 30, 150, 1, 300, False) == 100

    def test_monthly_rounds_half_up(self) -> None:
        # 3/3 + 6/4 = 2.5
        assert calculate_points("monthly", 3, 6, 20, 0, False) == 3

    def test_special(self) -> None:
        # 40/4 + 300/6 + 30 + 500/25
        assert calculate_points("special", 40, 300, 2, 500, False) == 110

    def test_online_formulas_ignore_prize(self) -> None:
        # 50/5 + 100/10
        assert calculate_points("mtt_online", 50, 100, 30, 1000, False) == 20
        # 10/2 + 50/5
        assert calculate_points("sit_n_go", 10, 50, 1, 200, False) == 15

    @pytest.mark.parametrize(
        "formula,position,expected",
        [
            ("legacy_weekly", 1, 100),
            ("legacy_weekly", 2, 80),
            ("legacy_weekly", 9, 10),
            ("legacy_weekly", 15, 5),
            ("legacy_weekly", 16, 0),
            ("legacy_monthly", 1, 150),
            ("legacy_special", 3, 210),
            ("legacy_special", 12, 15),
        ],
    )
    def test_legacy_position_tables(self, formula: str, position: int, expected: int) -> None:
        assert calculate_points(formula, 20, 100, position, 0, False) == expected

    def test_cash_game(self) -> None:
        # rake + min(|profit/loss|, rake)
        assert calculate_points("cash_online", 0, 0, 0, 0, False, rake=100, profit_loss=-30) == 130

    def test_cash_game_profit_capped_at_rake(self) -> None:
        assert calculate_points("cash_online", 0, 0, 0, 0, False, rake=40, profit_loss=500) == 80

    def test_no_participants_scores_zero(self) -> None:
        assert calculate_points("weekly", 0, 150, 1, 0, True) == 0

    def test_unknown_formula_only_gets_vip_bonus(self) -> None:
        assert calculate_points("freeroll", 30, 150, 1, 0, True) == 5

    def test_non_finite_input_treated_as_zero(self) -> None:
        assert calculate_points("weekly", 30, float("nan"), 20, 0, False) == 10


class TestSchemaScoring:
    """Tests for admin-defined schema evaluation."""

    def test_default_weekly_schema_matches_legacy_formula(self, registry) -> None:
        assert calculate_points("weekly", 30, 150, 1, 300, True, "weekly", registry) == 105

    def test_null_schema_awards_nothing(self, registry) -> None:
        assert calculate_points("weekly", 30, 150, 1, 300, True, "null", registry) == 0

    def test_explicit_schema_scores_without_participants(self, registry) -> None:
        # 0/3 + 150/3 + 10
        assert calculate_points("weekly", 0, 150, 1, 0, False, "weekly", registry) == 60

    def test_unknown_schema_falls_back_to_legacy(self, registry) -> None:
        assert calculate_points("weekly", 30, 150, 1, 0, False, "missing", registry) == 70

    def test_position_points(self) -> None:
        registry = schema_registry(position_points={1: Decimal("100")})
        assert calculate_points("weekly", 30, 150, 1, 0, False, "custom", registry) == 100
        assert calculate_points("weekly", 30, 150, 2, 0, False, "custom", registry) == 0

    def test_divide_by_zero_contributes_nothing(self) -> None:
        registry = schema_registry(
            criterion(CriterionType.PARTICIPANTS, "0", CriterionOperation.DIVIDE),
            criterion(CriterionType.BUYIN, "2", CriterionOperation.DIVIDE),
        )
        assert calculate_points("weekly", 30, 150, 1, 0, False, "custom", registry) == 75

    def test_sum_requires_positive_input(self) -> None:
        registry = schema_registry(criterion(CriterionType.ITM, "20", CriterionOperation.SUM))
        assert calculate_points("weekly", 30, 150, 3, 50, False, "custom", registry) == 20
        assert calculate_points("weekly", 30, 150, 3, 0, False, "custom", registry) == 0

    def test_boolean_criteria_always_sum(self) -> None:
        registry = schema_registry(
            criterion(
                CriterionType.IS_VIP,
                "7",
                CriterionOperation.MULTIPLY,
                CriterionDataType.BOOLEAN,
            )
        )
        assert calculate_points("weekly", 30, 150, 3, 0, True, "custom", registry) == 7
        assert calculate_points("weekly", 30, 150, 3, 0, False, "custom", registry) == 0

    def test_missing_operation_contributes_nothing(self) -> None:
        registry = schema_registry(criterion(CriterionType.BUYIN, "2", operation=None))
        assert calculate_points("weekly", 30, 150, 3, 0, False, "custom", registry) == 0

    def test_spent_reads_buyin(self) -> None:
        registry = schema_registry(criterion(CriterionType.SPENT, "0.1"))
        assert calculate_points("weekly", 30, 150, 3, 0, False, "custom", registry) == 15

    def test_profit_loss_capped_at_rake(self) -> None:
        registry = schema_registry(criterion(CriterionType.PROFIT_LOSS, "1"))
        points = calculate_points(
            "cash_online", 0, 0, 0, 0, False, "custom", registry, rake=50, profit_loss=-80
        )
        assert points == 50

    def test_accepts_plain_schema_list(self) -> None:
        schemas = [ScoringSchemaDetail.model_validate(s) for s in DEFAULT_SCHEMAS]
        assert calculate_points("weekly", 30, 150, 1, 0, False, "weekly", schemas) == 70


class TestFinalTable:
    @pytest.mark.parametrize("position,expected", [(0, False), (1, True), (9, True), (10, False)])
    def test_is_final_table(self, position: int, expected: bool) -> None:
        assert is_final_table(position) is expected


class TestSimulation:
    """Tests for the ranking points simulator."""

    def test_mapped_schema_final_table(self, registry) -> None:
        ranking = RankingDetail(id="annual", label="Anual", scoring_schema_map={"weekly": "weekly"})
        assert simulate_points(ranking, "weekly", 30, 150, 0, True, False, registry) == ("weekly", 70)

    def test_outside_final_table_uses_tenth_place(self, registry) -> None:
        ranking = RankingDetail(id="annual", label="Anual", scoring_schema_map={"weekly": "weekly"})
        assert simulate_points(ranking, "weekly", 30, 150, 0, False, False, registry) == ("weekly", 60)

    def test_unmapped_type_uses_legacy_formula(self, registry) -> None:
        ranking = RankingDetail(id="annual", label="Anual")
        assert simulate_points(ranking, "monthly", 30, 120, 0, True, False, registry) == (None, 55)

    def test_suppressed_mapping(self, registry) -> None:
        ranking = RankingDetail(id="annual", label="Anual", scoring_schema_map={"weekly": "null"})
        assert simulate_points(ranking, "weekly", 30, 150, 0, True, True, registry) == ("null", 0)

    def test_unknown_mapping_reports_legacy(self, registry) -> None:
        ranking = RankingDetail(id="annual", label="Anual", scoring_schema_map={"weekly": "gone"})
        assert simulate_points(ranking, "weekly", 30, 150, 0, True, False, registry) == (None, 70)


class TestDefaultSchemas:
    def test_defaults_cover_tournament_types(self) -> None:
        ids = {schema["id"] for schema in DEFAULT_SCHEMAS}
        assert ids == {"weekly", "monthly", "special"}

    def test_defaults_validate(self) -> None:
        for data in DEFAULT_SCHEMAS:
            schema = ScoringSchemaDetail.model_validate(data)
            assert len(schema.criteria) == 5
            assert schema.position_points == {}
