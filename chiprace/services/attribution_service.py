"""Per-ranking point attribution for a closed event.

An event can feed several leaderboards at once, and each leaderboard may
map the event's ranking type to a different scoring schema. Attribution
computes, for every result row, the points each included ranking credits.
"""

import re
from collections.abc import Iterable

import structlog

from chiprace.api.schemas.event import EventDetail, PlayerResult
from chiprace.api.schemas.ranking import RankingDetail
from chiprace.core.config import settings
from chiprace.services.scoring_service import SchemaRegistry, SchemaSelector, calculate_points

logger = structlog.get_logger()

_NON_DIGITS = re.compile(r"\D")


def parse_buyin(text: str | int | None) -> int:
    """Parse a free-text buy-in such as ``"R$ 150"`` by keeping only its digits."""
    if text is None:
        return 0
    digits = _NON_DIGITS.sub("", str(text))
    return int(digits) if digits else 0


def included_ranking_ids(event: EventDetail) -> list[str]:
    """Rankings an event feeds; events saved before the field existed feed the defaults."""
    if event.included_rankings is None:
        return list(settings.default_included_rankings)
    return list(event.included_rankings)


def event_ranking_type(event: EventDetail) -> str:
    return event.ranking_type or settings.default_ranking_type


def event_participants(event: EventDetail, results: list[PlayerResult]) -> int:
    if event.total_participants is not None:
        return event.total_participants
    return len(results)


def resolve_schema_selector(
    ranking: RankingDetail | None,
    event: EventDetail,
) -> SchemaSelector:
    """The ranking's mapping for the event type wins, else the event's own schema."""
    if ranking is not None:
        mapped = ranking.scoring_schema_map.get(event_ranking_type(event))
        if mapped:
            return SchemaSelector.parse(mapped)
    return SchemaSelector.parse(event.scoring_schema_id)


def score_result(
    event: EventDetail,
    result: PlayerResult,
    selector: SchemaSelector,
    registry: SchemaRegistry,
    participants: int,
    buyin: int,
) -> int:
    return calculate_points(
        event_ranking_type(event),
        participants,
        buyin,
        result.position,
        result.prize,
        result.is_vip,
        selector,
        registry,
        rake=result.rake,
        profit_loss=result.profit_loss,
    )


def attribute_results(
    event: EventDetail,
    results: list[PlayerResult],
    rankings: Iterable[RankingDetail],
    registry: SchemaRegistry,
) -> list[PlayerResult]:
    """Return copies of ``results`` annotated with per-ranking and default points."""
    rankings_by_id = {ranking.id: ranking for ranking in rankings}
    participants = event_participants(event, results)
    buyin = parse_buyin(event.buyin)

    selectors: dict[str, SchemaSelector] = {}
    for ranking_id in included_ranking_ids(event):
        ranking = rankings_by_id.get(ranking_id)
        if ranking is None:
            logger.warning(
                "Event includes unknown ranking",
                event_id=event.id,
                ranking_id=ranking_id,
            )
            continue
        selectors[ranking_id] = resolve_schema_selector(ranking, event)

    default_selector = SchemaSelector.parse(event.scoring_schema_id)

    attributed = []
    for result in results:
        points_per_ranking = {
            ranking_id: score_result(event, result, selector, registry, participants, buyin)
            for ranking_id, selector in selectors.items()
        }
        calculated = score_result(
            event, result, default_selector, registry, participants, buyin
        )
        attributed.append(
            result.model_copy(
                update={
                    "calculated_points": calculated,
                    "points_per_ranking": points_per_ranking,
                }
            )
        )

    return attributed


def attribute_event(
    event: EventDetail,
    rankings: Iterable[RankingDetail],
    registry: SchemaRegistry,
) -> EventDetail:
    """Attribute every result of ``event``; events without results are returned unchanged."""
    if not event.results:
        return event

    results = attribute_results(event, event.results, rankings, registry)
    logger.debug(
        "Event results attributed",
        event_id=event.id,
        results=len(results),
        rankings=len(results[0].points_per_ranking),
    )
    return event.model_copy(update={"results": results})
