from collections.abc import Iterable
from decimal import Decimal
from urllib.parse import quote_plus

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.event import EventDetail, PlayerResult
from chiprace.api.schemas.player import PlayerProfileInfo
from chiprace.api.schemas.ranking import RankingDetail, RankingPlayer
from chiprace.core.config import settings
from chiprace.db.models.event import Event, EventStatus
from chiprace.db.models.player import PlayerProfile
from chiprace.db.models.ranking import Ranking
from chiprace.services.attribution_service import attribute_event, included_ranking_ids
from chiprace.services.scoring_service import ScoringService

logger = structlog.get_logger()

# Display fields carried into a rebuilt ranking; none of them affect points
COSMETIC_FIELDS = (
    "avatar",
    "city",
    "bio",
    "social",
    "play_styles",
    "gallery",
    "level",
    "current_exp",
    "next_level_exp",
)


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def player_key(player_id: str | None, name: str) -> str:
    """Accumulator key: the stable player id when known, else the normalized name.

    Name matching cannot tell apart two people sharing a display name.
    """
    return f"id:{player_id}" if player_id else f"name:{normalize_name(name)}"


def result_points(result: PlayerResult, ranking_id: str) -> int:
    """Points a ranking credits for a result, falling back to the default-schema points."""
    if ranking_id in result.points_per_ranking:
        return result.points_per_ranking[ranking_id]
    return result.calculated_points


def counts_towards(event: EventDetail, ranking_id: str) -> bool:
    return (
        event.status == EventStatus.CLOSED
        and bool(event.results)
        and ranking_id in included_ranking_ids(event)
    )


class _Lookup:
    """Index of players by stable id and by normalized name."""

    def __init__(self, players: Iterable) -> None:
        self.by_id: dict = {}
        self.by_name: dict = {}
        # Later entries win, so the most recent metadata is kept
        for player in players:
            if player.id:
                self.by_id[player.id] = player
            if player.name:
                self.by_name[normalize_name(player.name)] = player

    def find(self, player_id: str | None, name: str):
        if player_id and player_id in self.by_id:
            return self.by_id[player_id]
        return self.by_name.get(normalize_name(name))


def _seed_player(
    result: PlayerResult,
    profile: PlayerProfileInfo | None,
    previous: RankingPlayer | None,
) -> RankingPlayer:
    name = profile.name if profile else result.name
    seeded = {}
    for field in COSMETIC_FIELDS:
        value = getattr(profile, field, None) if profile else None
        if value is None and previous is not None:
            value = getattr(previous, field)
        seeded[field] = value

    if seeded["avatar"] is None:
        seeded["avatar"] = settings.default_avatar_url.format(name=quote_plus(name))
    if seeded["city"] is None:
        seeded["city"] = settings.default_player_city

    return RankingPlayer(
        id=(profile.id if profile else None) or result.player_id,
        name=name,
        manual_prize=previous.manual_prize if previous else None,
        is_vip=bool((profile and profile.is_vip) or result.is_vip),
        vip_status=profile.vip_status if profile else "nao_vip",
        **seeded,
    )


def _sort_key(player: RankingPlayer) -> tuple:
    # Ties on points are broken by total winnings, then by name
    return (-player.points, -player.total_winnings, normalize_name(player.name))


def recompute_ranking(
    ranking: RankingDetail,
    events: Iterable[EventDetail],
    profiles: Iterable[PlayerProfileInfo] = (),
) -> RankingDetail:
    """Rebuild a ranking's standings from scratch out of the closed-event history.

    Point totals depend only on ``events``; the previous ``ranking.players``
    is consulted solely for cosmetic fields event data does not carry
    (manual prize, and profile fields when no profile is known).
    Cost is O(events x results); callers should batch invocations.
    """
    profile_lookup = _Lookup(profiles)
    previous_lookup = _Lookup(ranking.players)

    accumulators: dict[str, RankingPlayer] = {}
    for event in events:
        if not counts_towards(event, ranking.id):
            continue

        for result in event.results:
            profile = profile_lookup.find(result.player_id, result.name)
            key = player_key(result.player_id or (profile.id if profile else None), result.name)
            player = accumulators.get(key)
            if player is None:
                previous = previous_lookup.find(result.player_id, result.name)
                player = _seed_player(result, profile, previous)
                accumulators[key] = player

            player.points += result_points(result, ranking.id)
            player.total_winnings += result.prize or Decimal("0")
            player.events_played += 1

    ranked = [
        player.model_copy(update={"rank": index})
        for index, player in enumerate(sorted(accumulators.values(), key=_sort_key), start=1)
    ]
    return ranking.model_copy(update={"players": ranked})


def recompute_all_rankings(
    rankings: Iterable[RankingDetail],
    events: Iterable[EventDetail],
    profiles: Iterable[PlayerProfileInfo] = (),
) -> list[RankingDetail]:
    events = list(events)
    profiles = list(profiles)
    return [recompute_ranking(ranking, events, profiles) for ranking in rankings]


class LeaderboardService:
    """Service for rebuilding and querying ranking standings."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_leaderboard(
        self,
        ranking_id: str,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[RankingPlayer], int] | None:
        """Get a ranking's standings with pagination."""
        result = await self.db.execute(select(Ranking).where(Ranking.id == ranking_id))
        ranking = result.scalar_one_or_none()
        if not ranking:
            return None

        players = RankingDetail.model_validate(ranking).players
        offset = (page - 1) * page_size
        return players[offset : offset + page_size], len(players)

    async def _load_events(self) -> list[Event]:
        result = await self.db.execute(select(Event).order_by(Event.event_date, Event.id))
        return list(result.scalars().all())

    async def _load_profiles(self) -> list[PlayerProfileInfo]:
        result = await self.db.execute(select(PlayerProfile).order_by(PlayerProfile.updated_at))
        return [PlayerProfileInfo.model_validate(p) for p in result.scalars().all()]

    async def recalculate_all(self, reattribute: bool = False) -> list[RankingDetail]:
        """Rebuild every ranking from the complete closed-event history.

        With ``reattribute`` the closed events are first re-scored against the
        current schemas and ranking maps, so formula edits reach past events.
        """
        ranking_result = await self.db.execute(select(Ranking).order_by(Ranking.id))
        ranking_rows = list(ranking_result.scalars().all())
        rankings = [RankingDetail.model_validate(r) for r in ranking_rows]

        event_rows = await self._load_events()
        events = [EventDetail.model_validate(e) for e in event_rows]

        if reattribute:
            registry = await ScoringService(self.db).get_registry()
            for index, (row, event) in enumerate(zip(event_rows, events)):
                if event.status != EventStatus.CLOSED or not event.results:
                    continue
                attributed = attribute_event(event, rankings, registry)
                row.results = [r.model_dump(mode="json") for r in attributed.results]
                events[index] = attributed

        profiles = await self._load_profiles()
        recomputed = recompute_all_rankings(rankings, events, profiles)

        for row, ranking in zip(ranking_rows, recomputed):
            row.players = [p.model_dump(mode="json") for p in ranking.players]
            logger.info(
                "Ranking recalculated",
                ranking_id=ranking.id,
                players=len(ranking.players),
            )

        await self.db.flush()
        return recomputed

    async def recalculate_ranking(self, ranking_id: str) -> RankingDetail | None:
        """Rebuild a single ranking from the closed-event history."""
        result = await self.db.execute(select(Ranking).where(Ranking.id == ranking_id))
        row = result.scalar_one_or_none()
        if not row:
            return None

        events = [EventDetail.model_validate(e) for e in await self._load_events()]
        profiles = await self._load_profiles()
        ranking = recompute_ranking(RankingDetail.model_validate(row), events, profiles)

        row.players = [p.model_dump(mode="json") for p in ranking.players]
        await self.db.flush()

        logger.info("Ranking recalculated", ranking_id=ranking_id, players=len(ranking.players))
        return ranking
