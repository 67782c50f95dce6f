from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chiprace.api.schemas.event import EventDetail, PlayerResult
from chiprace.api.schemas.player import (
    PlayerProfileInfo,
    PlayerStats,
    RecentScore,
    TournamentLogEntry,
)
from chiprace.core.config import settings
from chiprace.db.models.event import Event, EventStatus
from chiprace.db.models.player import PlayerProfile
from chiprace.services.attribution_service import included_ranking_ids
from chiprace.services.leaderboard_service import normalize_name, result_points

logger = structlog.get_logger()


def find_result(
    event: EventDetail,
    name: str,
    player_id: str | None = None,
) -> PlayerResult | None:
    """Find a player's row in an event, by stable id first and then by name."""
    target = normalize_name(name)
    for result in event.results or []:
        if player_id and result.player_id == player_id:
            return result
        if normalize_name(result.name) == target:
            return result
    return None


def _newest_first(item: tuple[EventDetail, PlayerResult]) -> date:
    return item[0].event_date or date.min


def player_history(
    events: Iterable[EventDetail],
    name: str,
    player_id: str | None = None,
) -> list[tuple[EventDetail, PlayerResult]]:
    """Closed events the player took part in, newest first."""
    history = []
    for event in events:
        if event.status != EventStatus.CLOSED:
            continue
        result = find_result(event, name, player_id)
        if result is not None:
            history.append((event, result))
    return sorted(history, key=_newest_first, reverse=True)


def _credited_points(result: PlayerResult, ranking_id: str | None) -> int:
    if ranking_id is None:
        return result.calculated_points
    return result_points(result, ranking_id)


def build_player_stats(
    events: Iterable[EventDetail],
    name: str,
    player_id: str | None = None,
    ranking_id: str | None = None,
) -> PlayerStats:
    """Summarize a player's closed events.

    Without ``ranking_id`` points are the event-default ``calculated_points``
    over every closed event. With it, only events feeding that ranking count
    and points are the ones the ranking credits, so totals match its leaderboard.
    """
    history = player_history(events, name, player_id)
    if ranking_id is not None:
        history = [
            (event, result)
            for event, result in history
            if ranking_id in included_ranking_ids(event)
        ]

    log = [
        TournamentLogEntry(
            event_id=event.id,
            event_date=event.event_date,
            event_name=event.title,
            position=result.position,
            points=_credited_points(result, ranking_id),
            prize=result.prize,
        )
        for event, result in history
    ]

    itm = sum(1 for entry in log if entry.prize > 0)
    itm_percentage = 0
    if log:
        itm_percentage = int(
            (Decimal(itm * 100) / len(log)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        )

    return PlayerStats(
        name=name,
        player_id=player_id,
        total_points=sum(entry.points for entry in log),
        total_winnings=sum((entry.prize for entry in log), Decimal("0")),
        titles=sum(1 for entry in log if entry.position == 1),
        itm_percentage=itm_percentage,
        events_played=len(log),
        tournament_log=log,
    )


def recent_scores(
    events: Iterable[EventDetail],
    name: str,
    ranking_id: str,
    limit: int = 3,
    player_id: str | None = None,
) -> list[RecentScore]:
    """Latest positive point awards a player earned in one ranking."""
    scores = []
    for event, result in player_history(events, name, player_id):
        if ranking_id not in included_ranking_ids(event):
            continue
        points = result_points(result, ranking_id)
        if points > 0:
            scores.append(RecentScore(event_id=event.id, event_date=event.event_date, points=points))
        if len(scores) >= limit:
            break
    return scores


class PlayerService:
    """Service for player profiles and their tournament statistics."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_profile(self, name: str) -> PlayerProfile | None:
        """Get the most recently updated profile matching a display name."""
        result = await self.db.execute(
            select(PlayerProfile).order_by(PlayerProfile.updated_at.desc())
        )
        target = normalize_name(name)
        for profile in result.scalars().all():
            if normalize_name(profile.name) == target:
                return profile
        return None

    async def upsert_profile(self, data: PlayerProfileInfo) -> PlayerProfile:
        result = await self.db.execute(select(PlayerProfile).where(PlayerProfile.id == data.id))
        profile = result.scalar_one_or_none()
        if profile is None:
            profile = PlayerProfile(**data.model_dump())
            self.db.add(profile)
        else:
            for field, value in data.model_dump(exclude={"id"}).items():
                setattr(profile, field, value)

        await self.db.flush()
        logger.info("Player profile saved", player_id=data.id, name=data.name)
        return profile

    async def _closed_events(self) -> list[EventDetail]:
        result = await self.db.execute(
            select(Event).where(Event.status == EventStatus.CLOSED)
        )
        return [EventDetail.model_validate(e) for e in result.scalars().all()]

    async def get_player_stats(
        self,
        name: str,
        ranking_id: str | None = None,
    ) -> PlayerStats | None:
        """Tournament log and summary stats; None when the player never played."""
        profile = await self.get_profile(name)
        player_id = profile.id if profile else None
        display_name = profile.name if profile else name

        stats = build_player_stats(
            await self._closed_events(), display_name, player_id, ranking_id
        )
        if not stats.events_played and profile is None:
            return None
        return stats

    async def get_recent_scores(
        self,
        name: str,
        ranking_id: str,
        limit: int | None = None,
    ) -> list[RecentScore]:
        profile = await self.get_profile(name)
        return recent_scores(
            await self._closed_events(),
            profile.name if profile else name,
            ranking_id,
            limit=limit or settings.recent_scores_limit,
            player_id=profile.id if profile else None,
        )
