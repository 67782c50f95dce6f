#!/usr/bin/env python
"""Rebuild every ranking from the closed-event history."""

import argparse
import asyncio
import sys

# Fix Windows asyncio
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())


async def recalculate(reattribute: bool, top: int) -> None:
    from chiprace.db.database import create_worker_session_maker
    from chiprace.services.leaderboard_service import LeaderboardService

    print("=" * 60)
    print("RECALCULATING RANKINGS")
    print("=" * 60)
    if reattribute:
        print("Re-scoring closed events with the current scoring schemas")

    async with create_worker_session_maker()() as db:
        rankings = await LeaderboardService(db).recalculate_all(reattribute=reattribute)
        await db.commit()

    for ranking in rankings:
        print(f"\n{ranking.label} ({ranking.id}): {len(ranking.players)} players")
        print("-" * 60)
        print(f"{'Rank':<6}{'Name':<30}{'Points':<10}{'Events':<8}")
        print("-" * 60)
        for player in ranking.players[:top]:
            print(f"{player.rank:<6}{player.name:<30}{player.points:<10}{player.events_played:<8}")

    print("\nRanking recalculation complete!")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--reattribute",
        action="store_true",
        help="re-score closed events against the current schemas first",
    )
    parser.add_argument("--top", type=int, default=10, help="players to print per ranking")
    args = parser.parse_args()
    asyncio.run(recalculate(args.reattribute, args.top))


if __name__ == "__main__":
    main()
