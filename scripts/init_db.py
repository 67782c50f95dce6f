#!/usr/bin/env python
"""Initialize database with default scoring schemas and rankings."""

import asyncio

from sqlalchemy import select

from chiprace.core.config import settings
from chiprace.db.database import async_session_maker, init_db
from chiprace.db.models.ranking import Ranking
from chiprace.services.scoring_service import ScoringService


DEFAULT_RANKINGS = [
    (
        "annual",
        "Anual",
        "A soma de todos os seus esforços.",
        "O Ranking Geral Anual soma pontos de todos os torneios regulares da temporada.",
    ),
    (
        "quarterly",
        "Trimestral",
        "Corrida de pontos do trimestre vigente.",
        "Válido apenas para o trimestre vigente (Q1: Jan-Mar, Q2: Abr-Jun, etc).",
    ),
    (
        "legacy",
        "Legacy",
        "Pontuação por posição final.",
        "Tabela fixa por posição: 100, 80, 70, 60, 50, 40, 30, 20, 10; 5 pontos do 10º ao 15º.",
    ),
]


async def init_rankings() -> None:
    """Create the three standard rankings if missing."""
    async with async_session_maker() as session:
        result = await session.execute(select(Ranking.id))
        existing = set(result.scalars().all())

        created = 0
        for ranking_id, label, description, rules in DEFAULT_RANKINGS:
            if ranking_id in existing:
                continue
            session.add(
                Ranking(
                    id=ranking_id,
                    label=label,
                    description=description,
                    rules=rules,
                    scoring_schema_map={},
                    players=[],
                )
            )
            created += 1

        await session.commit()
        print(f"Initialized {created} rankings")


async def init_scoring_schemas() -> None:
    """Seed the default scoring schemas."""
    async with async_session_maker() as session:
        schemas = await ScoringService(session).list_schemas()
        await session.commit()
        print(f"{len(schemas)} scoring schemas available")


async def main() -> None:
    """Main initialization function."""
    print(f"Initializing database: {settings.database_url}")

    await init_db()
    print("Database tables created")

    await init_rankings()
    await init_scoring_schemas()

    print("Database initialization complete!")


if __name__ == "__main__":
    asyncio.run(main())
