import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.integration


async def create_annual_ranking(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/rankings",
        json={
            "id": "annual",
            "label": "Anual",
            "scoring_schema_map": {"weekly": "weekly"},
        },
    )
    assert response.status_code == 201


async def create_and_close_event(client: AsyncClient) -> dict:
    response = await client.post(
        "/api/v1/events",
        json={
            "id": "evt-1",
            "title": "Semanal #1",
            "event_date": "2024-03-01",
            "buyin": "R$ 150",
            "included_rankings": ["annual"],
        },
    )
    assert response.status_code == 201

    response = await client.post(
        "/api/v1/events/evt-1/close",
        json={
            "total_participants": 30,
            "results": [
                {"name": "Ana", "position": 1, "prize": "500"},
                {"name": "Bruno", "position": 2, "prize": "200"},
            ],
        },
    )
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_get_scoring_schemas(client: AsyncClient) -> None:
    """Test listing scoring schemas initializes defaults."""
    response = await client.get("/api/v1/config/scoring")
    assert response.status_code == 200
    data = response.json()
    assert {schema["id"] for schema in data} == {"weekly", "monthly", "special"}


@pytest.mark.asyncio
async def test_reserved_schema_id_rejected(client: AsyncClient) -> None:
    response = await client.post("/api/v1/config/scoring", json={"id": "null", "name": "Nada"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_get_ranking_not_found(client: AsyncClient) -> None:
    response = await client.get("/api/v1/rankings/nonexistent/leaderboard")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_close_event_not_found(client: AsyncClient) -> None:
    response = await client.post("/api/v1/events/missing/close", json={"results": []})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_close_event_attributes_points(client: AsyncClient) -> None:
    await create_annual_ranking(client)
    event = await create_and_close_event(client)

    assert event["status"] == "closed"
    # 30/3 + 150/3 + 10 (final table) + prize/10
    points = {r["name"]: r["points_per_ranking"]["annual"] for r in event["results"]}
    assert points == {"Ana": 120, "Bruno": 90}


@pytest.mark.asyncio
async def test_leaderboard_after_close(client: AsyncClient) -> None:
    await create_annual_ranking(client)
    await create_and_close_event(client)

    response = await client.get("/api/v1/rankings/annual/leaderboard")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [(e["rank"], e["name"], e["points"]) for e in data["entries"]] == [
        (1, "Ana", 120),
        (2, "Bruno", 90),
    ]
    assert float(data["entries"][0]["total_winnings"]) == 500


@pytest.mark.asyncio
async def test_schema_mapping_rescores_closed_events(client: AsyncClient) -> None:
    await create_annual_ranking(client)
    await create_and_close_event(client)

    response = await client.put(
        "/api/v1/rankings/annual/schema-map",
        json={"ranking_type": "weekly", "schema_id": "null"},
    )
    assert response.status_code == 200

    response = await client.get("/api/v1/rankings/annual/leaderboard")
    entries = response.json()["entries"]
    assert [(e["name"], e["points"]) for e in entries] == [("Ana", 0), ("Bruno", 0)]


@pytest.mark.asyncio
async def test_schema_mapping_unknown_schema(client: AsyncClient) -> None:
    await create_annual_ranking(client)
    response = await client.put(
        "/api/v1/rankings/annual/schema-map",
        json={"ranking_type": "weekly", "schema_id": "does-not-exist"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_update_results_requires_closed_event(client: AsyncClient) -> None:
    response = await client.post("/api/v1/events", json={"id": "evt-2", "title": "Mensal"})
    assert response.status_code == 201

    response = await client.put(
        "/api/v1/events/evt-2/results",
        json={"results": [{"name": "Ana", "position": 1}]},
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_simulate_points(client: AsyncClient) -> None:
    await create_annual_ranking(client)
    await client.get("/api/v1/config/scoring")

    response = await client.post(
        "/api/v1/rankings/annual/simulate",
        json={"formula_type": "weekly", "participants": 30, "buyin": "150", "is_final_table": True},
    )
    assert response.status_code == 200
    assert response.json() == {
        "ranking_id": "annual",
        "formula_type": "weekly",
        "schema_id": "weekly",
        "points": 70,
    }


@pytest.mark.asyncio
async def test_player_stats_and_recent_scores(client: AsyncClient) -> None:
    await create_annual_ranking(client)
    await create_and_close_event(client)

    response = await client.get("/api/v1/players/Ana/stats")
    assert response.status_code == 200
    stats = response.json()
    assert stats["titles"] == 1
    assert stats["total_points"] == 120
    assert stats["itm_percentage"] == 100

    response = await client.get(
        "/api/v1/players/Ana/recent-scores", params={"ranking_id": "annual"}
    )
    assert response.status_code == 200
    assert [score["points"] for score in response.json()] == [120]


@pytest.mark.asyncio
async def test_player_stats_not_found(client: AsyncClient) -> None:
    response = await client.get("/api/v1/players/Nobody/stats")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_new_ranking_scores_events_already_listing_it(client: AsyncClient) -> None:
    await create_annual_ranking(client)
    response = await client.post(
        "/api/v1/events",
        json={
            "id": "evt-3",
            "title": "Semanal #3",
            "buyin": "R$ 150",
            "included_rankings": ["annual", "custom", "monthly-only"],
        },
    )
    assert response.status_code == 201
    response = await client.post(
        "/api/v1/events/evt-3/close",
        json={"total_participants": 30, "results": [{"name": "Ana", "position": 1}]},
    )
    assert response.status_code == 200

    for ranking_id, schema_id in [("custom", "null"), ("monthly-only", "monthly")]:
        response = await client.post(
            "/api/v1/rankings",
            json={
                "id": ranking_id,
                "label": ranking_id,
                "scoring_schema_map": {"weekly": schema_id},
            },
        )
        assert response.status_code == 201

    response = await client.get("/api/v1/rankings/custom/leaderboard")
    assert [(e["name"], e["points"]) for e in response.json()["entries"]] == [("Ana", 0)]

    # 30/3 + 150/4 + 15 = 62.5
    response = await client.get("/api/v1/rankings/monthly-only/leaderboard")
    assert [(e["name"], e["points"]) for e in response.json()["entries"]] == [("Ana", 63)]

    response = await client.get(
        "/api/v1/players/Ana/stats", params={"ranking_id": "monthly-only"}
    )
    assert response.json()["total_points"] == 63
