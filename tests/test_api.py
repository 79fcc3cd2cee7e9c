"""Tests for the HTTP API."""

from datetime import date

from fastapi.testclient import TestClient

from calorie_tracker.api.app import create_app
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.ledger import DailyLedger
from calorie_tracker.domain.nutrition import MacroTotals
from tests.conftest import (
    FakeUsdaClient,
    InMemoryFoodRepository,
    InMemoryLedgerRepository,
)

DAY = "2024-03-14"


def test_health(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_daily_log_creates_default_ledger(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/daily-log", params={"date": DAY})

    body = response.json()
    assert response.status_code == 200
    assert body["date"] == DAY
    assert body["goals"] == {
        "calories": 2000.0,
        "protein": 150.0,
        "carbs": 250.0,
        "fats": 65.0,
    }
    assert body["entries"] == []
    assert body["remaining"]["calories"] == 2000.0


def test_daily_log_rejects_bad_date(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/daily-log", params={"date": "03/14/2024"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_add_and_remove_food(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    added = client.post(
        "/api/add-food",
        params={"date": DAY},
        json={"name": "Rice", "calories": 130, "protein": "2.7", "weight": 200},
    )
    entry = added.json()["entries"][0]
    removed = client.delete(f"/api/remove-food/{entry['id']}", params={"date": DAY})

    assert added.status_code == 200
    assert entry["calories"] == 260
    assert entry["amount"] == 200
    assert added.json()["consumed"]["protein"] == 5.4
    assert removed.status_code == 200
    assert removed.json()["entries"] == []
    assert removed.json()["consumed"]["calories"] == 0


def test_add_food_without_name_or_macros(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.post("/api/add-food", params={"date": DAY}, json={"name": ""})

    assert response.status_code == 400


def test_remove_unknown_entry_is_not_found(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    client.get("/api/daily-log", params={"date": DAY})

    response = client.delete(
        "/api/remove-food/5f0c7c1e-0000-4000-8000-000000000000", params={"date": DAY}
    )

    assert response.status_code == 404


def test_goals_and_clear(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    goals = client.put(
        "/api/daily-goals",
        params={"date": DAY},
        json={"calories": 1800, "protein": 140, "carbs": 200, "fats": 60},
    )
    client.post(
        "/api/add-food", params={"date": DAY}, json={"name": "Soup", "calories": 90}
    )
    cleared = client.post("/api/clear", params={"date": DAY})

    assert goals.status_code == 200
    assert goals.json()["goals"]["calories"] == 1800
    assert cleared.json()["entries"] == []
    assert cleared.json()["goals"]["calories"] == 1800


def test_goals_reject_negative_values(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.put(
        "/api/daily-goals",
        params={"date": DAY},
        json={"calories": -1, "protein": 140, "carbs": 200, "fats": 60},
    )

    assert response.status_code == 400


def test_search_food_merges_sources(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/search-food", params={"query": "Banana"})

    body = response.json()
    assert response.status_code == 200
    assert body["query"] == "banana"
    assert body["source"] == "local"
    assert [food["name"] for food in body["foods"]] == ["Banana, raw", "Bananas, raw"]
    assert body["foods"][1]["source"] == "external"
    assert body["foods"][1]["fdc_id"] == 1750340


def test_search_food_requires_query(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/search-food", params={"query": "  "})

    assert response.status_code == 400


def test_food_details(container: AppContainer, usda_client: FakeUsdaClient) -> None:
    client = TestClient(create_app(container))

    response = client.get("/api/food-details/1750340")

    assert response.status_code == 200
    assert response.json()["calories"] == 89
    assert usda_client.food_calls == 1


def test_food_database_add_and_duplicate(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    payload = {"name": "Overnight oats", "calories": 180, "protein": 7}

    created = client.post("/api/food-database", json=payload)
    duplicate = client.post("/api/food-database", json=payload)
    search = client.get("/api/search-food", params={"query": "overnight"})

    assert created.status_code == 201
    assert created.json()["source"] == "userdb"
    assert duplicate.status_code == 409
    assert search.json()["foods"][0]["name"] == "Overnight oats"


def test_weekly_summary(
    container: AppContainer, ledger_repository: InMemoryLedgerRepository
) -> None:
    for day, calories in ((date(2024, 3, 12), 1800), (date(2024, 3, 14), 2200)):
        ledger_repository.ledgers[day] = DailyLedger(
            date=day, consumed=MacroTotals(calories=calories)
        )
    client = TestClient(create_app(container))

    response = client.get("/api/weekly-summary", params={"date": DAY})

    body = response.json()
    assert response.status_code == 200
    assert body["start"] == "2024-03-08"
    assert body["days"] == 2
    assert body["totals"]["calories"] == 4000
    assert body["averages"]["calories"] == 2000


def test_remove_malformed_entry_id_is_not_found(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.delete("/api/remove-food/not-a-uuid", params={"date": DAY})

    assert response.status_code == 404
    assert "not-a-uuid" in response.json()["error"]


def test_startup_seeds_empty_food_database(
    container: AppContainer, food_repository: InMemoryFoodRepository
) -> None:
    container.settings.seed_food_database = True

    with TestClient(create_app(container)) as client:
        response = client.get("/api/search-food", params={"query": "quinoa"})

    assert len(food_repository.foods) == 15
    assert response.json()["foods"][0]["source"] == "userdb"


def test_startup_skips_seeding_by_default(
    container: AppContainer, food_repository: InMemoryFoodRepository
) -> None:
    with TestClient(create_app(container)):
        pass

    assert food_repository.foods == []
