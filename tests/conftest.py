"""Shared test fixtures."""

import threading
import time
from dataclasses import dataclass, field, replace
from datetime import date

import pytest

from calorie_tracker.adapters.local_food_source import LocalFoodSource
from calorie_tracker.adapters.usda_client import UsdaClient
from calorie_tracker.config import Settings
from calorie_tracker.containers import AppContainer
from calorie_tracker.domain.errors import ConflictError
from calorie_tracker.domain.ledger import DailyLedger
from calorie_tracker.domain.nutrition import FoodRecord, FoodSource, to_food_record
from calorie_tracker.services.cache import InMemoryCache
from calorie_tracker.services.food_database import (
    FoodDatabaseService,
    FoodRepository,
)
from calorie_tracker.services.ledger import LedgerRepository, LedgerService
from calorie_tracker.services.nutrition import UsdaFoodSource
from calorie_tracker.services.search import FoodSearchService
from calorie_tracker.services.stats import WeeklyRollupService


@dataclass
class InMemoryLedgerRepository(LedgerRepository):
    """In-memory ledger repository with the same uniqueness and revision rules."""

    ledgers: dict[date, DailyLedger] = field(default_factory=dict)
    delay_seconds: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def find(self, day: date) -> DailyLedger | None:
        if self.delay_seconds:
            time.sleep(self.delay_seconds)
        return self.ledgers.get(day)

    def insert(self, ledger: DailyLedger) -> DailyLedger:
        with self._lock:
            if ledger.date in self.ledgers:
                raise ConflictError(f"Ledger for {ledger.date} already exists")
            self.ledgers[ledger.date] = ledger
            return ledger

    def upsert(
        self, ledger: DailyLedger, expected_revision: int | None = None
    ) -> DailyLedger:
        with self._lock:
            current = self.ledgers.get(ledger.date)
            if expected_revision is not None and (
                current is None or current.revision != expected_revision
            ):
                raise ConflictError(f"Ledger for {ledger.date} changed concurrently")
            self.ledgers[ledger.date] = ledger
            return ledger

    def find_range(self, start: date, end: date) -> list[DailyLedger]:
        return [
            self.ledgers[day] for day in sorted(self.ledgers) if start <= day <= end
        ]


@dataclass
class ConflictingLedgerRepository(InMemoryLedgerRepository):
    """Simulates another writer bumping the revision before our first writes."""

    conflicts: int = 1
    upsert_calls: int = 0

    def upsert(
        self, ledger: DailyLedger, expected_revision: int | None = None
    ) -> DailyLedger:
        self.upsert_calls += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            current = self.ledgers[ledger.date]
            self.ledgers[ledger.date] = replace(
                current, revision=current.revision + 1
            )
        return super().upsert(ledger, expected_revision)


@dataclass
class InMemoryFoodRepository(FoodRepository):
    """In-memory curated food store that also acts as the userdb source."""

    foods: list[FoodRecord] = field(default_factory=list)
    priority: int = 0
    source_name: str = FoodSource.USERDB.value

    async def search(self, term: str) -> list[FoodRecord]:
        return [food for food in self.foods if term.lower() in food.name.lower()]

    def find_by_name(self, name: str) -> FoodRecord | None:
        for food in self.foods:
            if food.name.lower() == name.lower():
                return food
        return None

    def has_foods(self) -> bool:
        return bool(self.foods)

    def create_food(self, record: FoodRecord) -> FoodRecord:
        if self.find_by_name(record.name) is not None:
            raise ConflictError(f"Food {record.name!r} already exists")
        self.foods.append(record)
        return record

    def create_foods(self, records: list[FoodRecord]) -> list[FoodRecord]:
        return [self.create_food(record) for record in records]


@dataclass
class StaticFoodSource:
    """Food source returning fixed rows."""

    source: FoodSource
    rows: list[dict[str, object]]
    priority: int = 0
    calls: list[str] = field(default_factory=list)

    @property
    def source_name(self) -> str:
        return self.source.value

    async def search(self, term: str) -> list[FoodRecord]:
        self.calls.append(term)
        return [to_food_record(row, self.source) for row in self.rows]


@dataclass
class FailingFoodSource:
    """Food source that always raises."""

    priority: int = 2
    source_name: str = FoodSource.EXTERNAL.value

    async def search(self, term: str) -> list[FoodRecord]:
        raise RuntimeError("upstream unavailable")


@dataclass
class FakeUsdaClient(UsdaClient):
    """Fake USDA client with in-memory responses."""

    search_payload: dict[str, object] = field(
        default_factory=lambda: {
            "foods": [
                {
                    "fdcId": 1750340,
                    "description": "Bananas, raw",
                    "foodCategory": "Fruits and Fruit Juices",
                    "foodNutrients": [
                        {"nutrientId": 1008, "value": 89},
                        {"nutrientId": 1003, "value": 1.09},
                        {"nutrientId": 1004, "value": 0.33},
                        {"nutrientId": 1005, "value": 22.8},
                        {"nutrientId": 1079, "value": 2.6},
                    ],
                }
            ]
        }
    )
    food_payload: dict[str, object] = field(
        default_factory=lambda: {
            "fdcId": 1750340,
            "description": "Bananas, raw",
            "foodCategory": {"description": "Fruits and Fruit Juices"},
            "foodNutrients": [
                {"nutrient": {"id": 1008}, "amount": 89},
                {"nutrient": {"id": 1003}, "amount": 1.09},
                {"nutrient": {"id": 1004}, "amount": 0.33},
                {"nutrient": {"id": 1005}, "amount": 22.8},
            ],
        }
    )
    search_calls: int = 0
    food_calls: int = 0

    async def search_foods(self, query: str, page_size: int = 15) -> dict[str, object]:
        self.search_calls += 1
        return self.search_payload

    async def get_food(self, fdc_id: int) -> dict[str, object]:
        self.food_calls += 1
        return self.food_payload


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        usda_api_key="usda-key",
    )


@pytest.fixture
def ledger_repository() -> InMemoryLedgerRepository:
    return InMemoryLedgerRepository()


@pytest.fixture
def food_repository() -> InMemoryFoodRepository:
    return InMemoryFoodRepository()


@pytest.fixture
def usda_client() -> FakeUsdaClient:
    return FakeUsdaClient()


@pytest.fixture
def container(
    settings: Settings,
    ledger_repository: InMemoryLedgerRepository,
    food_repository: InMemoryFoodRepository,
    usda_client: FakeUsdaClient,
) -> AppContainer:
    usda_source = UsdaFoodSource(client=usda_client, cache=InMemoryCache())
    search_service = FoodSearchService(
        adapters=[food_repository, LocalFoodSource.builtin(), usda_source],
        timeout_seconds=settings.search_timeout_seconds,
        per_source_limit=settings.search_per_source_limit,
        max_results=settings.search_max_results,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        ledger_service=LedgerService(
            repository=ledger_repository, scaling_mode=settings.scaling_mode
        ),
        search_service=search_service,
        rollup_service=WeeklyRollupService(ledger_repository),
        food_database_service=FoodDatabaseService(food_repository),
        usda_source=usda_source,
        close_resources=close_resources,
    )
