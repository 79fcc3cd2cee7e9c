"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from calorie_tracker.adapters.local_food_source import LocalFoodSource
from calorie_tracker.adapters.supabase_food_repository import SupabaseFoodRepository
from calorie_tracker.adapters.supabase_ledger_repository import (
    SupabaseLedgerRepository,
)
from calorie_tracker.adapters.usda_client import HttpxUsdaClient
from calorie_tracker.config import Settings, parse_source_priority
from calorie_tracker.domain.nutrition import FoodSource
from calorie_tracker.services.cache import InMemoryCache
from calorie_tracker.services.food_database import FoodDatabaseService
from calorie_tracker.services.ledger import LedgerService
from calorie_tracker.services.nutrition import UsdaFoodSource
from calorie_tracker.services.search import FoodSearchService
from calorie_tracker.services.stats import WeeklyRollupService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    ledger_service: LedgerService
    search_service: FoodSearchService
    rollup_service: WeeklyRollupService
    food_database_service: FoodDatabaseService
    usda_source: UsdaFoodSource
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    priorities = parse_source_priority(resolved_settings.search_source_priority)
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    ledger_repository = SupabaseLedgerRepository(supabase_client)
    food_repository = SupabaseFoodRepository(
        supabase_client, priority=priorities[FoodSource.USERDB]
    )
    local_source = LocalFoodSource.from_path(resolved_settings.local_foods_path)
    local_source.priority = priorities[FoodSource.LOCAL]
    usda_client = (
        HttpxUsdaClient.create(
            api_key=resolved_settings.usda_api_key,
            base_url=resolved_settings.usda_base_url,
            timeout_seconds=resolved_settings.search_timeout_seconds,
        )
        if resolved_settings.usda_api_key
        else None
    )
    usda_source = UsdaFoodSource(
        client=usda_client,
        cache=InMemoryCache(),
        priority=priorities[FoodSource.EXTERNAL],
        page_size=resolved_settings.usda_page_size,
    )
    ledger_service = LedgerService(
        repository=ledger_repository,
        scaling_mode=resolved_settings.scaling_mode,
        carry_goals_forward=resolved_settings.carry_goals_forward,
    )
    search_service = FoodSearchService(
        adapters=[food_repository, local_source, usda_source],
        timeout_seconds=resolved_settings.search_timeout_seconds,
        per_source_limit=resolved_settings.search_per_source_limit,
        max_results=resolved_settings.search_max_results,
    )

    async def close_resources() -> None:
        if usda_client is not None:
            await usda_client.close()

    return AppContainer(
        settings=resolved_settings,
        ledger_service=ledger_service,
        search_service=search_service,
        rollup_service=WeeklyRollupService(ledger_repository),
        food_database_service=FoodDatabaseService(food_repository),
        usda_source=usda_source,
        close_resources=close_resources,
    )
