"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from calorie_tracker.domain.ledger import ScalingMode
from calorie_tracker.domain.nutrition import DEFAULT_SOURCE_PRIORITY, FoodSource

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    usda_api_key: str | None = None
    usda_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    usda_page_size: int = 15
    local_foods_path: Path | None = None
    scaling_mode: ScalingMode = ScalingMode.WEIGHT
    timezone: str = "UTC"
    carry_goals_forward: bool = False
    seed_food_database: bool = False
    search_timeout_seconds: float = 5.0
    search_per_source_limit: int = 10
    search_max_results: int = 25
    search_source_priority: str = ",".join(DEFAULT_SOURCE_PRIORITY)
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_source_priority(raw: str | None) -> dict[FoodSource, int]:
    """Parse a comma-separated source order into merge priorities.

    Unknown names are ignored; sources left out keep their default relative
    order after the listed ones.
    """
    order: list[FoodSource] = []
    for chunk in (raw or "").split(","):
        value = chunk.strip().lower()
        if value in {source.value for source in FoodSource} and value not in order:
            order.append(FoodSource(value))
    for source in DEFAULT_SOURCE_PRIORITY:
        if source not in order:
            order.append(source)
    return {source: index for index, source in enumerate(order)}
