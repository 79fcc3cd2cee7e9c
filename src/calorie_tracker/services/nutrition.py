"""External food source backed by USDA FoodData Central."""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from calorie_tracker.adapters.usda_client import UsdaClient
from calorie_tracker.domain.errors import AdapterError, NotFoundError
from calorie_tracker.domain.nutrition import (
    FoodRecord,
    FoodSource,
    default_priority,
    to_food_record,
)
from calorie_tracker.services.cache import Cache

_NUTRIENT_IDS = {
    "calories": 1008,
    "protein": 1003,
    "fats": 1004,
    "carbs": 1005,
    "fiber": 1079,
    "sugar": 2000,
    "sodium": 1093,
}

_HTTP_NOT_FOUND = 404

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


@dataclass
class UsdaFoodSource:
    """Food source adapter for the USDA API with caching and a short retry.

    Without a client (no API key configured) searches return nothing.
    """

    client: UsdaClient | None
    cache: Cache
    priority: int = field(default_factory=lambda: default_priority(FoodSource.EXTERNAL))
    source_name: str = FoodSource.EXTERNAL.value
    page_size: int = 15
    search_ttl_seconds: int = 3600
    food_ttl_seconds: int = 86400
    retry_attempts: int = 1
    retry_delay_seconds: float = 0.3

    async def search(self, term: str) -> list[FoodRecord]:
        """Search USDA foods, relying on the API's relevance order."""
        if self.client is None:
            return []
        cache_key = f"usda:search:{term.lower()}:{self.page_size}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, list):
            return cached

        client = self.client
        payload = await self._call_with_retry(
            lambda: client.search_foods(term, page_size=self.page_size),
            action="search",
        )
        foods = payload.get("foods") or []
        records = [
            to_food_record(usda_food_to_raw(food), FoodSource.EXTERNAL)
            for food in foods
            if isinstance(food, Mapping)
        ]
        records = [record for record in records if record.name]
        self.cache.set(cache_key, records, ttl_seconds=self.search_ttl_seconds)
        _logger.debug("USDA search: query=%s results=%s", term, len(records))
        return records

    async def get_food(self, fdc_id: int) -> FoodRecord:
        """Fetch one food's macros by FDC id."""
        if self.client is None:
            raise AdapterError(self.source_name, "USDA API key is not configured")
        cache_key = f"usda:food:{fdc_id}"
        cached = self.cache.get(cache_key)
        if isinstance(cached, FoodRecord):
            return cached

        client = self.client
        payload = await self._call_with_retry(
            lambda: client.get_food(fdc_id),
            action=f"get_food:{fdc_id}",
        )
        record = to_food_record(usda_food_to_raw(payload), FoodSource.EXTERNAL)
        self.cache.set(cache_key, record, ttl_seconds=self.food_ttl_seconds)
        return record

    async def _call_with_retry(
        self, func: "Callable[[], Awaitable[dict[str, object]]]", *, action: str
    ) -> dict[str, object]:
        """Call the API, retrying briefly before reporting an adapter error."""
        attempt = 0
        while True:
            try:
                return await func()
            except Exception as exc:
                status_code = _status_code_from_exception(exc)
                if status_code == str(_HTTP_NOT_FOUND):
                    raise NotFoundError(f"USDA food not found ({action})") from exc
                attempt += 1
                _logger.warning(
                    "USDA %s failed (attempt %s/%s, status=%s): %s",
                    action,
                    attempt,
                    self.retry_attempts + 1,
                    status_code,
                    exc,
                )
                if attempt > self.retry_attempts:
                    raise AdapterError(self.source_name, f"{action} failed") from exc
                await asyncio.sleep(self.retry_delay_seconds)


def _status_code_from_exception(exc: Exception) -> str:
    """Extract HTTP status code from an exception, if available."""
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    if isinstance(status_code, int):
        return str(status_code)
    return "n/a"


def usda_food_to_raw(food: Mapping[str, object]) -> dict[str, object]:
    """Flatten a USDA food payload into a raw food row.

    Search results carry nutrient ``value`` and ``nutrientId``; food details
    carry ``amount`` and a nested ``nutrient`` object. Both are accepted.
    """
    raw: dict[str, object] = {
        "name": food.get("description") or food.get("foodDescription") or "",
        "category": _category_name(food.get("foodCategory")),
        "fdc_id": food.get("fdcId"),
    }
    nutrients = food.get("foodNutrients")
    if not isinstance(nutrients, list):
        return raw
    for nutrient in nutrients:
        if not isinstance(nutrient, Mapping):
            continue
        nutrient_info = nutrient.get("nutrient")
        nutrient_id = nutrient.get("nutrientId")
        if nutrient_id is None and isinstance(nutrient_info, Mapping):
            nutrient_id = nutrient_info.get("id")
        amount = nutrient.get("value", nutrient.get("amount"))
        for field_name, wanted_id in _NUTRIENT_IDS.items():
            if nutrient_id == wanted_id and amount is not None:
                raw[field_name] = amount
    return raw


def _category_name(category: object) -> str:
    if isinstance(category, Mapping):
        return str(category.get("description") or category.get("name") or "")
    if isinstance(category, str):
        return category
    return ""
