"""Food source over a static, in-process dataset."""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from calorie_tracker.domain.nutrition import (
    FoodRecord,
    FoodSource,
    default_priority,
    matches_query,
    to_food_record,
)
from calorie_tracker.services.nutrition import usda_food_to_raw

_logger = logging.getLogger(__name__)

BUILTIN_FOODS: list[dict[str, object]] = [
    {"name": "Apple, raw", "calories": 52, "protein": 0.3, "carbs": 14, "fats": 0.2, "category": "fruit"},  # noqa: E501
    {"name": "Banana, raw", "calories": 89, "protein": 1.1, "carbs": 23, "fats": 0.3, "category": "fruit"},  # noqa: E501
    {"name": "Orange, raw", "calories": 47, "protein": 0.9, "carbs": 12, "fats": 0.1, "category": "fruit"},  # noqa: E501
    {"name": "Chicken breast, grilled", "calories": 165, "protein": 31, "carbs": 0, "fats": 3.6, "category": "protein"},  # noqa: E501
    {"name": "Rice, white, cooked", "calories": 130, "protein": 2.7, "carbs": 28, "fats": 0.3, "category": "grain"},  # noqa: E501
    {"name": "Broccoli, raw", "calories": 34, "protein": 2.8, "carbs": 7, "fats": 0.4, "category": "vegetable"},  # noqa: E501
    {"name": "Salmon, grilled", "calories": 206, "protein": 22, "carbs": 0, "fats": 12, "category": "protein"},  # noqa: E501
    {"name": "Egg, whole, raw", "calories": 155, "protein": 13, "carbs": 1.1, "fats": 11, "category": "protein"},  # noqa: E501
    {"name": "Avocado, raw", "calories": 160, "protein": 2, "carbs": 9, "fats": 15, "category": "fruit"},  # noqa: E501
    {"name": "Bread, whole wheat", "calories": 247, "protein": 13, "carbs": 41, "fats": 4.2, "category": "grain"},  # noqa: E501
    {"name": "Greek yogurt, plain", "calories": 100, "protein": 10, "carbs": 6, "fats": 0.4, "category": "dairy"},  # noqa: E501
    {"name": "Oatmeal, cooked", "calories": 68, "protein": 2.4, "carbs": 12, "fats": 1.4, "category": "grain"},  # noqa: E501
    {"name": "Sweet potato, baked", "calories": 86, "protein": 1.6, "carbs": 20, "fats": 0.1, "category": "vegetable"},  # noqa: E501
    {"name": "Almonds", "calories": 579, "protein": 21, "carbs": 22, "fats": 50, "category": "nuts"},  # noqa: E501
    {"name": "Tofu, firm", "calories": 76, "protein": 8, "carbs": 1.9, "fats": 4.8, "category": "protein"},  # noqa: E501
]


@dataclass
class LocalFoodSource:
    """Searches a fixed list of foods by name substring."""

    records: list[FoodRecord]
    priority: int = field(default_factory=lambda: default_priority(FoodSource.LOCAL))
    source_name: str = FoodSource.LOCAL.value

    @classmethod
    def builtin(cls) -> "LocalFoodSource":
        """Create a source over the bundled food list."""
        return cls(records=_to_records(BUILTIN_FOODS))

    @classmethod
    def from_path(cls, path: Path | None) -> "LocalFoodSource":
        """Load foods from a JSON file, falling back to the bundled list.

        Accepts a plain list of foods or a USDA Foundation Foods export
        (``{"FoundationFoods": [...]}``).
        """
        if path is None:
            return cls.builtin()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            _logger.warning(
                "Local food dataset unavailable: path=%s error=%s", path, exc
            )
            return cls.builtin()
        rows = _extract_rows(data)
        records = _to_records(rows)
        _logger.info("Loaded local food dataset: path=%s foods=%s", path, len(records))
        return cls(records=records)

    async def search(self, term: str) -> list[FoodRecord]:
        """Return foods whose name contains the term, in dataset order."""
        return [record for record in self.records if matches_query(record.name, term)]


def _extract_rows(data: object) -> list[dict[str, object]]:
    if isinstance(data, Mapping):
        data = data.get("FoundationFoods")
    if not isinstance(data, list):
        return []
    rows: list[dict[str, object]] = []
    for item in data:
        if not isinstance(item, Mapping):
            continue
        if isinstance(item.get("foodNutrients"), list):
            rows.append(usda_food_to_raw(item))
        else:
            rows.append(dict(item))
    return rows


def _to_records(rows: list[dict[str, object]]) -> list[FoodRecord]:
    records = [to_food_record(row, FoodSource.LOCAL) for row in rows]
    return [record for record in records if record.name]
