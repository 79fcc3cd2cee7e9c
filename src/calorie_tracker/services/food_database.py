"""Services for the user-curated food database."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

from calorie_tracker.domain.errors import ConflictError, ValidationError
from calorie_tracker.domain.nutrition import (
    FoodRecord,
    FoodSource,
    dedup_key,
    to_food_record,
)

_logger = logging.getLogger(__name__)

# Common foods loaded into an empty database.
SEED_FOODS: list[dict[str, object]] = [
    {"name": "Chicken Breast", "calories": 165, "protein": 31, "carbs": 0, "fats": 3.6, "category": "protein"},  # noqa: E501
    {"name": "Brown Rice", "calories": 112, "protein": 2.6, "carbs": 22, "fats": 0.9, "category": "grain"},  # noqa: E501
    {"name": "Broccoli", "calories": 25, "protein": 3, "carbs": 5, "fats": 0.3, "category": "vegetable"},  # noqa: E501
    {"name": "Salmon", "calories": 208, "protein": 22, "carbs": 0, "fats": 12, "category": "protein"},  # noqa: E501
    {"name": "Sweet Potato", "calories": 86, "protein": 1.6, "carbs": 20, "fats": 0.1, "category": "vegetable"},  # noqa: E501
    {"name": "Greek Yogurt", "calories": 100, "protein": 10, "carbs": 6, "fats": 0.4, "category": "dairy"},  # noqa: E501
    {"name": "Almonds", "calories": 579, "protein": 21, "carbs": 22, "fats": 50, "category": "nuts"},  # noqa: E501
    {"name": "Banana", "calories": 89, "protein": 1.1, "carbs": 23, "fats": 0.3, "category": "fruit"},  # noqa: E501
    {"name": "Oatmeal", "calories": 68, "protein": 2.4, "carbs": 12, "fats": 1.4, "category": "grain"},  # noqa: E501
    {"name": "Eggs", "calories": 155, "protein": 13, "carbs": 1.1, "fats": 11, "category": "protein"},  # noqa: E501
    {"name": "Spinach", "calories": 7, "protein": 0.9, "carbs": 1.1, "fats": 0.1, "category": "vegetable"},  # noqa: E501
    {"name": "Avocado", "calories": 160, "protein": 2, "carbs": 9, "fats": 15, "category": "fruit"},  # noqa: E501
    {"name": "Quinoa", "calories": 120, "protein": 4.4, "carbs": 22, "fats": 1.9, "category": "grain"},  # noqa: E501
    {"name": "Turkey Breast", "calories": 135, "protein": 30, "carbs": 0, "fats": 1, "category": "protein"},  # noqa: E501
    {"name": "Cottage Cheese", "calories": 98, "protein": 11, "carbs": 3.4, "fats": 4.3, "category": "dairy"},  # noqa: E501
]


class FoodRepository(Protocol):
    """Persistence interface for curated foods."""

    def find_by_name(self, name: str) -> FoodRecord | None:
        """Return a food by name, ignoring case."""

    def has_foods(self) -> bool:
        """Return true when at least one food is stored."""

    def create_food(self, record: FoodRecord) -> FoodRecord:
        """Store a food and return it; raise ConflictError on a duplicate name."""

    def create_foods(self, records: list[FoodRecord]) -> list[FoodRecord]:
        """Store several foods and return them."""


@dataclass
class FoodDatabaseService:
    """Application service for adding curated foods."""

    repository: FoodRepository

    def add_food(self, payload: Mapping[str, object]) -> FoodRecord:
        """Normalize and store a curated food, rejecting duplicate names."""
        record = to_food_record(payload, FoodSource.USERDB)
        if not record.name:
            raise ValidationError("Food name is required")
        if self.repository.find_by_name(record.name) is not None:
            raise ConflictError(f"Food {record.name!r} already exists in database")
        return self.repository.create_food(record)

    def seed(self, rows: Iterable[Mapping[str, object]] = SEED_FOODS) -> int:
        """Load rows into an empty database and return how many were stored.

        A database that already holds foods is left untouched.
        """
        if self.repository.has_foods():
            return 0
        records: dict[str, FoodRecord] = {}
        for row in rows:
            record = to_food_record(row, FoodSource.USERDB)
            key = dedup_key(record.name)
            if key and key not in records:
                records[key] = record
        stored = self.repository.create_foods(list(records.values()))
        _logger.info("Seeded food database: foods=%s", len(stored))
        return len(stored)
