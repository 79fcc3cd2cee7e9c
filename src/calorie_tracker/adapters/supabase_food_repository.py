"""Supabase-backed user-curated food database."""

import asyncio
from dataclasses import dataclass, field

from postgrest.exceptions import APIError
from supabase import Client

from calorie_tracker.domain.errors import ConflictError
from calorie_tracker.domain.nutrition import (
    FoodRecord,
    FoodSource,
    default_priority,
    to_food_record,
)
from calorie_tracker.services.food_database import FoodRepository

_COLUMNS = "name, calories, protein, carbs, fats, category"

# Postgres unique_violation.
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseFoodRepository(FoodRepository):
    """Stores curated foods and serves them as the userdb search source."""

    client: Client
    priority: int = field(default_factory=lambda: default_priority(FoodSource.USERDB))
    source_name: str = FoodSource.USERDB.value
    search_limit: int = 10

    async def search(self, term: str) -> list[FoodRecord]:
        """Return curated foods whose name contains the term."""
        return await asyncio.to_thread(self._search_rows, term)

    def find_by_name(self, name: str) -> FoodRecord | None:
        """Return the curated food with this name, ignoring case."""
        response = (
            self.client.table("food_database")
            .select(_COLUMNS)
            .ilike("name", _escape_like(name))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return to_food_record(response.data[0], FoodSource.USERDB)

    def has_foods(self) -> bool:
        response = self.client.table("food_database").select("name").limit(1).execute()
        return bool(response.data)

    def create_food(self, record: FoodRecord) -> FoodRecord:
        """Insert a curated food and return the stored row."""
        rows = self._insert([_to_row(record)])
        if not rows:
            raise RuntimeError("Failed to create food entry")
        return rows[0]

    def create_foods(self, records: list[FoodRecord]) -> list[FoodRecord]:
        """Insert several curated foods in one request."""
        return self._insert([_to_row(record) for record in records])

    def _insert(self, rows: list[dict[str, object]]) -> list[FoodRecord]:
        try:
            response = self.client.table("food_database").insert(rows).execute()
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise ConflictError("Food already exists in database") from exc
            raise
        return [
            to_food_record(row, FoodSource.USERDB) for row in response.data or []
        ]

    def _search_rows(self, term: str) -> list[FoodRecord]:
        response = (
            self.client.table("food_database")
            .select(_COLUMNS)
            .ilike("name", f"%{_escape_like(term)}%")
            .order("name", desc=False)
            .limit(self.search_limit)
            .execute()
        )
        return [
            to_food_record(row, FoodSource.USERDB) for row in response.data or []
        ]


def _to_row(record: FoodRecord) -> dict[str, object]:
    return {
        "name": record.name,
        "calories": record.calories,
        "protein": record.protein,
        "carbs": record.carbs,
        "fats": record.fats,
        "category": record.category,
    }


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
