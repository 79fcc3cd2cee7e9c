"""Nutrition domain models."""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

MACRO_FIELDS = ("calories", "protein", "carbs", "fats")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class FoodSource(StrEnum):
    """Origin of a food search result."""

    LOCAL = "local"
    EXTERNAL = "external"
    USERDB = "userdb"


# Merge order for search results; earlier sources win de-duplication ties.
DEFAULT_SOURCE_PRIORITY: tuple[FoodSource, ...] = (
    FoodSource.USERDB,
    FoodSource.LOCAL,
    FoodSource.EXTERNAL,
)


@dataclass(frozen=True)
class MacroTotals:
    """Calories and macronutrient grams."""

    calories: float = 0.0
    protein: float = 0.0
    carbs: float = 0.0
    fats: float = 0.0

    def minus(self, other: "MacroTotals") -> "MacroTotals":
        """Return the component-wise difference."""
        return MacroTotals(
            calories=self.calories - other.calories,
            protein=self.protein - other.protein,
            carbs=self.carbs - other.carbs,
            fats=self.fats - other.fats,
        )

    def scaled(self, factor: float) -> "MacroTotals":
        """Return every component multiplied by factor."""
        return MacroTotals(
            calories=self.calories * factor,
            protein=self.protein * factor,
            carbs=self.carbs * factor,
            fats=self.fats * factor,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "MacroTotals":
        """Build totals from loosely typed data, coercing each macro."""
        return cls(**{name: coerce_macro(data.get(name)) for name in MACRO_FIELDS})


@dataclass(frozen=True)
class FoodRecord:
    """A food search result from one source."""

    name: str
    calories: float
    protein: float
    carbs: float
    fats: float
    category: str
    source: FoodSource
    fdc_id: int | None = None
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None


@dataclass(frozen=True)
class SearchResult:
    """Merged search response."""

    query: str
    foods: list[FoodRecord]
    source: str
    total: int


def coerce_macro(value: object) -> float:
    """Coerce a raw macro value to a finite, non-negative float.

    Missing, boolean, non-numeric, NaN, infinite and negative inputs all
    become 0.0.
    """
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _optional_macro(value: object) -> float | None:
    if value is None:
        return None
    return coerce_macro(value)


def _optional_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def to_food_record(raw: Mapping[str, object], source: FoodSource) -> FoodRecord:
    """Normalize a raw food row from any source into a FoodRecord."""
    name = str(raw.get("name") or "").strip()
    category = str(raw.get("category") or "").strip() or "general"
    return FoodRecord(
        name=name,
        calories=coerce_macro(raw.get("calories")),
        protein=coerce_macro(raw.get("protein")),
        carbs=coerce_macro(raw.get("carbs")),
        fats=coerce_macro(raw.get("fats")),
        category=category,
        source=source,
        fdc_id=_optional_int(raw.get("fdc_id")),
        fiber=_optional_macro(raw.get("fiber")),
        sugar=_optional_macro(raw.get("sugar")),
        sodium=_optional_macro(raw.get("sodium")),
    )


def dedup_key(name: str) -> str:
    """Return the de-duplication key for a food name."""
    return _NON_ALNUM.sub("", name.lower())


def matches_query(name: str, query: str) -> bool:
    """Return true when the query is a case-insensitive substring of name."""
    return query.lower() in name.lower()


def default_priority(source: FoodSource) -> int:
    """Return the merge position of a source in the default order."""
    return DEFAULT_SOURCE_PRIORITY.index(source)
