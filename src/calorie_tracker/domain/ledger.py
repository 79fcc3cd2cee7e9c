"""Domain models for the daily nutrition ledger."""

import math
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from enum import StrEnum
from uuid import UUID

from calorie_tracker.domain.errors import ValidationError
from calorie_tracker.domain.nutrition import MacroTotals

DEFAULT_GOALS = MacroTotals(calories=2000, protein=150, carbs=250, fats=65)

CONSUMED_EPSILON = 1e-6


class ScalingMode(StrEnum):
    """How an entry's base macros relate to its logged amount."""

    QUANTITY = "quantity"
    WEIGHT = "weight"

    @property
    def scale_unit(self) -> float:
        """Amount that corresponds to the base macro values."""
        return 100.0 if self is ScalingMode.WEIGHT else 1.0

    @property
    def default_amount(self) -> float:
        """Amount used when the caller does not provide one."""
        return 100.0 if self is ScalingMode.WEIGHT else 1.0


@dataclass(frozen=True)
class FoodInput:
    """Unvalidated food selection submitted for logging."""

    name: str
    calories: object = None
    protein: object = None
    carbs: object = None
    fats: object = None
    amount: object = None


@dataclass(frozen=True)
class FoodEntry:
    """A logged food item with its effective macros."""

    id: UUID
    name: str
    calories: float
    protein: float
    carbs: float
    fats: float
    amount: float
    timestamp: datetime

    @property
    def macros(self) -> MacroTotals:
        return MacroTotals(self.calories, self.protein, self.carbs, self.fats)


@dataclass(frozen=True)
class DailyLedger:
    """All entries and totals for one calendar day."""

    date: date
    goals: MacroTotals = DEFAULT_GOALS
    consumed: MacroTotals = MacroTotals()
    entries: tuple[FoodEntry, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    revision: int = 0

    @property
    def remaining(self) -> MacroTotals:
        """Goals minus consumed; negative when over goal."""
        return self.goals.minus(self.consumed)

    def find_entry(self, entry_id: UUID) -> FoodEntry | None:
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def with_entries(
        self, entries: tuple[FoodEntry, ...], *, now: datetime
    ) -> "DailyLedger":
        """Return a copy holding entries with consumed recomputed from them."""
        return replace(
            self,
            entries=entries,
            consumed=sum_entries(entries),
            updated_at=now,
        )


def sum_entries(entries: tuple[FoodEntry, ...]) -> MacroTotals:
    """Sum stored entry macros, clamping float noise near zero."""
    return MacroTotals(
        calories=_clamp(math.fsum(entry.calories for entry in entries)),
        protein=_clamp(math.fsum(entry.protein for entry in entries)),
        carbs=_clamp(math.fsum(entry.carbs for entry in entries)),
        fats=_clamp(math.fsum(entry.fats for entry in entries)),
    )


def _clamp(value: float) -> float:
    if abs(value) < CONSUMED_EPSILON:
        return 0.0
    return value


def roll_over(ledger: DailyLedger, today: date) -> DailyLedger:
    """Carry goals into a fresh ledger when the snapshot is from another day."""
    if ledger.date == today:
        return ledger
    return DailyLedger(date=today, goals=ledger.goals)


def parse_day_key(raw: str) -> date:
    """Parse a YYYY-MM-DD day key."""
    value = raw.strip()
    if len(value) != 10:  # noqa: PLR2004
        raise ValidationError(f"Invalid date {raw!r}, expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid date {raw!r}, expected YYYY-MM-DD") from exc
