"""Daily ledger service."""

import asyncio
import logging
import math
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from calorie_tracker.domain.errors import ConflictError, NotFoundError, ValidationError
from calorie_tracker.domain.ledger import (
    DEFAULT_GOALS,
    DailyLedger,
    FoodEntry,
    FoodInput,
    ScalingMode,
    roll_over,
)
from calorie_tracker.domain.nutrition import MacroTotals, coerce_macro

_logger = logging.getLogger(__name__)

LedgerChange = Callable[[DailyLedger, datetime], DailyLedger]


class LedgerRepository(Protocol):
    """Persistence interface for daily ledgers."""

    def find(self, day: date) -> DailyLedger | None:
        """Return the ledger for a day, if stored."""

    def insert(self, ledger: DailyLedger) -> DailyLedger:
        """Store a new ledger; raise ConflictError if the day already exists."""

    def upsert(
        self, ledger: DailyLedger, expected_revision: int | None = None
    ) -> DailyLedger:
        """Create or replace the ledger for its day.

        When expected_revision is given, replace only if the stored revision
        still matches, otherwise raise ConflictError.
        """

    def find_range(self, start: date, end: date) -> list[DailyLedger]:
        """Return ledgers with start <= date <= end, ordered by date."""


@dataclass
class LedgerService:
    """Maintains one ledger per day with consistent consumed totals."""

    repository: LedgerRepository
    scaling_mode: ScalingMode = ScalingMode.WEIGHT
    carry_goals_forward: bool = False
    goal_lookback_days: int = 30
    max_attempts: int = 3
    _locks: "weakref.WeakValueDictionary[date, asyncio.Lock]" = field(
        default_factory=weakref.WeakValueDictionary, init=False, repr=False
    )

    async def get_or_create(self, day: date) -> DailyLedger:
        """Return the ledger for a day, creating an empty one when missing."""
        ledger = await asyncio.to_thread(self.repository.find, day)
        if ledger is not None:
            return ledger
        return await asyncio.to_thread(self._create, day)

    async def add_entry(self, day: date, candidate: FoodInput) -> DailyLedger:
        """Scale and append a food entry, then refresh consumed totals."""
        entry = self.build_entry(candidate)

        def append(ledger: DailyLedger, now: datetime) -> DailyLedger:
            return ledger.with_entries((*ledger.entries, entry), now=now)

        return await self._mutate(day, append)

    async def remove_entry(self, day: date, entry_id: UUID) -> DailyLedger:
        """Delete an entry and subtract its stored macros."""

        def remove(ledger: DailyLedger, now: datetime) -> DailyLedger:
            if ledger.find_entry(entry_id) is None:
                raise NotFoundError(f"Entry {entry_id} not found on {day.isoformat()}")
            remaining = tuple(entry for entry in ledger.entries if entry.id != entry_id)
            return ledger.with_entries(remaining, now=now)

        return await self._mutate(day, remove, create_missing=False)

    async def set_goals(self, day: date, goals: MacroTotals) -> DailyLedger:
        """Replace the day's goals without touching entries."""
        resolved = MacroTotals(
            calories=coerce_macro(goals.calories),
            protein=coerce_macro(goals.protein),
            carbs=coerce_macro(goals.carbs),
            fats=coerce_macro(goals.fats),
        )

        def update(ledger: DailyLedger, now: datetime) -> DailyLedger:
            return replace(ledger, goals=resolved, updated_at=now)

        return await self._mutate(day, update)

    async def clear(self, day: date) -> DailyLedger:
        """Drop all entries for the day and keep its goals."""

        def empty(ledger: DailyLedger, now: datetime) -> DailyLedger:
            return ledger.with_entries((), now=now)

        return await self._mutate(day, empty)

    def build_entry(self, candidate: FoodInput) -> FoodEntry:
        """Validate a candidate and compute its effective macros."""
        base = MacroTotals(
            calories=coerce_macro(candidate.calories),
            protein=coerce_macro(candidate.protein),
            carbs=coerce_macro(candidate.carbs),
            fats=coerce_macro(candidate.fats),
        )
        name = (candidate.name or "").strip()
        if not name and base == MacroTotals():
            raise ValidationError("Food name or macro values are required")
        amount = self._resolve_amount(candidate.amount)
        effective = base.scaled(amount / self.scaling_mode.scale_unit)
        return FoodEntry(
            id=uuid4(),
            name=name or "Custom food",
            calories=effective.calories,
            protein=effective.protein,
            carbs=effective.carbs,
            fats=effective.fats,
            amount=amount,
            timestamp=datetime.now(tz=UTC),
        )

    async def _mutate(
        self, day: date, change: LedgerChange, *, create_missing: bool = True
    ) -> DailyLedger:
        """Apply a change under the day's lock with optimistic revision checks."""
        lock = self._lock_for(day)
        async with lock:
            attempt = 0
            while True:
                current = await asyncio.to_thread(self.repository.find, day)
                if current is None:
                    if not create_missing:
                        raise NotFoundError(f"No ledger for {day.isoformat()}")
                    current = await asyncio.to_thread(self._create, day)
                updated = replace(
                    change(current, datetime.now(tz=UTC)),
                    revision=current.revision + 1,
                )
                try:
                    return await asyncio.to_thread(
                        self.repository.upsert, updated, current.revision
                    )
                except ConflictError:
                    attempt += 1
                    _logger.warning(
                        "Ledger write conflict: day=%s attempt=%s/%s",
                        day.isoformat(),
                        attempt,
                        self.max_attempts,
                    )
                    if attempt >= self.max_attempts:
                        raise

    def _create(self, day: date) -> DailyLedger:
        ledger = self._new_ledger(day)
        try:
            return self.repository.insert(ledger)
        except ConflictError:
            existing = self.repository.find(day)
            if existing is None:
                raise
            _logger.info("Ledger for %s created concurrently", day.isoformat())
            return existing

    def _new_ledger(self, day: date) -> DailyLedger:
        if not self.carry_goals_forward:
            return DailyLedger(date=day, goals=DEFAULT_GOALS)
        previous = self.repository.find_range(
            day - timedelta(days=self.goal_lookback_days), day - timedelta(days=1)
        )
        if not previous:
            return DailyLedger(date=day, goals=DEFAULT_GOALS)
        return roll_over(previous[-1], day)

    def _resolve_amount(self, raw: object) -> float:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return self.scaling_mode.default_amount
        if isinstance(raw, bool):
            raise ValidationError("Amount must be a positive number")
        try:
            amount = float(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValidationError("Amount must be a positive number") from exc
        if not math.isfinite(amount) or amount <= 0:
            raise ValidationError("Amount must be a positive number")
        return amount

    def _lock_for(self, day: date) -> asyncio.Lock:
        # Weakly held: a day's lock lives only while a mutation holds or awaits it.
        lock = self._locks.get(day)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[day] = lock
        return lock


def local_today(timezone_name: str) -> date:
    """Return the current calendar day in a timezone."""
    return datetime.now(tz=ZoneInfo(timezone_name)).date()
