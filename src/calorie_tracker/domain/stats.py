"""Domain models for statistics."""

from dataclasses import dataclass
from datetime import date

from calorie_tracker.domain.ledger import DailyLedger
from calorie_tracker.domain.nutrition import MacroTotals


@dataclass(frozen=True)
class WeeklySummary:
    """Totals and averages over a trailing window of stored ledgers."""

    start: date
    end: date
    days: int
    totals: MacroTotals
    averages: MacroTotals
    daily: list[DailyLedger]
