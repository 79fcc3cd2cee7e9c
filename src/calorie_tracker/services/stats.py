"""Weekly rollup over stored ledgers."""

import asyncio
import math
from dataclasses import dataclass
from datetime import date, timedelta

from calorie_tracker.domain.ledger import DailyLedger
from calorie_tracker.domain.nutrition import MacroTotals
from calorie_tracker.domain.stats import WeeklySummary
from calorie_tracker.services.ledger import LedgerRepository

WEEK_DAYS = 7


@dataclass
class WeeklyRollupService:
    """Computes totals and averages across the trailing week."""

    repository: LedgerRepository

    async def get_week(self, today: date) -> WeeklySummary:
        """Summarize ledgers from six days before today through today."""
        start = today - timedelta(days=WEEK_DAYS - 1)
        ledgers = await asyncio.to_thread(self.repository.find_range, start, today)
        return summarize(start, today, ledgers)


def summarize(start: date, end: date, ledgers: list[DailyLedger]) -> WeeklySummary:
    """Aggregate consumed totals; averages use the number of stored days."""
    totals = MacroTotals(
        calories=math.fsum(ledger.consumed.calories for ledger in ledgers),
        protein=math.fsum(ledger.consumed.protein for ledger in ledgers),
        carbs=math.fsum(ledger.consumed.carbs for ledger in ledgers),
        fats=math.fsum(ledger.consumed.fats for ledger in ledgers),
    )
    days = len(ledgers)
    averages = totals.scaled(1 / days) if days else MacroTotals()
    return WeeklySummary(
        start=start,
        end=end,
        days=days,
        totals=totals,
        averages=averages,
        daily=ledgers,
    )
