"""Supabase repository for daily ledgers."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from supabase import Client

from calorie_tracker.domain.errors import ConflictError
from calorie_tracker.domain.ledger import DailyLedger, FoodEntry
from calorie_tracker.domain.nutrition import MacroTotals
from calorie_tracker.services.ledger import LedgerRepository


@dataclass
class SupabaseLedgerRepository(LedgerRepository):
    """Stores one ``daily_logs`` row per day, keyed by a unique date column."""

    client: Client

    def find(self, day: date) -> DailyLedger | None:
        """Return the ledger row for a day."""
        response = (
            self.client.table("daily_logs")
            .select("*")
            .eq("date", day.isoformat())
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_ledger(response.data[0])

    def insert(self, ledger: DailyLedger) -> DailyLedger:
        """Insert a ledger unless its day already has one."""
        response = (
            self.client.table("daily_logs")
            .upsert(_to_row(ledger), on_conflict="date", ignore_duplicates=True)
            .execute()
        )
        if not response.data:
            raise ConflictError(f"Ledger for {ledger.date.isoformat()} already exists")
        return _parse_ledger(response.data[0])

    def upsert(
        self, ledger: DailyLedger, expected_revision: int | None = None
    ) -> DailyLedger:
        """Write a ledger, optionally only over an expected stored revision."""
        row = _to_row(ledger)
        if expected_revision is None:
            response = (
                self.client.table("daily_logs")
                .upsert(row, on_conflict="date")
                .execute()
            )
        else:
            response = (
                self.client.table("daily_logs")
                .update(row)
                .eq("date", ledger.date.isoformat())
                .eq("revision", expected_revision)
                .execute()
            )
        if not response.data:
            raise ConflictError(
                f"Ledger for {ledger.date.isoformat()} changed concurrently"
            )
        return _parse_ledger(response.data[0])

    def find_range(self, start: date, end: date) -> list[DailyLedger]:
        """Return ledgers between two days inclusive, oldest first."""
        response = (
            self.client.table("daily_logs")
            .select("*")
            .gte("date", start.isoformat())
            .lte("date", end.isoformat())
            .order("date", desc=False)
            .execute()
        )
        return [_parse_ledger(row) for row in response.data or []]


def _to_row(ledger: DailyLedger) -> dict[str, object]:
    return {
        "date": ledger.date.isoformat(),
        "goals": _macros_to_json(ledger.goals),
        "consumed": _macros_to_json(ledger.consumed),
        "food_entries": [
            {
                "id": str(entry.id),
                "name": entry.name,
                "calories": entry.calories,
                "protein": entry.protein,
                "carbs": entry.carbs,
                "fats": entry.fats,
                "amount": entry.amount,
                "timestamp": entry.timestamp.isoformat(),
            }
            for entry in ledger.entries
        ],
        "revision": ledger.revision,
        "created_at": ledger.created_at.isoformat(),
        "updated_at": ledger.updated_at.isoformat(),
    }


def _macros_to_json(macros: MacroTotals) -> dict[str, float]:
    return {
        "calories": macros.calories,
        "protein": macros.protein,
        "carbs": macros.carbs,
        "fats": macros.fats,
    }


def _parse_ledger(row: dict[str, object]) -> DailyLedger:
    entries = tuple(_parse_entry(item) for item in row.get("food_entries") or [])
    return DailyLedger(
        date=date.fromisoformat(str(row["date"])),
        goals=MacroTotals.from_mapping(row.get("goals") or {}),
        consumed=MacroTotals.from_mapping(row.get("consumed") or {}),
        entries=entries,
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
        revision=int(row.get("revision") or 0),
    )


def _parse_entry(item: dict[str, object]) -> FoodEntry:
    return FoodEntry(
        id=UUID(str(item["id"])),
        name=str(item.get("name", "")),
        calories=float(item.get("calories", 0.0)),
        protein=float(item.get("protein", 0.0)),
        carbs=float(item.get("carbs", 0.0)),
        fats=float(item.get("fats", 0.0)),
        amount=float(item.get("amount", 0.0)),
        timestamp=_parse_timestamp(item.get("timestamp")),
    )


def _parse_timestamp(raw: object) -> datetime:
    if isinstance(raw, str) and raw:
        return datetime.fromisoformat(raw)
    return datetime.now(tz=UTC)
