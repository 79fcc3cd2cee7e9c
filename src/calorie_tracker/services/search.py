"""Food search across multiple sources."""

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from calorie_tracker.domain.errors import ValidationError
from calorie_tracker.domain.nutrition import FoodRecord, SearchResult, dedup_key

_logger = logging.getLogger(__name__)


class FoodSourceAdapter(Protocol):
    """Uniform interface over one food data provider."""

    source_name: str
    priority: int

    async def search(self, term: str) -> list[FoodRecord]:
        """Return matching foods in the provider's relevance order."""


@dataclass
class FoodSearchService:
    """Queries every source concurrently and merges the results.

    Sources are merged in ascending priority. A source that raises or times
    out contributes nothing; the search itself only fails on a bad query.
    """

    adapters: list[FoodSourceAdapter]
    timeout_seconds: float = 5.0
    per_source_limit: int = 10
    max_results: int = 25

    async def search(self, query: str) -> SearchResult:
        """Search all sources and return a de-duplicated, bounded result."""
        term = normalize_query(query)
        ordered = sorted(self.adapters, key=lambda adapter: adapter.priority)
        batches = await asyncio.gather(
            *(self._query(adapter, term) for adapter in ordered)
        )
        unique = merge_records(
            [batch[: self.per_source_limit] for batch in batches]
        )
        foods = unique[: self.max_results]
        _logger.debug(
            "Food search: query=%s sources=%s results=%s",
            term,
            [len(batch) for batch in batches],
            len(foods),
        )
        return SearchResult(
            query=term,
            foods=foods,
            source=foods[0].source.value if foods else "none",
            total=len(unique),
        )

    async def _query(self, adapter: FoodSourceAdapter, term: str) -> list[FoodRecord]:
        try:
            return await asyncio.wait_for(
                adapter.search(term), timeout=self.timeout_seconds
            )
        except TimeoutError:
            _logger.warning(
                "Food source %s timed out after %.1fs: query=%s",
                adapter.source_name,
                self.timeout_seconds,
                term,
            )
        except Exception as exc:
            _logger.warning(
                "Food source %s failed: query=%s error=%s: %s",
                adapter.source_name,
                term,
                type(exc).__name__,
                exc,
            )
        return []


def normalize_query(query: str | None) -> str:
    """Trim and lowercase a search query."""
    term = (query or "").strip().lower()
    if not term:
        raise ValidationError("Search query is required")
    return term


def merge_records(batches: Iterable[list[FoodRecord]]) -> list[FoodRecord]:
    """Concatenate batches, keeping the first record for each name key."""
    seen: set[str] = set()
    unique: list[FoodRecord] = []
    for batch in batches:
        for record in batch:
            key = dedup_key(record.name)
            if not key or key in seen:
                continue
            seen.add(key)
            unique.append(record)
    return unique
