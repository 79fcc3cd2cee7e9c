"""Cache abstractions for remote food lookups."""

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Cache(Protocol):
    """Key-value cache with per-entry expiry."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a value for ttl_seconds."""


@dataclass
class _CacheEntry:
    value: object
    expires_at: datetime


@dataclass
class InMemoryCache(Cache):
    """Process-local TTL cache that evicts the oldest keys past max_entries."""

    max_entries: int = 512
    _entries: OrderedDict[str, _CacheEntry] = field(
        default_factory=OrderedDict, init=False, repr=False
    )

    def get(self, key: str) -> object | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if datetime.now(tz=UTC) >= entry.expires_at:
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        expires_at = datetime.now(tz=UTC) + timedelta(seconds=ttl_seconds)
        self._entries[key] = _CacheEntry(value=value, expires_at=expires_at)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
