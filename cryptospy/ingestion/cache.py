"""In-memory TTL cache with a stale shelf for fallback reads."""

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class CacheEntry:
    """Stored value with its expiry bookkeeping (seconds)."""

    key: str
    value: Any
    stored_at: float
    ttl: float
    last_accessed: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class TTLCache:
    """Key/value store with per-entry expiration.

    ``get`` and ``has`` evict expired entries from the live view, so they
    mutate state. Evicted values move to a stale shelf that ``get_stale``
    still reads, which is what the stale-data fallback relies on.

    Attributes:
        max_size: Maximum live entries before LRU eviction
        default_ttl: TTL used when ``set`` is called without one
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._stale: OrderedDict[str, Any] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value, replacing any previous entry and resetting its timer."""
        now = self._clock()
        self._stale.pop(key, None)

        if key not in self._entries and len(self._entries) >= self.max_size:
            self._sweep(now)
            if len(self._entries) >= self.max_size:
                self._evict_lru()

        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            stored_at=now,
            ttl=self.default_ttl if ttl is None else ttl,
            last_accessed=now,
        )

    def get(self, key: str) -> Any | None:
        """Get value if present and not expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        now = self._clock()
        if entry.is_expired(now):
            self._shelve(self._entries.pop(key))
            return None

        entry.last_accessed = now
        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def get_stale(self, key: str) -> Any | None:
        """Get the last stored value for key, ignoring expiry."""
        entry = self._entries.get(key)
        if entry is not None:
            return entry.value
        return self._stale.get(key)

    def clear(self) -> None:
        self._entries.clear()
        self._stale.clear()

    def stats(self) -> dict[str, int]:
        return {"size": len(self._entries), "max_size": self.max_size}

    def _shelve(self, entry: CacheEntry) -> None:
        self._stale[entry.key] = entry.value
        self._stale.move_to_end(entry.key)
        while len(self._stale) > self.max_size:
            self._stale.popitem(last=False)

    def _sweep(self, now: float) -> None:
        """Move every expired entry to the stale shelf."""
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            self._shelve(self._entries.pop(key))

    def _evict_lru(self) -> None:
        oldest = min(self._entries.values(), key=lambda e: e.last_accessed)
        del self._entries[oldest.key]
