"""In-memory TTL cache shared by the registry adapters.

Entries expire lazily: ``get`` evicts an expired entry when it is looked up.
``cleanup`` is available for explicit bulk eviction but is never required for
correctness.
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    data: T
    timestamp: float
    expires_at: float


class TTLCache(Generic[T]):
    """String-keyed cache with a fixed time-to-live set at construction.

    Args:
        ttl_minutes: Lifetime of each entry, reset on every ``set``.
        clock: Monotonic time source in seconds. Injectable for tests.
    """

    def __init__(self, ttl_minutes: float = 15, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_minutes * 60
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        # An entry is already expired at exactly expires_at.
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.data

    def set(self, key: str, value: T) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(data=value, timestamp=now, expires_at=now + self.ttl)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Evict expired entries. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


def cache_key(source_name: str, kind: str, value: str) -> str:
    """Build ``"<source>:<kind>:<value>"``; search queries are lower-cased."""
    if kind == "search":
        value = value.lower()
    return f"{source_name.lower()}:{kind}:{value}"
