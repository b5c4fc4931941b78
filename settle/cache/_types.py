"""
Cache types.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

# ═══════════════════════════════════════════════════════════════════════════════
# Tier Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class Tier[T](Protocol):
    """
    Cache tier protocol.

    A tier stores values by string key and decides on its own when they
    expire. Implement it for shared backends (Redis, memcached) when several
    registers should share lookups.
    """

    @property
    def name(self) -> str:
        ...

    async def get(self, key: str) -> T | None:
        """Get value. Returns None on miss or expiry."""
        ...

    async def set(self, key: str, value: T) -> None:
        ...

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if existed."""
        ...

    async def clear(self) -> int:
        """Drop everything. Returns count."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# TTL Tier — In-Memory, Bounded, Expiring
# ═══════════════════════════════════════════════════════════════════════════════


class TTLTier[T]:
    """
    In-memory LRU tier whose entries expire ttl seconds after being set.

    Example:
        tier = TTLTier[int](ttl=300, max_size=1000)
    """

    def __init__(
        self,
        ttl: float,
        max_size: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl
        self._max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, T]] = OrderedDict()

    @property
    def name(self) -> str:
        return "ttl"

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    async def set(self, key: str, value: T) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            self._entries.popitem(last=False)
        self._entries[key] = (self._clock() + self._ttl, value)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Result
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CacheResult[T]:
    value: T
    hit: bool
    tier: str | None


__all__ = (
    "Tier",
    "TTLTier",
    "CacheResult",
)
