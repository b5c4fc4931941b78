"""
Cache — read-through caching for best-effort lookups.

    from settle import cache as C

    ids = C.cache(key_fn, fetch_fn).tier(C.TTLTier(ttl=300)).build()
    result = await ids.get(name)
"""

from __future__ import annotations

from settle.cache._types import (
    Tier,
    TTLTier,
    CacheResult,
)
from settle.cache._builder import cache, Cache, CacheExecutor

__all__ = (
    "Tier",
    "TTLTier",
    "CacheResult",
    "cache",
    "Cache",
    "CacheExecutor",
)
