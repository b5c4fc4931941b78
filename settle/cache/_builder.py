"""
Cache builder — fluent API over a fetch function.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import structlog
from kungfu import LazyCoroResult, Result, Ok, Error

from settle.cache._types import Tier, CacheResult

logger = structlog.get_logger(__name__)

type KeyFn[K] = Callable[[K], str]
type FetchFn[K, T, E] = Callable[[K], LazyCoroResult[T, E]]


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Builder
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class Cache[K, T, E]:
    """
    Fluent cache builder.

    Example:
        mapping_cache = (
            C.cache(normalize_name, search_catalog)
            .tier(C.TTLTier(ttl=300))
            .build()
        )
    """

    _key_fn: KeyFn[K]
    _fetch: FetchFn[K, T, E]
    _tiers: tuple[Tier[T], ...]

    def tier(self, t: Tier[T]) -> Cache[K, T, E]:
        return Cache(
            _key_fn=self._key_fn,
            _fetch=self._fetch,
            _tiers=(*self._tiers, t),
        )

    def build(self) -> CacheExecutor[K, T, E]:
        return CacheExecutor(key_fn=self._key_fn, tiers=self._tiers, fetch=self._fetch)


# ═══════════════════════════════════════════════════════════════════════════════
# Cache Executor
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True, frozen=True)
class CacheExecutor[K, T, E]:
    key_fn: KeyFn[K]
    tiers: tuple[Tier[T], ...]
    fetch: FetchFn[K, T, E]

    def get(self, key: K) -> LazyCoroResult[CacheResult[T], E]:
        """
        Read through the tiers, then fetch.

        Only successful fetches are stored; errors pass through uncached.
        A broken tier is logged and skipped, never fatal.
        """
        cache_key = self.key_fn(key)

        async def execute() -> Result[CacheResult[T], E]:
            for t in self.tiers:
                try:
                    value = await t.get(cache_key)
                except Exception as exc:
                    logger.warning("cache.tier_read_failed", tier=t.name, key=cache_key, error=str(exc))
                    continue
                if value is not None:
                    return Ok(CacheResult(value=value, hit=True, tier=t.name))

            match await self.fetch(key):
                case Ok(value):
                    for t in self.tiers:
                        try:
                            await t.set(cache_key, value)
                        except Exception as exc:
                            logger.warning("cache.tier_write_failed", tier=t.name, key=cache_key, error=str(exc))
                    return Ok(CacheResult(value=value, hit=False, tier=None))
                case Error(e):
                    return Error(e)

        return LazyCoroResult(execute)

    async def invalidate(self, key: K) -> bool:
        cache_key = self.key_fn(key)
        deleted = False
        for t in self.tiers:
            if await t.delete(cache_key):
                deleted = True
        return deleted

    async def clear(self) -> int:
        total = 0
        for t in self.tiers:
            total += await t.clear()
        return total


def cache[K, T, E](
    key: KeyFn[K],
    fetch: FetchFn[K, T, E],
) -> Cache[K, T, E]:
    """Create cache builder with key function and fetch."""
    return Cache(_key_fn=key, _fetch=fetch, _tiers=())


__all__ = ("Cache", "CacheExecutor", "cache")
