"""
Product mapping — internal catalog identity onto the backend's canonical id.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from combinators import lift as L
from kungfu import LazyCoroResult, Ok, Error

from settle._types import CartLine
from settle.backend import Catalog, CatalogProduct
from settle.cache import CacheExecutor, TTLTier, cache
from settle.config import MappingConfig

logger = structlog.get_logger(__name__)

# Cached stand-in for "catalog has nothing under this name"
NO_MATCH = 0


# ═══════════════════════════════════════════════════════════════════════════════
# Lookup Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MappingLookupError:
    name: str
    message: str


def normalize_name(name: str) -> str:
    return name.strip().lower()


def best_match(name: str, products: list[CatalogProduct]) -> CatalogProduct | None:
    """
    Exact name, else first name containing the search term, else first result.

    Example:
        best_match("Blue Dream", [Blue Dream Pre-Roll, Blue Dream])  =>  Blue Dream
    """
    if not products:
        return None
    wanted = normalize_name(name)
    for product in products:
        if normalize_name(product.name) == wanted:
            return product
    for product in products:
        if wanted in normalize_name(product.name):
            return product
    return products[0]


# ═══════════════════════════════════════════════════════════════════════════════
# ProductMappingResolver
# ═══════════════════════════════════════════════════════════════════════════════


class ProductMappingResolver:
    """
    Resolves a cart line to the backend product id; never fails.

    A known backend_product_id wins. Otherwise the catalog is searched by
    display name through a TTL cache (misses are cached too). Any lookup
    problem degrades to the line's own product_id.

    Example:
        resolver = ProductMappingResolver(client)
        product_id = await resolver.resolve(line)
    """

    def __init__(
        self,
        catalog: Catalog,
        config: MappingConfig | None = None,
        tier: TTLTier[int] | None = None,
    ) -> None:
        self._catalog = catalog
        self._config = config or MappingConfig()
        if tier is None:
            tier = TTLTier[int](ttl=self._config.ttl, max_size=self._config.max_size)
        self._tier = tier
        self._ids: CacheExecutor[str, int, MappingLookupError] = (
            cache(normalize_name, self._search).tier(self._tier).build()
        )

    def _search(self, name: str) -> LazyCoroResult[int, MappingLookupError]:
        async def search() -> int:
            products = await self._catalog.search_products(name, self._config.search_limit)
            match = best_match(name, products)
            if match is None:
                logger.info("mapping.no_match", name=name)
                return NO_MATCH
            logger.debug("mapping.matched", name=name, product_id=match.id, matched_name=match.name)
            return match.id

        return L.catching_async(search, on_error=lambda e: MappingLookupError(name, str(e)))

    async def lookup(self, name: str) -> int | None:
        """Catalog id for a display name, or None when nothing usable was found."""
        match await self._ids.get(name):
            case Ok(found):
                return found.value if found.value != NO_MATCH else None
            case Error(e):
                logger.warning("mapping.lookup_failed", name=e.name, error=e.message)
                return None

    async def resolve(self, line: CartLine) -> int:
        if line.backend_product_id is not None and line.backend_product_id > 0:
            return line.backend_product_id
        found = await self.lookup(line.name)
        if found is None:
            logger.info("mapping.fallback", name=line.name, product_id=line.product_id)
            return line.product_id
        return found

    async def clear(self) -> int:
        return await self._ids.clear()


__all__ = (
    "NO_MATCH",
    "MappingLookupError",
    "normalize_name",
    "best_match",
    "ProductMappingResolver",
)
