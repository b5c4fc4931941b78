"""
Mapping — cart line identity onto the commerce backend's product id.

    from settle.mapping import ProductMappingResolver

    resolver = ProductMappingResolver(client)
    product_id = await resolver.resolve(line)   # always an int
"""

from __future__ import annotations

from settle.mapping._resolver import (
    NO_MATCH,
    MappingLookupError,
    normalize_name,
    best_match,
    ProductMappingResolver,
)

__all__ = (
    "NO_MATCH",
    "MappingLookupError",
    "normalize_name",
    "best_match",
    "ProductMappingResolver",
)
