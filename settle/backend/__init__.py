"""
Backend — the commerce API and the stock ledger, over httpx.

    from settle import backend as B

    client = B.CommerceClient(http, cfg.backend)
    inventory = B.HttpInventoryService(http, cfg.backend)
"""

from __future__ import annotations

from settle.backend._client import (
    BackendRejected,
    PointsAward,
    CatalogProduct,
    CommerceBackend,
    Catalog,
    CommerceClient,
)
from settle.backend._inventory import (
    LineDeduction,
    InventoryDeductionResult,
    InventoryService,
    StockError,
    HttpInventoryService,
)

__all__ = (
    "BackendRejected",
    "PointsAward",
    "CatalogProduct",
    "CommerceBackend",
    "Catalog",
    "CommerceClient",
    "LineDeduction",
    "InventoryDeductionResult",
    "InventoryService",
    "StockError",
    "HttpInventoryService",
)
