"""
Pricing — pure per-line math, no I/O.

    from settle import pricing as P

    qty = P.resolve_deduct_quantity(line)      # Result[float, ConversionError]
    item = P.build_line_item(line, product_id)  # OrderLineItem
"""

from __future__ import annotations

from settle.pricing._convert import (
    ConversionError,
    resolve_deduct_quantity,
    requires_conversion,
    describe_ratio,
    PREROLL_CATEGORY,
)
from settle.pricing._line import (
    LineItemMetadata,
    OrderLineItem,
    build_line_item,
)

__all__ = (
    "ConversionError",
    "resolve_deduct_quantity",
    "requires_conversion",
    "describe_ratio",
    "PREROLL_CATEGORY",
    "LineItemMetadata",
    "OrderLineItem",
    "build_line_item",
)
