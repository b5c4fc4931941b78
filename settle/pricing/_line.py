"""
Line item builder — cart line + resolved product id into an order line.

Provenance (overrides, discounts, tier, conversion ratio) travels as a typed
LineItemMetadata and is flattened to key/value pairs only in to_wire().
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from settle._types import (
    CartLine,
    PricingTier,
    format_money,
    format_number,
)

type WireMeta = list[dict[str, str]]


# ═══════════════════════════════════════════════════════════════════════════════
# Line Item Metadata
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LineItemMetadata:
    actual_quantity: float
    actual_price: Decimal
    original_price: Decimal
    override: Decimal | None = None
    discount: Decimal | None = None
    tier: PricingTier | None = None

    def to_wire(self) -> WireMeta:
        meta = [
            _kv("_actual_quantity", format_number(self.actual_quantity)),
            _kv("_actual_price", format_money(self.actual_price)),
            _kv("_original_price", format_money(self.original_price)),
        ]
        if self.override is not None:
            meta.append(_kv("_price_override", format_money(self.override)))
        if self.discount is not None:
            meta.append(_kv("_discount_percentage", format_number(self.discount)))
        if self.tier is not None:
            meta.extend(_tier_meta(self.tier))
        return meta


def _kv(key: str, value: str) -> dict[str, str]:
    return {"key": key, "value": value}


def _tier_meta(tier: PricingTier) -> WireMeta:
    meta = [
        _kv("_pricing_tier_label", tier.label),
        _kv("_pricing_tier_rule_name", tier.rule_name),
        _kv("_pricing_tier_price", format_money(tier.tier_price)),
        _kv("_pricing_tier_quantity", format_number(tier.tier_quantity)),
        _kv("_pricing_tier_category", tier.category),
    ]
    cr = tier.conversion_ratio
    if cr is not None:
        meta.extend([
            _kv("_conversion_ratio_input_amount", format_number(cr.input_amount)),
            _kv("_conversion_ratio_input_unit", cr.input_unit),
            _kv("_conversion_ratio_output_amount", format_number(cr.output_amount)),
            _kv("_conversion_ratio_output_unit", cr.output_unit),
            _kv("_conversion_ratio_description", cr.description),
        ])
    return meta


# ═══════════════════════════════════════════════════════════════════════════════
# Order Line Item
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderLineItem:
    product_id: int
    name: str
    quantity: float
    subtotal: Decimal
    total: Decimal
    metadata: LineItemMetadata
    sku: str | None = None
    variation_id: int | None = None

    def to_wire(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "subtotal": format_money(self.subtotal),
            "total": format_money(self.total),
            "meta_data": self.metadata.to_wire(),
        }
        if self.sku:
            item["sku"] = self.sku
        if self.variation_id:
            item["variation_id"] = self.variation_id
        return item


# ═══════════════════════════════════════════════════════════════════════════════
# build_line_item()
# ═══════════════════════════════════════════════════════════════════════════════


def build_line_item(line: CartLine, product_id: int) -> OrderLineItem:
    """
    Build the order line for a cart line.

    Pure: same line and product id always give an equal item. Input is
    assumed validated (positive quantity, discount within 0-100).
    """
    total = line.line_total()
    metadata = LineItemMetadata(
        actual_quantity=line.quantity,
        actual_price=line.effective_unit_price(),
        original_price=line.price,
        override=line.override_price,
        discount=line.discount_percentage if line.has_discount else None,
        tier=line.pricing_tier,
    )
    return OrderLineItem(
        product_id=product_id,
        name=line.name,
        quantity=line.quantity,
        subtotal=total,
        total=total,
        metadata=metadata,
        sku=line.sku,
        variation_id=line.variation_id,
    )


__all__ = (
    "LineItemMetadata",
    "OrderLineItem",
    "build_line_item",
)
