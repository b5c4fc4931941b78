"""
Order request — the create-order payload, built once per checkout.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from settle._types import (
    CartLine,
    Customer,
    Employee,
    PaymentInfo,
    TaxRate,
    format_money,
    format_number,
    is_guest,
    round_money,
)
from settle.config import StoreDefaults
from settle.pricing import OrderLineItem, build_line_item

DEFAULT_TAX_NAME = "Sales Tax"

# ═══════════════════════════════════════════════════════════════════════════════
# Totals
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def order_totals(cart: Sequence[CartLine], tax: TaxRate | None = None) -> OrderTotals:
    """
    Subtotal of line totals, tax rounded half up, total = subtotal + tax.

    Example:
        [{price 10.00, qty 2, discount 10}], no tax  =>  18.00 / 0.00 / 18.00
    """
    subtotal = sum((line.line_total() for line in cart), Decimal(0))
    tax_amount = round_money(subtotal * tax.rate) if tax is not None else Decimal("0.00")
    return OrderTotals(subtotal=subtotal, tax=tax_amount, total=subtotal + tax_amount)


# ═══════════════════════════════════════════════════════════════════════════════
# Payload Parts
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Address:
    first_name: str
    last_name: str
    country: str
    state: str
    city: str
    postcode: str
    email: str | None = None

    def to_wire(self) -> dict[str, str]:
        wire = {
            "first_name": self.first_name,
            "last_name": self.last_name,
        }
        if self.email is not None:
            wire["email"] = self.email
        wire.update(
            country=self.country,
            state=self.state,
            city=self.city,
            postcode=self.postcode,
        )
        return wire


@dataclass(frozen=True, slots=True)
class TaxLine:
    rate_code: str
    rate_id: int
    label: str
    tax_total: Decimal

    def to_wire(self) -> dict[str, Any]:
        return {
            "rate_code": self.rate_code,
            "rate_id": self.rate_id,
            "label": self.label,
            "compound": False,
            "tax_total": format_money(self.tax_total),
            "shipping_tax_total": "0.00",
        }


@dataclass(frozen=True, slots=True)
class AuditTags:
    """Order-level provenance, flattened into meta_data at the boundary."""

    location_id: int
    location_name: str
    created_via: str
    tax_rate: Decimal
    tax_name: str
    totals: OrderTotals
    payment: PaymentInfo
    employee: Employee | None = None

    def to_wire(self) -> list[dict[str, Any]]:
        location = str(self.location_id)
        employee = self.employee
        meta: list[dict[str, Any]] = [
            {"key": "_pos_location_id", "value": location},
            {"key": "_pos_location_name", "value": self.location_name},
            {"key": "_employee_id", "value": employee.id if employee is not None else None},
            {"key": "_employee_name", "value": employee.name if employee is not None else "Unknown Staff"},
            {"key": "_flora_location_id", "value": location},
            {"key": "_store_id", "value": location},
            {"key": "_created_via", "value": self.created_via},
            {"key": "_pos_order", "value": "true"},
            # stock is written by the saga, never by the backend on its own
            {"key": "_flora_inventory_processed", "value": "no"},
            {"key": "_tax_rate", "value": format_number(self.tax_rate)},
            {"key": "_tax_name", "value": self.tax_name},
            {"key": "_subtotal", "value": format_money(self.totals.subtotal)},
            {"key": "_tax_total", "value": format_money(self.totals.tax)},
            {"key": "_total", "value": format_money(self.totals.total)},
        ]
        meta.extend(self._payment_meta())
        return meta

    def _payment_meta(self) -> list[dict[str, Any]]:
        payment = self.payment
        if payment.is_split:
            details = [
                {"method": leg.method, "amount": format_money(leg.amount)}
                for leg in payment.legs
            ]
            return [
                {"key": "_split_payment", "value": "true"},
                {"key": "_split_payment_details", "value": json.dumps(details)},
                {"key": "_split_payment_count", "value": str(len(payment.legs))},
            ]
        if payment.method == "cash":
            change = max(payment.collected - self.totals.total, Decimal(0))
            return [
                {"key": "_cash_received", "value": format_money(payment.collected)},
                {"key": "_change_given", "value": format_money(change)},
            ]
        return []


# ═══════════════════════════════════════════════════════════════════════════════
# OrderRequest
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class OrderRequest:
    customer: Customer | None
    payment: PaymentInfo
    location_id: int
    line_items: tuple[OrderLineItem, ...]
    tax_line: TaxLine
    billing: Address
    shipping: Address
    audit: AuditTags
    currency: str = "USD"

    @property
    def totals(self) -> OrderTotals:
        return self.audit.totals

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {}
        customer = self.customer
        if customer is not None and not is_guest(customer):
            wire["customer_id"] = customer.id
        wire.update(
            payment_method=self.payment.method,
            payment_method_title=self.payment.title,
            status="processing",
            currency=self.currency,
            set_paid=True,
            created_via=self.audit.created_via,
            pos_order=True,
            location_id=self.location_id,
            line_items=[item.to_wire() for item in self.line_items],
            tax_lines=[self.tax_line.to_wire()],
            billing=self.billing.to_wire(),
            shipping=self.shipping.to_wire(),
            meta_data=self.audit.to_wire(),
        )
        return wire


def split_name(customer: Customer | None) -> tuple[str, str]:
    """First word / the rest; guests are "POS" / "Customer"."""
    parts = customer.name.split() if customer is not None and not is_guest(customer) else []
    first = parts[0] if parts else "POS"
    last = " ".join(parts[1:]) or "Customer"
    return first, last


def build_order_request(
    cart: Sequence[CartLine],
    product_ids: Sequence[int],
    customer: Customer | None,
    payment: PaymentInfo,
    location_id: int,
    *,
    now: datetime,
    tax: TaxRate | None = None,
    employee: Employee | None = None,
    store: StoreDefaults | None = None,
) -> OrderRequest:
    """
    Assemble the create-order payload.

    product_ids[i] is the resolved backend id for cart[i].
    """
    store = store or StoreDefaults()
    totals = order_totals(cart, tax)
    first, last = split_name(customer)
    email = customer.email if customer is not None and not is_guest(customer) else None
    if not email:
        email = f"pos-{int(now.timestamp() * 1000)}@{store.guest_email_domain}"

    tax_rate = tax.rate if tax is not None else Decimal(0)
    tax_name = tax.name if tax is not None else DEFAULT_TAX_NAME

    return OrderRequest(
        customer=customer,
        payment=payment,
        location_id=location_id,
        line_items=tuple(build_line_item(line, pid) for line, pid in zip(cart, product_ids, strict=True)),
        tax_line=TaxLine(
            rate_code=f"{store.state}-TAX",
            rate_id=location_id,
            label=tax_name,
            tax_total=totals.tax,
        ),
        billing=Address(first, last, store.country, store.state, store.city, store.postcode, email=email),
        shipping=Address(first, last, store.country, store.state, store.city, store.postcode),
        audit=AuditTags(
            location_id=location_id,
            location_name=store.location_name,
            created_via=store.created_via,
            tax_rate=tax_rate,
            tax_name=tax_name,
            totals=totals,
            payment=payment,
            employee=employee,
        ),
        currency=store.currency,
    )


__all__ = (
    "OrderTotals",
    "order_totals",
    "Address",
    "TaxLine",
    "AuditTags",
    "OrderRequest",
    "split_name",
    "build_order_request",
)
