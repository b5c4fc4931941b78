"""
Core types for settle.

Checkout inputs are snapshots: every object here is frozen and created
fresh per checkout attempt.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Money
# ═══════════════════════════════════════════════════════════════════════════════

CENT = Decimal("0.01")


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Coerce to Decimal without float noise (0.1 stays 0.1)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Decimal) -> Decimal:
    """Quantize to cents, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"{round_money(value):.2f}"


def format_number(value: Decimal | float | int) -> str:
    """Plain number text for audit metadata: 3.5 -> "3.5", 2.0 -> "2"."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


# ═══════════════════════════════════════════════════════════════════════════════
# Pricing Tier
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ConversionRatio:
    """
    Maps a sale unit onto the backend stock unit.

    Example: 3.5 g sold -> 1 unit deducted for a pre-roll blueprint.
    """

    input_amount: float
    input_unit: str
    output_amount: float
    output_unit: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class PricingTier:
    label: str
    rule_name: str
    tier_price: Decimal
    tier_quantity: float
    category: str = ""
    conversion_ratio: ConversionRatio | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Cart Line
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CartLine:
    """
    One cart line as the register saw it when "Pay" was pressed.

    product_id is the internal catalog id (used for stock writes);
    backend_product_id, when known, is the commerce backend's canonical id.
    """

    product_id: int
    name: str
    quantity: float
    price: Decimal
    override_price: Decimal | None = None
    discount_percentage: Decimal | None = None
    pricing_tier: PricingTier | None = None
    variation_id: int | None = None
    backend_product_id: int | None = None
    sku: str | None = None
    category: str | None = None

    @property
    def conversion_ratio(self) -> ConversionRatio | None:
        if self.pricing_tier is None:
            return None
        return self.pricing_tier.conversion_ratio

    @property
    def has_discount(self) -> bool:
        return self.discount_percentage is not None and self.discount_percentage > 0

    def effective_unit_price(self) -> Decimal:
        """override ?? price, minus the discount percentage; never negative."""
        base = self.override_price if self.override_price is not None else self.price
        discount = self.discount_percentage
        if discount is not None and discount > 0:
            base = base * (Decimal(100) - discount) / Decimal(100)
        return max(base, Decimal(0))

    def line_total(self) -> Decimal:
        return round_money(self.effective_unit_price() * to_money(self.quantity))


# ═══════════════════════════════════════════════════════════════════════════════
# Parties
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Customer:
    id: int
    name: str = ""
    email: str | None = None


def is_guest(customer: Customer | None) -> bool:
    return customer is None or customer.id <= 0


@dataclass(frozen=True, slots=True)
class Employee:
    id: int
    name: str = "Unknown Staff"


@dataclass(frozen=True, slots=True)
class TaxRate:
    rate: Decimal
    name: str = "Sales Tax"


# ═══════════════════════════════════════════════════════════════════════════════
# Payment
# ═══════════════════════════════════════════════════════════════════════════════

PAYMENT_TITLES = {"cash": "Cash", "card": "Credit Card"}


@dataclass(frozen=True, slots=True)
class PaymentLeg:
    method: str
    amount: Decimal


@dataclass(frozen=True, slots=True)
class PaymentInfo:
    """Single method or split legs; already captured before the saga starts."""

    legs: tuple[PaymentLeg, ...] = field(default_factory=tuple)

    @classmethod
    def single(cls, method: str, amount: Decimal | float | str) -> PaymentInfo:
        return cls(legs=(PaymentLeg(method, to_money(amount)),))

    @classmethod
    def split(cls, *legs: PaymentLeg) -> PaymentInfo:
        return cls(legs=tuple(legs))

    @property
    def is_split(self) -> bool:
        return len(self.legs) > 1

    @property
    def collected(self) -> Decimal:
        return sum((leg.amount for leg in self.legs), Decimal(0))

    @property
    def method(self) -> str:
        if self.is_split:
            return "split"
        if not self.legs:
            return ""
        return self.legs[0].method

    @property
    def title(self) -> str:
        if self.is_split:
            return "Split Payment"
        return PAYMENT_TITLES.get(self.method, self.method.title())


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Money
    "CENT",
    "to_money",
    "round_money",
    "format_money",
    "format_number",
    # Cart
    "ConversionRatio",
    "PricingTier",
    "CartLine",
    # Parties
    "Customer",
    "Employee",
    "TaxRate",
    "is_guest",
    # Payment
    "PaymentLeg",
    "PaymentInfo",
)
