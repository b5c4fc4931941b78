"""
Quantity conversion — sale units into stock-deduction units.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from kungfu import Result, Ok, Error

from settle._types import CartLine, ConversionRatio

# ═══════════════════════════════════════════════════════════════════════════════
# Conversion Error
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ConversionError:
    """Conversion ratio cannot be applied to a line."""

    line_name: str
    message: str

    def __str__(self) -> str:
        return f"{self.line_name}: {self.message}"


# ═══════════════════════════════════════════════════════════════════════════════
# resolve_deduct_quantity()
# ═══════════════════════════════════════════════════════════════════════════════


def resolve_deduct_quantity(line: CartLine) -> Result[float, ConversionError]:
    """
    Resolve how much stock a line consumes, in the backend's unit.

    Without a conversion ratio the sale quantity is deducted as is.
    With one: quantity / input_amount * output_amount, in output_unit.

    Example:
        3.5 g sold, ratio {3.5 g -> 1 unit}  =>  Ok(1.0)
    """
    ratio = line.conversion_ratio
    if ratio is None:
        return Ok(line.quantity)

    if not _is_positive(ratio.input_amount):
        return Error(ConversionError(
            line.name,
            f"conversion input_amount must be positive, got {ratio.input_amount!r}",
        ))
    if not math.isfinite(ratio.output_amount) or ratio.output_amount < 0:
        return Error(ConversionError(
            line.name,
            f"conversion output_amount must be non-negative, got {ratio.output_amount!r}",
        ))

    return Ok(line.quantity / ratio.input_amount * ratio.output_amount)


def _is_positive(amount: float) -> bool:
    return math.isfinite(amount) and amount > 0


# ═══════════════════════════════════════════════════════════════════════════════
# Pre-roll guard
# ═══════════════════════════════════════════════════════════════════════════════

PREROLL_CATEGORY = "preroll"


def requires_conversion(line: CartLine) -> bool:
    """Rolled products are sold by unit but stocked by weight."""
    if line.category == PREROLL_CATEGORY:
        return True
    tier = line.pricing_tier
    return tier is not None and "roll" in tier.rule_name.lower()


def describe_ratio(ratio: ConversionRatio) -> str:
    if ratio.description:
        return ratio.description
    return (
        f"{ratio.input_amount:g} {ratio.input_unit} -> "
        f"{ratio.output_amount:g} {ratio.output_unit}"
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "ConversionError",
    "resolve_deduct_quantity",
    "requires_conversion",
    "describe_ratio",
    "PREROLL_CATEGORY",
)
