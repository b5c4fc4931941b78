"""
Request/response models for the HTTP surface.

Requests convert with to_domain(), responses with from_domain(); the saga
never sees pydantic types.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from settle._types import (
    CartLine,
    ConversionRatio,
    Customer,
    Employee,
    PaymentInfo,
    PaymentLeg,
    PricingTier,
    TaxRate,
)
from settle.saga import (
    Completed,
    CompletionError,
    CreatedButIncomplete,
    FailedStep,
    InventoryError,
    OrderOutcome,
    Rejected,
    allowed_actions,
    operator_message,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Cart
# ═══════════════════════════════════════════════════════════════════════════════


class ConversionRatioIn(BaseModel):
    input_amount: float
    input_unit: str
    output_amount: float
    output_unit: str
    description: str = ""

    def to_domain(self) -> ConversionRatio:
        return ConversionRatio(
            input_amount=self.input_amount,
            input_unit=self.input_unit,
            output_amount=self.output_amount,
            output_unit=self.output_unit,
            description=self.description,
        )


class PricingTierIn(BaseModel):
    label: str
    rule_name: str
    tier_price: Decimal
    tier_quantity: float
    category: str = ""
    conversion_ratio: ConversionRatioIn | None = None

    def to_domain(self) -> PricingTier:
        return PricingTier(
            label=self.label,
            rule_name=self.rule_name,
            tier_price=self.tier_price,
            tier_quantity=self.tier_quantity,
            category=self.category,
            conversion_ratio=self.conversion_ratio.to_domain() if self.conversion_ratio else None,
        )


class CartLineIn(BaseModel):
    product_id: int
    name: str
    quantity: float
    price: Decimal
    override_price: Decimal | None = None
    discount_percentage: Decimal | None = None
    pricing_tier: PricingTierIn | None = None
    variation_id: int | None = None
    backend_product_id: int | None = None
    sku: str | None = None
    category: str | None = None

    def to_domain(self) -> CartLine:
        return CartLine(
            product_id=self.product_id,
            name=self.name,
            quantity=self.quantity,
            price=self.price,
            override_price=self.override_price,
            discount_percentage=self.discount_percentage,
            pricing_tier=self.pricing_tier.to_domain() if self.pricing_tier else None,
            variation_id=self.variation_id,
            backend_product_id=self.backend_product_id,
            sku=self.sku,
            category=self.category,
        )


class CustomerIn(BaseModel):
    id: int
    name: str = ""
    email: str | None = None

    def to_domain(self) -> Customer:
        return Customer(id=self.id, name=self.name, email=self.email)


class PaymentLegIn(BaseModel):
    method: str
    amount: Decimal


class PaymentIn(BaseModel):
    legs: list[PaymentLegIn] = Field(default_factory=list)

    def to_domain(self) -> PaymentInfo:
        return PaymentInfo(legs=tuple(PaymentLeg(leg.method, leg.amount) for leg in self.legs))


class TaxIn(BaseModel):
    rate: Decimal
    name: str = "Sales Tax"


class EmployeeIn(BaseModel):
    id: int
    name: str = "Unknown Staff"


# ═══════════════════════════════════════════════════════════════════════════════
# Requests
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutCommand:
    cart: tuple[CartLine, ...]
    customer: Customer | None
    payment: PaymentInfo
    location_id: int
    tax: TaxRate | None
    employee: Employee | None


class CheckoutIn(BaseModel):
    cart: list[CartLineIn]
    customer: CustomerIn | None = None
    payment: PaymentIn
    location_id: int
    tax: TaxIn | None = None
    employee: EmployeeIn | None = None

    def to_domain(self) -> CheckoutCommand:
        return CheckoutCommand(
            cart=tuple(line.to_domain() for line in self.cart),
            customer=self.customer.to_domain() if self.customer else None,
            payment=self.payment.to_domain(),
            location_id=self.location_id,
            tax=TaxRate(rate=self.tax.rate, name=self.tax.name) if self.tax else None,
            employee=Employee(id=self.employee.id, name=self.employee.name) if self.employee else None,
        )


@dataclass(frozen=True, slots=True)
class RemediateCommand:
    incomplete: CreatedButIncomplete
    cart: tuple[CartLine, ...]
    customer: Customer | None
    location_id: int


class RemediateIn(BaseModel):
    failed_step: FailedStep
    cause: str = ""
    cart: list[CartLineIn]
    customer: CustomerIn | None = None
    location_id: int

    def to_domain(self, order_id: int) -> RemediateCommand:
        cause: InventoryError | CompletionError
        if self.failed_step is FailedStep.INVENTORY:
            cause = InventoryError(order_id, self.cause or "inventory not deducted")
        else:
            cause = CompletionError(order_id, self.cause or "order not completed")
        return RemediateCommand(
            incomplete=CreatedButIncomplete(order_id=order_id, failed_step=self.failed_step, cause=cause),
            cart=tuple(line.to_domain() for line in self.cart),
            customer=self.customer.to_domain() if self.customer else None,
            location_id=self.location_id,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Response
# ═══════════════════════════════════════════════════════════════════════════════


class StepRecordOut(BaseModel):
    state: str
    status: str
    detail: str = ""


class OutcomeOut(BaseModel):
    kind: Literal["completed", "created_but_incomplete", "rejected"]
    order_id: int | None = None
    failed_step: str | None = None
    cause: str | None = None
    points_awarded: int = 0
    message: str
    allowed_actions: list[str]
    trail: list[StepRecordOut]

    @classmethod
    def from_domain(cls, dom: OrderOutcome) -> OutcomeOut:
        common = {
            "message": operator_message(dom),
            "allowed_actions": sorted(action.value for action in allowed_actions(dom)),
            "trail": [
                StepRecordOut(state=r.state.value, status=r.status.value, detail=r.detail)
                for r in dom.trail
            ],
        }
        match dom:
            case Completed(order_id=order_id, points_awarded=points):
                return cls(kind="completed", order_id=order_id, points_awarded=points, **common)
            case CreatedButIncomplete(order_id=order_id, failed_step=step, cause=cause):
                return cls(
                    kind="created_but_incomplete",
                    order_id=order_id,
                    failed_step=step.value,
                    cause=str(cause),
                    **common,
                )
            case Rejected(cause=cause):
                return cls(kind="rejected", cause=str(cause), **common)
            case _:
                raise TypeError(f"unknown outcome: {dom!r}")


__all__ = (
    "ConversionRatioIn",
    "PricingTierIn",
    "CartLineIn",
    "CustomerIn",
    "PaymentLegIn",
    "PaymentIn",
    "TaxIn",
    "EmployeeIn",
    "CheckoutCommand",
    "CheckoutIn",
    "RemediateCommand",
    "RemediateIn",
    "StepRecordOut",
    "OutcomeOut",
)
