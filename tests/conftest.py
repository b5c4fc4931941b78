"""Pytest fixtures: in-memory collaborators that count their calls."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest

from settle import CartLine, ConversionRatio, Customer, PricingTier
from settle.backend import (
    BackendRejected,
    CatalogProduct,
    InventoryDeductionResult,
    LineDeduction,
    PointsAward,
)
from settle.mapping import ProductMappingResolver
from settle.saga import OrderSagaCoordinator

FIXED_NOW = datetime(2026, 3, 14, 15, 9, 26, tzinfo=UTC)


# ═══════════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass
class FakeBackend:
    order_id: int = 9001
    create_error: Exception | None = None
    complete_error: Exception | None = None
    points_error: Exception | None = None
    points: PointsAward = field(default_factory=lambda: PointsAward(success=True, points=18))

    created: list[dict[str, Any]] = field(default_factory=list)
    completed: list[tuple[int, datetime, datetime]] = field(default_factory=list)
    awarded: list[tuple[int, int]] = field(default_factory=list)

    @property
    def calls(self) -> int:
        return len(self.created) + len(self.completed) + len(self.awarded)

    async def create_order(self, payload: Mapping[str, Any]) -> int:
        self.created.append(dict(payload))
        if self.create_error is not None:
            raise self.create_error
        return self.order_id

    async def complete_order(self, order_id: int, date_paid: datetime, date_completed: datetime) -> None:
        self.completed.append((order_id, date_paid, date_completed))
        if self.complete_error is not None:
            raise self.complete_error

    async def award_points(self, order_id: int, customer_id: int) -> PointsAward:
        self.awarded.append((order_id, customer_id))
        if self.points_error is not None:
            raise self.points_error
        return self.points


@dataclass
class FakeInventory:
    fail_with: str | None = None
    still_deducted: tuple[LineDeduction, ...] = ()
    raise_error: Exception | None = None
    calls: list[tuple[tuple[CartLine, ...], int, int]] = field(default_factory=list)

    async def deduct_inventory_for_order(
        self,
        lines: Sequence[CartLine],
        location_id: int,
        order_id: int,
    ) -> InventoryDeductionResult:
        self.calls.append((tuple(lines), location_id, order_id))
        if self.raise_error is not None:
            raise self.raise_error
        if self.fail_with is not None:
            return InventoryDeductionResult(error=self.fail_with, unrestored=self.still_deducted)
        return InventoryDeductionResult(lines=tuple(
            LineDeduction(
                product_id=line.product_id,
                name=line.name,
                quantity_sold=line.quantity,
                quantity_deducted=line.quantity,
                success=True,
            )
            for line in lines
        ))


@dataclass
class FakeCatalog:
    products: dict[str, list[CatalogProduct]] = field(default_factory=dict)
    error: Exception | None = None
    searches: list[str] = field(default_factory=list)

    async def search_products(self, name: str, limit: int = 5) -> list[CatalogProduct]:
        self.searches.append(name)
        if self.error is not None:
            raise self.error
        return self.products.get(name, [])[:limit]


@dataclass
class Flag:
    """Cancellation signal that trips after `after` checks."""

    after: int = 0
    checks: int = 0

    def is_set(self) -> bool:
        self.checks += 1
        return self.checks > self.after


# ═══════════════════════════════════════════════════════════════════════════════
# Builders
# ═══════════════════════════════════════════════════════════════════════════════


def make_line(
    product_id: int = 101,
    name: str = "Blue Dream",
    quantity: float = 1.0,
    price: str = "10.00",
    **kwargs: Any,
) -> CartLine:
    return CartLine(product_id=product_id, name=name, quantity=quantity, price=Decimal(price), **kwargs)


def preroll_tier(input_amount: float = 3.5, output_amount: float = 1.0) -> PricingTier:
    return PricingTier(
        label="1 Pre-Roll",
        rule_name="Pre-Roll",
        tier_price=Decimal("15.00"),
        tier_quantity=1,
        category="preroll",
        conversion_ratio=ConversionRatio(
            input_amount=input_amount,
            input_unit="g",
            output_amount=output_amount,
            output_unit="unit",
            description="3.5g flower per pre-roll",
        ),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def resolver(catalog: FakeCatalog) -> ProductMappingResolver:
    return ProductMappingResolver(catalog)


@pytest.fixture
def coordinator(
    backend: FakeBackend,
    inventory: FakeInventory,
    resolver: ProductMappingResolver,
) -> OrderSagaCoordinator:
    return OrderSagaCoordinator(backend, inventory, resolver, clock=lambda: FIXED_NOW)


@pytest.fixture
def member() -> Customer:
    return Customer(id=42, name="Ada Lovelace", email="ada@example.com")


@pytest.fixture
def bad_request() -> BackendRejected:
    return BackendRejected("order creation failed (500)", status=500)
