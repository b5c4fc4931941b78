"""
Inventory deduction — per-location stock writes for a created order.

The stock ledger has no transactional "deduct" primitive: each line is a
read of current stock followed by an absolute write. Lines run strictly in
cart order; the first failure stops the loop and the lines already written
are restored to their previous level, best-effort.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
import structlog
from kungfu import Ok, Error

from settle._types import CartLine
from settle.config import BackendConfig
from settle.pricing import describe_ratio, requires_conversion, resolve_deduct_quantity

logger = structlog.get_logger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class LineDeduction:
    """Outcome for one cart line; quantity_deducted is in backend stock units."""

    product_id: int
    name: str
    quantity_sold: float
    quantity_deducted: float
    success: bool
    error: str | None = None
    variation_id: int | None = None
    previous_stock: float | None = None
    new_stock: float | None = None


@dataclass(frozen=True, slots=True)
class InventoryDeductionResult:
    """
    unrestored holds lines whose restore write failed: their stock is still
    deducted even though the deduction as a whole failed.
    """

    lines: tuple[LineDeduction, ...] = ()
    error: str | None = None
    restored: int = 0
    unrestored: tuple[LineDeduction, ...] = ()

    @property
    def success(self) -> bool:
        return self.error is None and all(line.success for line in self.lines)

    @property
    def restore_failed(self) -> int:
        return len(self.unrestored)


class InventoryService(Protocol):
    async def deduct_inventory_for_order(
        self,
        lines: Sequence[CartLine],
        location_id: int,
        order_id: int,
    ) -> InventoryDeductionResult:
        ...


class StockError(Exception):
    """A single stock read or write did not go through."""


# ═══════════════════════════════════════════════════════════════════════════════
# HttpInventoryService
# ═══════════════════════════════════════════════════════════════════════════════


class HttpInventoryService:
    """
    Inventory collaborator backed by the stock ledger proxy.

    Example:
        inventory = HttpInventoryService(http, cfg)
        result = await inventory.deduct_inventory_for_order(cart, location_id=5, order_id=9001)
        if not result.success:
            print(result.error)
    """

    def __init__(self, http: httpx.AsyncClient, config: BackendConfig | None = None) -> None:
        self._http = http
        self._config = config or BackendConfig()

    async def deduct_inventory_for_order(
        self,
        lines: Sequence[CartLine],
        location_id: int,
        order_id: int,
    ) -> InventoryDeductionResult:
        log = logger.bind(order_id=order_id, location_id=location_id)
        written: list[LineDeduction] = []

        for line in lines:
            deduction = await self._deduct_line(line, location_id)
            if not deduction.success:
                log.warning("inventory.line_failed", product_id=line.product_id, error=deduction.error)
                restored, unrestored = await self._restore(written, location_id)
                return InventoryDeductionResult(
                    lines=(*written, deduction),
                    error=f"Failed to deduct inventory for {line.name}: {deduction.error}",
                    restored=restored,
                    unrestored=unrestored,
                )
            written.append(deduction)
            log.debug(
                "inventory.line_deducted",
                product_id=deduction.product_id,
                deducted=deduction.quantity_deducted,
                new_stock=deduction.new_stock,
            )

        log.info("inventory.deducted", lines=len(written))
        return InventoryDeductionResult(lines=tuple(written))

    async def _deduct_line(self, line: CartLine, location_id: int) -> LineDeduction:
        # a failed line never changed stock, so it reports nothing deducted
        def failed(error: str) -> LineDeduction:
            return LineDeduction(
                product_id=line.product_id,
                name=line.name,
                quantity_sold=line.quantity,
                quantity_deducted=0.0,
                success=False,
                error=error,
                variation_id=line.variation_id,
            )

        ratio = line.conversion_ratio
        if requires_conversion(line) and ratio is None:
            return failed(f"{line.name} requires a conversion ratio but none was found; sale blocked")

        match resolve_deduct_quantity(line):
            case Ok(quantity):
                deduct = quantity
            case Error(e):
                return failed(f"{e.message} (ratio {describe_ratio(ratio)})" if ratio else e.message)

        try:
            current = await self.current_stock(line.product_id, location_id, line.variation_id)
            new_stock = max(0.0, current - deduct)
            if deduct > current:
                logger.warning(
                    "inventory.overselling",
                    product_id=line.product_id,
                    deduct=deduct,
                    current=current,
                )
            await self.set_stock(line.product_id, location_id, new_stock, line.variation_id)
        except (httpx.HTTPError, StockError) as exc:
            return failed(str(exc) or type(exc).__name__)

        return LineDeduction(
            product_id=line.product_id,
            name=line.name,
            quantity_sold=line.quantity,
            quantity_deducted=deduct,
            success=True,
            variation_id=line.variation_id,
            previous_stock=current,
            new_stock=new_stock,
        )

    async def _restore(
        self,
        written: list[LineDeduction],
        location_id: int,
    ) -> tuple[int, tuple[LineDeduction, ...]]:
        """Put written lines back, newest first. Returns (restored, still deducted)."""
        restored = 0
        unrestored: list[LineDeduction] = []
        for line in reversed(written):
            if line.previous_stock is None:
                unrestored.append(line)
                continue
            try:
                await self.set_stock(line.product_id, location_id, line.previous_stock, line.variation_id)
                restored += 1
            except (httpx.HTTPError, StockError) as exc:
                unrestored.append(line)
                logger.error("inventory.restore_failed", product_id=line.product_id, error=str(exc))
        return restored, tuple(unrestored)

    # ───────────────────────────────────────────────────────────────────────────
    # Ledger calls
    # ───────────────────────────────────────────────────────────────────────────

    async def current_stock(self, product_id: int, location_id: int, variation_id: int | None = None) -> float:
        params: dict[str, int] = {"product_id": product_id, "location_id": location_id}
        if variation_id:
            params["variation_id"] = variation_id
        response = await self._http.get(self._config.inventory_path, params=params)
        if not response.is_success:
            raise StockError(f"could not read current stock ({response.status_code})")
        try:
            body = response.json()
        except ValueError as exc:
            raise StockError("stock read returned invalid JSON") from exc
        return _find_stock(_records(body), product_id, location_id, variation_id or 0)

    async def set_stock(
        self,
        product_id: int,
        location_id: int,
        quantity: float,
        variation_id: int | None = None,
    ) -> None:
        payload: dict[str, Any] = {
            "product_id": product_id,
            "location_id": location_id,
            "quantity": quantity,
        }
        if variation_id:
            payload["variation_id"] = variation_id
        response = await self._http.post(self._config.inventory_path, json=payload)
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = None
        message = body.get("message") if isinstance(body, dict) else None
        raise StockError(message or f"failed to update inventory ({response.status_code})")


# ═══════════════════════════════════════════════════════════════════════════════
# Stock record parsing
# ═══════════════════════════════════════════════════════════════════════════════


def _records(body: Any) -> list[dict[str, Any]]:
    if isinstance(body, list):
        items = body
    elif isinstance(body, dict) and body.get("success") and isinstance(body.get("data"), list):
        items = body["data"]
    else:
        items = []
    return [item for item in items if isinstance(item, dict)]


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_float(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _find_stock(
    records: list[dict[str, Any]],
    product_id: int,
    location_id: int,
    variation_id: int,
) -> float:
    """Matching record's quantity (or available_quantity); no record means 0."""
    for record in records:
        if (
            _as_int(record.get("product_id")) == product_id
            and _as_int(record.get("location_id")) == location_id
            and _as_int(record.get("variation_id")) == variation_id
        ):
            return _as_float(record.get("quantity") or record.get("available_quantity"))
    return 0.0


__all__ = (
    "LineDeduction",
    "InventoryDeductionResult",
    "InventoryService",
    "StockError",
    "HttpInventoryService",
)
