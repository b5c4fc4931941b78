"""
Checkout saga — create order, deduct stock, complete, award points.

The backend has no cross-resource transaction, so the coordinator sequences
the calls and refuses to advance past a failed step:

    Validating -> CreatingOrder -> DeductingInventory -> Completing
               -> AwardingPoints -> Done

Nothing is retried or rolled back automatically. Once an order id exists,
every outcome is Completed or CreatedButIncomplete.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from decimal import Decimal
from typing import Protocol

import httpx
import structlog
from combinators import lift as L
from kungfu import LazyCoroResult, Result, Ok, Error

from settle._types import CartLine, Customer, Employee, PaymentInfo, TaxRate, is_guest
from settle.backend import (
    BackendRejected,
    CommerceBackend,
    InventoryDeductionResult,
    InventoryService,
    PointsAward,
)
from settle.config import StoreDefaults
from settle.mapping import ProductMappingResolver
from settle.pricing import resolve_deduct_quantity
from settle.saga import policy as P
from settle.saga._order import OrderTotals, build_order_request, order_totals
from settle.saga._step import SagaStep, from_async, run_step, skip, step
from settle.saga._types import (
    FAILED_STEP_STATE,
    Cancelled,
    Completed,
    CompletionError,
    CreatedButIncomplete,
    FailedStep,
    IncompleteCause,
    InventoryError,
    OrderOutcome,
    PointsError,
    Rejected,
    RejectionCause,
    RemoteRejection,
    SagaState,
    StepRecord,
    StepStatus,
    TransportError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

# Business tolerance for rounding between payment legs and the order total
PAYMENT_TOLERANCE = Decimal("0.02")
ORDER_CREATE_TIMEOUT = 30.0


class CancelSignal(Protocol):
    def is_set(self) -> bool:
        ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _cancelled(cancel: CancelSignal | None) -> bool:
    return cancel is not None and cancel.is_set()


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


# ═══════════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════════


def _amount_ok(value: Decimal | None) -> bool:
    """Absent, or a finite non-negative amount."""
    return value is None or (value.is_finite() and value >= 0)


def validate_cart(
    cart: Sequence[CartLine],
    location_id: int,
    tax: TaxRate | None = None,
) -> Result[None, ValidationError]:
    """Cart and location checks shared by checkout and inventory retries."""
    if not cart:
        return Error(ValidationError("Cart is empty"))
    if location_id <= 0:
        return Error(ValidationError("A valid location is required"))
    for line in cart:
        if line.product_id <= 0:
            return Error(ValidationError(f"{line.name}: invalid product id {line.product_id}"))
        if not (math.isfinite(line.quantity) and line.quantity > 0):
            return Error(ValidationError(f"{line.name}: quantity must be a finite positive number"))
        if not _amount_ok(line.price):
            return Error(ValidationError(f"{line.name}: price must be a finite non-negative amount"))
        if not _amount_ok(line.override_price):
            return Error(ValidationError(f"{line.name}: override price must be a finite non-negative amount"))
        if line.pricing_tier is not None and not _amount_ok(line.pricing_tier.tier_price):
            return Error(ValidationError(f"{line.name}: tier price must be a finite non-negative amount"))
        discount = line.discount_percentage
        if discount is not None and not (discount.is_finite() and Decimal(0) <= discount <= Decimal(100)):
            return Error(ValidationError(f"{line.name}: discount must be between 0 and 100"))
    if tax is not None and not _amount_ok(tax.rate):
        return Error(ValidationError("Tax rate must be a finite non-negative number"))
    return Ok(None)


def validate_checkout(
    cart: Sequence[CartLine],
    payment: PaymentInfo,
    location_id: int,
    tax: TaxRate | None = None,
) -> Result[OrderTotals, ValidationError]:
    """
    Local checks only; never touches the network.

    Payment passes when collected >= total - 0.02.
    """
    match validate_cart(cart, location_id, tax):
        case Error(e):
            return Error(e)
        case Ok(_):
            pass
    if not all(leg.amount.is_finite() for leg in payment.legs):
        return Error(ValidationError("Payment amounts must be finite"))

    totals = order_totals(cart, tax)
    collected = payment.collected
    if collected < totals.total - PAYMENT_TOLERANCE:
        return Error(ValidationError(
            f"Insufficient payment: collected {collected:.2f} of {totals.total:.2f}"
        ))
    return Ok(totals)


# ═══════════════════════════════════════════════════════════════════════════════
# Error classification
# ═══════════════════════════════════════════════════════════════════════════════


def classify_create_error(exc: Exception) -> TransportError | RemoteRejection:
    match exc:
        case BackendRejected():
            return RemoteRejection(exc.message, exc.status)
        case TimeoutError() | httpx.TimeoutException():
            return TransportError("Order creation timed out")
        case _:
            return TransportError(f"Order creation failed: {_describe(exc)}")


# ═══════════════════════════════════════════════════════════════════════════════
# OrderSagaCoordinator
# ═══════════════════════════════════════════════════════════════════════════════


class OrderSagaCoordinator:
    """
    Runs one checkout attempt to a single terminal outcome.

    Collaborators are injected; the coordinator holds no per-checkout state,
    so one instance serves concurrent checkouts.

    Example:
        coordinator = OrderSagaCoordinator(client, inventory, resolver)
        outcome = await coordinator.run(cart, customer, PaymentInfo.single("cash", "20"), 5)

        match outcome:
            case Completed(order_id=oid, points_awarded=pts):
                ...
            case CreatedButIncomplete(order_id=oid, failed_step=FailedStep.INVENTORY):
                ...
            case Rejected(cause=cause):
                ...
    """

    def __init__(
        self,
        backend: CommerceBackend,
        inventory: InventoryService,
        mapping: ProductMappingResolver,
        *,
        store: StoreDefaults | None = None,
        create_timeout: float = ORDER_CREATE_TIMEOUT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._backend = backend
        self._inventory = inventory
        self._mapping = mapping
        self._store = store or StoreDefaults()
        self._create_timeout = create_timeout
        self._clock = clock

    async def run(
        self,
        cart: Sequence[CartLine],
        customer: Customer | None,
        payment: PaymentInfo,
        location_id: int,
        *,
        tax: TaxRate | None = None,
        employee: Employee | None = None,
        cancel: CancelSignal | None = None,
    ) -> OrderOutcome:
        """The only entry point that can create an order."""
        cart = tuple(cart)
        trail: list[StepRecord] = []

        if _cancelled(cancel):
            return self._cancel_before_order(SagaState.VALIDATING, trail)

        async def validate() -> Result[OrderTotals, ValidationError]:
            return validate_checkout(cart, payment, location_id, tax)

        match await run_step(step(SagaState.VALIDATING, LazyCoroResult(validate)), trail):
            case Error(e):
                return self._reject(e, trail)
            case Ok(totals):
                logger.debug("saga.validated", total=str(totals.total), collected=str(payment.collected))

        if _cancelled(cancel):
            return self._cancel_before_order(SagaState.CREATING_ORDER, trail)

        product_ids = [await self._mapping.resolve(line) for line in cart]
        request = build_order_request(
            cart,
            product_ids,
            customer,
            payment,
            location_id,
            now=self._clock(),
            tax=tax,
            employee=employee,
            store=self._store,
        )
        create = from_async(
            SagaState.CREATING_ORDER,
            lambda: self._backend.create_order(request.to_wire()),
            on_error=classify_create_error,
            timeout=P.timeout(seconds=self._create_timeout),
        )

        match await run_step(create, trail):
            case Error(e):
                return self._reject(e, trail)
            case Ok(order_id):
                logger.info("saga.order_created", order_id=order_id, total=str(request.totals.total))
                return await self._finish(
                    order_id, cart, customer, location_id, FailedStep.INVENTORY, trail, cancel
                )

    async def remediate(
        self,
        incomplete: CreatedButIncomplete,
        cart: Sequence[CartLine],
        customer: Customer | None,
        location_id: int,
        *,
        cancel: CancelSignal | None = None,
    ) -> Completed | CreatedButIncomplete:
        """
        Operator-triggered retry of the remaining steps for an existing order.

        Starts at incomplete.failed_step; never creates an order. An
        inventory retry re-checks the cart and location first, so an empty
        or invalid cart cannot complete the order with nothing deducted.
        """
        cart = tuple(cart)
        trail = list(incomplete.trail)
        logger.info(
            "saga.remediate",
            order_id=incomplete.order_id,
            failed_step=incomplete.failed_step.value,
        )

        if incomplete.failed_step is FailedStep.INVENTORY:
            async def validate() -> Result[None, ValidationError]:
                return validate_cart(cart, location_id)

            match await run_step(step(SagaState.VALIDATING, LazyCoroResult(validate)), trail):
                case Error(e):
                    return self._stuck(incomplete.order_id, FailedStep.INVENTORY, e, trail)
                case Ok(_):
                    pass

        return await self._finish(
            incomplete.order_id,
            cart,
            customer,
            location_id,
            incomplete.failed_step,
            trail,
            cancel,
        )

    # ───────────────────────────────────────────────────────────────────────────
    # After the order exists
    # ───────────────────────────────────────────────────────────────────────────

    async def _finish(
        self,
        order_id: int,
        cart: tuple[CartLine, ...],
        customer: Customer | None,
        location_id: int,
        start: FailedStep,
        trail: list[StepRecord],
        cancel: CancelSignal | None,
    ) -> Completed | CreatedButIncomplete:
        with structlog.contextvars.bound_contextvars(order_id=order_id):
            if start is FailedStep.INVENTORY:
                if _cancelled(cancel):
                    return self._cancel_after_order(order_id, FailedStep.INVENTORY, trail)
                match await run_step(self._deduct_step(order_id, cart, location_id), trail):
                    case Error(e):
                        return self._stuck(order_id, FailedStep.INVENTORY, e, trail)
                    case Ok(_):
                        pass

            if _cancelled(cancel):
                return self._cancel_after_order(order_id, FailedStep.COMPLETION, trail)
            match await run_step(self._complete_step(order_id), trail):
                case Error(e):
                    return self._stuck(order_id, FailedStep.COMPLETION, e, trail)
                case Ok(_):
                    pass

            points = await self._award_points(order_id, customer, trail, cancel)
            trail.append(StepRecord(SagaState.DONE, StepStatus.OK))
            logger.info("saga.completed", points_awarded=points)
            return Completed(order_id=order_id, points_awarded=points, trail=tuple(trail))

    def _deduct_step(
        self,
        order_id: int,
        cart: tuple[CartLine, ...],
        location_id: int,
    ) -> SagaStep[InventoryDeductionResult, InventoryError]:
        async def deduct() -> Result[InventoryDeductionResult, InventoryError]:
            # every line must convert before any stock is written
            for line in cart:
                match resolve_deduct_quantity(line):
                    case Error(e):
                        return Error(InventoryError(order_id, str(e)))
                    case Ok(_):
                        pass

            lifted = L.catching_async(
                lambda: self._inventory.deduct_inventory_for_order(cart, location_id, order_id),
                on_error=lambda e: InventoryError(order_id, f"Inventory deduction failed: {_describe(e)}"),
            )
            match await lifted:
                case Ok(result) if result.success:
                    return Ok(result)
                case Ok(result):
                    return Error(InventoryError(
                        order_id,
                        result.error or "Inventory deduction failed",
                        result.lines,
                        result.unrestored,
                    ))
                case Error(e):
                    return Error(e)

        return step(SagaState.DEDUCTING_INVENTORY, LazyCoroResult(deduct))

    def _complete_step(self, order_id: int) -> SagaStep[None, CompletionError]:
        now = self._clock()
        return from_async(
            SagaState.COMPLETING,
            lambda: self._backend.complete_order(order_id, now, now),
            on_error=lambda e: CompletionError(order_id, f"Order completion failed: {_describe(e)}"),
        )

    async def _award_points(
        self,
        order_id: int,
        customer: Customer | None,
        trail: list[StepRecord],
        cancel: CancelSignal | None,
    ) -> int:
        if customer is None or is_guest(customer):
            skip(SagaState.AWARDING_POINTS, trail, "guest customer")
            return 0
        if _cancelled(cancel):
            skip(SagaState.AWARDING_POINTS, trail, "cancelled")
            return 0

        customer_id = customer.id

        async def award() -> Result[int, PointsError]:
            lifted = L.catching_async(
                lambda: self._backend.award_points(order_id, customer_id),
                on_error=lambda e: PointsError(order_id, _describe(e)),
            )
            match await lifted:
                case Ok(PointsAward(success=True, points=points)):
                    return Ok(points)
                case Ok(award_result):
                    return Error(PointsError(order_id, award_result.message or "Points were not awarded"))
                case Error(e):
                    return Error(e)

        points_step = step(SagaState.AWARDING_POINTS, LazyCoroResult(award), P.continue_())
        match await run_step(points_step, trail):
            case Ok(points):
                return points
            case Error(_):
                return 0

    # ───────────────────────────────────────────────────────────────────────────
    # Terminal outcomes
    # ───────────────────────────────────────────────────────────────────────────

    def _reject(self, cause: RejectionCause, trail: list[StepRecord]) -> Rejected:
        logger.warning("saga.rejected", cause=str(cause), kind=type(cause).__name__)
        return Rejected(cause=cause, trail=tuple(trail))

    def _cancel_before_order(self, state: SagaState, trail: list[StepRecord]) -> Rejected:
        skip(state, trail, "cancelled")
        return self._reject(Cancelled(state), trail)

    def _stuck(
        self,
        order_id: int,
        failed_step: FailedStep,
        cause: IncompleteCause,
        trail: list[StepRecord],
    ) -> CreatedButIncomplete:
        logger.error(
            "saga.incomplete",
            order_id=order_id,
            failed_step=failed_step.value,
            cause=str(cause),
        )
        return CreatedButIncomplete(
            order_id=order_id,
            failed_step=failed_step,
            cause=cause,
            trail=tuple(trail),
        )

    def _cancel_after_order(
        self,
        order_id: int,
        failed_step: FailedStep,
        trail: list[StepRecord],
    ) -> CreatedButIncomplete:
        state = FAILED_STEP_STATE[failed_step]
        skip(state, trail, "cancelled")
        return self._stuck(order_id, failed_step, Cancelled(state, order_id), trail)


__all__ = (
    "PAYMENT_TOLERANCE",
    "ORDER_CREATE_TIMEOUT",
    "CancelSignal",
    "validate_cart",
    "validate_checkout",
    "classify_create_error",
    "OrderSagaCoordinator",
)
