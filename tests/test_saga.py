"""Tests for the checkout saga coordinator."""

import asyncio
from dataclasses import replace
from decimal import Decimal

import httpx
import pytest
from kungfu import LazyCoroResult, Ok, Error

from settle import Customer, PaymentInfo, PaymentLeg, TaxRate
from settle.backend import CatalogProduct, LineDeduction, PointsAward
from settle.saga import (
    Cancelled,
    Completed,
    CompletionError,
    CreatedButIncomplete,
    FailedStep,
    InventoryError,
    OrderSagaCoordinator,
    Rejected,
    RemediationAction,
    RemoteRejection,
    SagaState,
    StepStatus,
    TransportError,
    ValidationError,
    allowed_actions,
    policy as P,
    step,
    validate_checkout,
)

from conftest import FakeBackend, FakeInventory, Flag, make_line, preroll_tier

LOCATION = 5


def states(outcome) -> list[tuple[SagaState, StepStatus]]:
    return [(r.state, r.status) for r in outcome.trail]


# ═══════════════════════════════════════════════════════════════════════════════
# Validating
# ═══════════════════════════════════════════════════════════════════════════════


async def test_empty_cart_is_rejected(coordinator, backend, inventory):
    outcome = await coordinator.run([], None, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, Rejected)
    assert isinstance(outcome.cause, ValidationError)
    assert backend.calls == 0 and inventory.calls == []


@pytest.mark.parametrize(
    "collected, total",
    [("9.97", "10.00"), ("0.00", "0.03"), ("17.00", "18.00")],
)
async def test_underpayment_is_rejected_without_network(coordinator, backend, inventory, catalog, collected, total):
    cart = [make_line(price=total)]

    outcome = await coordinator.run(cart, None, PaymentInfo.single("card", collected), LOCATION)

    assert isinstance(outcome, Rejected)
    assert "Insufficient payment" in str(outcome.cause)
    assert backend.calls == 0
    assert inventory.calls == []
    assert catalog.searches == []


def test_two_cent_tolerance_is_inclusive():
    cart = [make_line(price="10.00")]

    assert isinstance(validate_checkout(cart, PaymentInfo.single("card", "9.98"), LOCATION), Ok)
    assert isinstance(validate_checkout(cart, PaymentInfo.single("card", "9.97"), LOCATION), Error)


async def test_split_legs_are_summed(coordinator, backend):
    payment = PaymentInfo.split(PaymentLeg("cash", Decimal("10.00")), PaymentLeg("card", Decimal("9.99")))

    outcome = await coordinator.run([make_line(price="20.00")], None, payment, LOCATION)

    assert isinstance(outcome, Completed)
    assert len(backend.created) == 1


@pytest.mark.parametrize(
    "line",
    [
        make_line(product_id=0),
        make_line(quantity=0),
        make_line(price="-1.00"),
        make_line(override_price=Decimal("-0.01")),
        make_line(discount_percentage=Decimal("101")),
        make_line(discount_percentage=Decimal("-5")),
        make_line(quantity=float("inf")),
        make_line(quantity=float("nan")),
        make_line(price="Infinity"),
        make_line(override_price=Decimal("NaN")),
        make_line(discount_percentage=Decimal("NaN")),
        make_line(pricing_tier=replace(preroll_tier(), tier_price=Decimal("Infinity"))),
    ],
)
async def test_invalid_lines_are_rejected(coordinator, backend, line):
    outcome = await coordinator.run([line], None, PaymentInfo.single("cash", "100"), LOCATION)

    assert isinstance(outcome, Rejected)
    assert backend.calls == 0


async def test_invalid_location_is_rejected(coordinator, backend):
    outcome = await coordinator.run([make_line()], None, PaymentInfo.single("cash", "100"), 0)

    assert isinstance(outcome, Rejected)
    assert backend.calls == 0


async def test_non_finite_payment_is_rejected(coordinator, backend):
    outcome = await coordinator.run([make_line()], None, PaymentInfo.single("cash", "Infinity"), LOCATION)

    assert isinstance(outcome, Rejected)
    assert "finite" in str(outcome.cause)
    assert backend.calls == 0


async def test_non_finite_tax_rate_is_rejected(coordinator, backend):
    outcome = await coordinator.run(
        [make_line()], None, PaymentInfo.single("cash", "100"), LOCATION, tax=TaxRate(Decimal("NaN"))
    )

    assert isinstance(outcome, Rejected)
    assert backend.calls == 0


async def test_exact_discounted_payment_proceeds_to_order_creation(coordinator, backend):
    cart = [make_line(price="10.00", quantity=2, discount_percentage=Decimal("10"))]

    outcome = await coordinator.run(cart, None, PaymentInfo.single("cash", "18.00"), LOCATION)

    assert isinstance(outcome, Completed)
    assert len(backend.created) == 1
    meta = {kv["key"]: kv["value"] for kv in backend.created[0]["meta_data"]}
    assert meta["_total"] == "18.00"
    assert meta["_change_given"] == "0.00"


# ═══════════════════════════════════════════════════════════════════════════════
# Creating order
# ═══════════════════════════════════════════════════════════════════════════════


async def test_create_rejection_is_rejected(coordinator, backend, inventory, bad_request):
    backend.create_error = bad_request

    outcome = await coordinator.run([make_line()], None, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, Rejected)
    assert isinstance(outcome.cause, RemoteRejection)
    assert outcome.cause.status == 500
    assert inventory.calls == [] and backend.completed == []


async def test_create_transport_error_is_rejected(coordinator, backend, inventory):
    backend.create_error = httpx.ConnectError("connection refused")

    outcome = await coordinator.run([make_line()], None, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, Rejected)
    assert isinstance(outcome.cause, TransportError)
    assert inventory.calls == []


async def test_create_timeout_is_rejected(inventory, resolver):
    class SlowBackend(FakeBackend):
        async def create_order(self, payload):
            await asyncio.sleep(1)
            return 1

    coordinator = OrderSagaCoordinator(SlowBackend(), inventory, resolver, create_timeout=0.01)

    outcome = await coordinator.run([make_line()], None, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, Rejected)
    assert outcome.cause == TransportError("Order creation timed out")
    assert inventory.calls == []


async def test_payload_uses_resolved_backend_ids(coordinator, backend, catalog):
    catalog.products["Gelato"] = [CatalogProduct(id=8080, name="Gelato")]
    cart = [make_line(product_id=1, name="Gelato"), make_line(product_id=2, name="Unlisted")]

    await coordinator.run(cart, None, PaymentInfo.single("cash", "20"), LOCATION)

    assert [item["product_id"] for item in backend.created[0]["line_items"]] == [8080, 2]


# ═══════════════════════════════════════════════════════════════════════════════
# After the order exists
# ═══════════════════════════════════════════════════════════════════════════════


async def test_inventory_failure_never_completes(coordinator, backend, inventory, member):
    inventory.fail_with = "Failed to deduct inventory for Blue Dream: ledger locked"

    outcome = await coordinator.run([make_line()], member, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.order_id == 9001
    assert outcome.failed_step is FailedStep.INVENTORY
    assert isinstance(outcome.cause, InventoryError)
    assert outcome.cause.order_id == 9001
    assert len(backend.completed) == 0
    assert backend.awarded == []


async def test_inventory_exception_is_incomplete(coordinator, backend, inventory):
    inventory.raise_error = httpx.ReadTimeout("stock ledger timed out")

    outcome = await coordinator.run([make_line()], None, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.failed_step is FailedStep.INVENTORY
    assert "stock ledger timed out" in str(outcome.cause)
    assert backend.completed == []


async def test_bad_conversion_ratio_fails_inventory_without_stock_calls(coordinator, backend, inventory):
    line = make_line(quantity=3.5, pricing_tier=preroll_tier(input_amount=0))

    outcome = await coordinator.run([line], None, PaymentInfo.single("cash", "100"), LOCATION)

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.failed_step is FailedStep.INVENTORY
    assert inventory.calls == []
    assert backend.completed == []


async def test_completion_failure_is_incomplete(coordinator, backend, inventory, member):
    backend.complete_error = httpx.HTTPStatusError(
        "502 Bad Gateway",
        request=httpx.Request("PUT", "http://pos.test/orders/9001"),
        response=httpx.Response(502),
    )

    outcome = await coordinator.run([make_line()], member, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.failed_step is FailedStep.COMPLETION
    assert isinstance(outcome.cause, CompletionError)
    assert len(inventory.calls) == 1
    assert backend.awarded == []


async def test_member_checkout_awards_points(coordinator, backend, inventory, member):
    outcome = await coordinator.run([make_line()], member, PaymentInfo.single("cash", "10"), LOCATION)

    assert outcome == Completed(order_id=9001, points_awarded=18, trail=outcome.trail)
    assert backend.awarded == [(9001, 42)]
    assert inventory.calls[0][1:] == (LOCATION, 9001)
    assert states(outcome) == [
        (SagaState.VALIDATING, StepStatus.OK),
        (SagaState.CREATING_ORDER, StepStatus.OK),
        (SagaState.DEDUCTING_INVENTORY, StepStatus.OK),
        (SagaState.COMPLETING, StepStatus.OK),
        (SagaState.AWARDING_POINTS, StepStatus.OK),
        (SagaState.DONE, StepStatus.OK),
    ]


@pytest.mark.parametrize("customer", [None, Customer(id=0), Customer(id=-1, name="Walk In")])
async def test_guest_checkout_never_calls_points(coordinator, backend, customer):
    outcome = await coordinator.run([make_line()], customer, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, Completed)
    assert outcome.points_awarded == 0
    assert backend.awarded == []
    assert (SagaState.AWARDING_POINTS, StepStatus.SKIPPED) in states(outcome)


async def test_points_failure_never_changes_outcome(coordinator, backend, member):
    backend.points_error = httpx.ConnectError("points ledger down")

    outcome = await coordinator.run([make_line()], member, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, Completed)
    assert outcome.points_awarded == 0
    assert (SagaState.AWARDING_POINTS, StepStatus.IGNORED) in states(outcome)


async def test_unsuccessful_points_response_awards_zero(coordinator, backend, member):
    backend.points = PointsAward(success=False, points=0, message="customer not enrolled")

    outcome = await coordinator.run([make_line()], member, PaymentInfo.single("cash", "10"), LOCATION)

    assert isinstance(outcome, Completed)
    assert outcome.points_awarded == 0


async def test_steps_run_strictly_in_order(backend, resolver):
    events: list[str] = []

    class RecordingBackend(FakeBackend):
        async def create_order(self, payload):
            events.append("create")
            return await super().create_order(payload)

        async def complete_order(self, order_id, date_paid, date_completed):
            events.append("complete")
            await super().complete_order(order_id, date_paid, date_completed)

        async def award_points(self, order_id, customer_id):
            events.append("points")
            return await super().award_points(order_id, customer_id)

    class RecordingInventory(FakeInventory):
        async def deduct_inventory_for_order(self, lines, location_id, order_id):
            events.append("inventory")
            return await super().deduct_inventory_for_order(lines, location_id, order_id)

    coordinator = OrderSagaCoordinator(RecordingBackend(), RecordingInventory(), resolver)

    await coordinator.run([make_line()], Customer(id=7, name="Sam"), PaymentInfo.single("card", "10"), LOCATION)

    assert events == ["create", "inventory", "complete", "points"]


# ═══════════════════════════════════════════════════════════════════════════════
# Cancellation
# ═══════════════════════════════════════════════════════════════════════════════


async def test_cancel_before_start_is_rejected(coordinator, backend):
    cancel = asyncio.Event()
    cancel.set()

    outcome = await coordinator.run([make_line()], None, PaymentInfo.single("cash", "10"), LOCATION, cancel=cancel)

    assert isinstance(outcome, Rejected)
    assert outcome.cause == Cancelled(SagaState.VALIDATING)
    assert backend.calls == 0


async def test_cancel_before_order_creation_is_rejected(coordinator, backend):
    outcome = await coordinator.run(
        [make_line()], None, PaymentInfo.single("cash", "10"), LOCATION, cancel=Flag(after=1)
    )

    assert isinstance(outcome, Rejected)
    assert outcome.cause == Cancelled(SagaState.CREATING_ORDER)
    assert backend.created == []


async def test_cancel_after_order_creation_is_incomplete(coordinator, backend, inventory):
    outcome = await coordinator.run(
        [make_line()], None, PaymentInfo.single("cash", "10"), LOCATION, cancel=Flag(after=2)
    )

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.order_id == 9001
    assert outcome.failed_step is FailedStep.INVENTORY
    assert outcome.cause == Cancelled(SagaState.DEDUCTING_INVENTORY, 9001)
    assert inventory.calls == []


async def test_cancel_before_completion_is_incomplete(coordinator, backend, inventory):
    outcome = await coordinator.run(
        [make_line()], None, PaymentInfo.single("cash", "10"), LOCATION, cancel=Flag(after=3)
    )

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.failed_step is FailedStep.COMPLETION
    assert len(inventory.calls) == 1
    assert backend.completed == []


async def test_cancel_before_points_keeps_order_completed(coordinator, backend, inventory, member):
    outcome = await coordinator.run(
        [make_line()], member, PaymentInfo.single("cash", "10"), LOCATION, cancel=Flag(after=4)
    )

    assert isinstance(outcome, Completed)
    assert outcome.points_awarded == 0
    assert backend.awarded == []
    assert len(backend.completed) == 1
    assert len(inventory.calls) == 1
    skipped = [r for r in outcome.trail if r.state is SagaState.AWARDING_POINTS]
    assert [(r.status, r.detail) for r in skipped] == [(StepStatus.SKIPPED, "cancelled")]
    assert states(outcome)[-1] == (SagaState.DONE, StepStatus.OK)


# ═══════════════════════════════════════════════════════════════════════════════
# Remediation
# ═══════════════════════════════════════════════════════════════════════════════


async def test_remediate_inventory_runs_remaining_steps(coordinator, backend, inventory, member):
    inventory.fail_with = "ledger locked"
    cart = [make_line()]
    stuck = await coordinator.run(cart, member, PaymentInfo.single("cash", "10"), LOCATION)
    assert isinstance(stuck, CreatedButIncomplete)

    inventory.fail_with = None
    outcome = await coordinator.remediate(stuck, cart, member, LOCATION)

    assert isinstance(outcome, Completed)
    assert outcome.order_id == 9001
    assert len(backend.created) == 1
    assert len(inventory.calls) == 2
    assert len(backend.completed) == 1
    assert outcome.points_awarded == 18


async def test_remediate_completion_skips_inventory(coordinator, backend, inventory):
    backend.complete_error = httpx.ConnectError("down")
    cart = [make_line()]
    stuck = await coordinator.run(cart, None, PaymentInfo.single("cash", "10"), LOCATION)
    assert isinstance(stuck, CreatedButIncomplete) and stuck.failed_step is FailedStep.COMPLETION

    backend.complete_error = None
    outcome = await coordinator.remediate(stuck, cart, None, LOCATION)

    assert isinstance(outcome, Completed)
    assert len(inventory.calls) == 1
    assert len(backend.completed) == 2
    assert len(backend.created) == 1


async def test_remediate_failure_stays_incomplete(coordinator, backend, inventory):
    backend.complete_error = httpx.ConnectError("down")
    cart = [make_line()]
    stuck = await coordinator.run(cart, None, PaymentInfo.single("cash", "10"), LOCATION)

    outcome = await coordinator.remediate(stuck, cart, None, LOCATION)

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.order_id == stuck.order_id
    assert outcome.failed_step is FailedStep.COMPLETION


@pytest.mark.parametrize("cart, location_id", [([], LOCATION), ([make_line()], 0), ([make_line(quantity=0)], LOCATION)])
async def test_remediate_inventory_rechecks_cart(coordinator, backend, inventory, cart, location_id):
    stuck = CreatedButIncomplete(9001, FailedStep.INVENTORY, InventoryError(9001, "ledger locked"))

    outcome = await coordinator.remediate(stuck, cart, None, location_id)

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.failed_step is FailedStep.INVENTORY
    assert isinstance(outcome.cause, ValidationError)
    assert states(outcome) == [(SagaState.VALIDATING, StepStatus.FAILED)]
    assert inventory.calls == []
    assert backend.completed == []


async def test_partial_deduction_is_reported_without_retry(coordinator, backend, inventory):
    kept = LineDeduction(product_id=101, name="Blue Dream", quantity_sold=2, quantity_deducted=2, success=True)
    inventory.fail_with = "Failed to deduct inventory for Gelato: ledger down"
    inventory.still_deducted = (kept,)

    outcome = await coordinator.run([make_line(quantity=2)], None, PaymentInfo.single("cash", "20"), LOCATION)

    assert isinstance(outcome, CreatedButIncomplete)
    assert outcome.cause.still_deducted == (kept,)
    assert RemediationAction.RETRY_INVENTORY not in allowed_actions(outcome)
    assert backend.completed == []


async def test_tax_is_added_to_total(coordinator, backend):
    cart = [make_line(price="10.00")]

    short = await coordinator.run(cart, None, PaymentInfo.single("card", "10.00"), LOCATION, tax=TaxRate(Decimal("0.07")))
    paid = await coordinator.run(cart, None, PaymentInfo.single("card", "10.70"), LOCATION, tax=TaxRate(Decimal("0.07")))

    assert isinstance(short, Rejected)
    assert isinstance(paid, Completed)
    assert backend.created[0]["tax_lines"][0]["tax_total"] == "0.70"


# ═══════════════════════════════════════════════════════════════════════════════
# Step policies
# ═══════════════════════════════════════════════════════════════════════════════


def test_steps_abort_unless_marked_best_effort():
    async def noop():
        return Ok(None)

    assert step(SagaState.COMPLETING, LazyCoroResult(noop)).policy == P.abort()
    assert not step(SagaState.COMPLETING, LazyCoroResult(noop)).best_effort
    assert step(SagaState.AWARDING_POINTS, LazyCoroResult(noop), P.continue_()).best_effort
