"""
Operator-facing rendering of outcomes.

Each incomplete step gets its own text because the fix differs: an
inventory failure needs the deduction re-run, a completion failure only
needs the status flip. A partially deducted order needs stock corrected by
hand first, so no retry is offered for it.
"""

from __future__ import annotations

from enum import StrEnum

from settle.saga._types import (
    Cancelled,
    Completed,
    CreatedButIncomplete,
    FailedStep,
    InventoryError,
    OrderOutcome,
    Rejected,
    describe_deductions,
)


class RemediationAction(StrEnum):
    PAY = "pay"
    RETRY_INVENTORY = "retry_inventory"
    RETRY_COMPLETION = "retry_completion"


def allowed_actions(outcome: OrderOutcome) -> frozenset[RemediationAction]:
    """PAY is only ever offered while no order exists."""
    match outcome:
        case Rejected():
            return frozenset({RemediationAction.PAY})
        case CreatedButIncomplete(cause=InventoryError(still_deducted=kept)) if kept:
            return frozenset()
        case CreatedButIncomplete(failed_step=FailedStep.INVENTORY):
            return frozenset({RemediationAction.RETRY_INVENTORY})
        case CreatedButIncomplete(failed_step=FailedStep.COMPLETION):
            return frozenset({RemediationAction.RETRY_COMPLETION})
        case _:
            return frozenset()


def operator_message(outcome: OrderOutcome) -> str:
    match outcome:
        case Completed(order_id=order_id, points_awarded=points) if points > 0:
            return f"Order #{order_id} completed. {points} points awarded."
        case Completed(order_id=order_id):
            return f"Order #{order_id} completed."
        case CreatedButIncomplete(
            order_id=order_id,
            cause=InventoryError(message=message, still_deducted=kept),
        ) if kept:
            return (
                f"Order #{order_id} was created but inventory was only PARTIALLY deducted ({message}). "
                f"Still deducted: {describe_deductions(kept)}. "
                "Correct those stock levels by hand before any retry; "
                "do not take payment again."
            )
        case CreatedButIncomplete(order_id=order_id, failed_step=FailedStep.INVENTORY, cause=cause):
            return (
                f"Order #{order_id} was created but inventory was NOT deducted ({cause}). "
                "The order is still in processing. Retry the inventory deduction; "
                "do not take payment again."
            )
        case CreatedButIncomplete(order_id=order_id, failed_step=FailedStep.COMPLETION, cause=cause):
            return (
                f"Order #{order_id} was created and inventory WAS deducted, "
                f"but the order could not be marked completed ({cause}). "
                "Only the completion remains; do not deduct stock or take payment again."
            )
        case Rejected(cause=Cancelled()):
            return "Checkout cancelled. No order was created."
        case Rejected(cause=cause):
            return f"Checkout failed: {cause}. No order was created."
        case _:
            raise TypeError(f"unknown outcome: {outcome!r}")


__all__ = ("RemediationAction", "allowed_actions", "operator_message")
