"""
Saga — the checkout completion state machine.

    from settle import saga as S

    coordinator = S.OrderSagaCoordinator(client, inventory, resolver)
    outcome = await coordinator.run(cart, customer, payment, location_id)
    print(S.operator_message(outcome))
"""

from __future__ import annotations

from settle.saga._types import (
    SagaState,
    FailedStep,
    StepStatus,
    StepRecord,
    ValidationError,
    TransportError,
    RemoteRejection,
    InventoryError,
    CompletionError,
    PointsError,
    Cancelled,
    Completed,
    CreatedButIncomplete,
    Rejected,
    OrderOutcome,
)
from settle.saga._order import (
    OrderTotals,
    order_totals,
    Address,
    TaxLine,
    AuditTags,
    OrderRequest,
    build_order_request,
)
from settle.saga._step import SagaStep, step, from_async, run_step
from settle.saga._run import (
    PAYMENT_TOLERANCE,
    CancelSignal,
    validate_cart,
    validate_checkout,
    classify_create_error,
    OrderSagaCoordinator,
)
from settle.saga._messages import RemediationAction, allowed_actions, operator_message
from settle.saga import policy

__all__ = (
    "SagaState",
    "FailedStep",
    "StepStatus",
    "StepRecord",
    "ValidationError",
    "TransportError",
    "RemoteRejection",
    "InventoryError",
    "CompletionError",
    "PointsError",
    "Cancelled",
    "Completed",
    "CreatedButIncomplete",
    "Rejected",
    "OrderOutcome",
    "OrderTotals",
    "order_totals",
    "Address",
    "TaxLine",
    "AuditTags",
    "OrderRequest",
    "build_order_request",
    "SagaStep",
    "step",
    "from_async",
    "run_step",
    "PAYMENT_TOLERANCE",
    "CancelSignal",
    "validate_cart",
    "validate_checkout",
    "classify_create_error",
    "OrderSagaCoordinator",
    "RemediationAction",
    "allowed_actions",
    "operator_message",
    "policy",
)
