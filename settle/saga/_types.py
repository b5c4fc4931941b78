"""
Saga types — states, step records, error values, terminal outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from settle.backend import LineDeduction

# ═══════════════════════════════════════════════════════════════════════════════
# States
# ═══════════════════════════════════════════════════════════════════════════════


class SagaState(StrEnum):
    VALIDATING = "validating"
    CREATING_ORDER = "creating_order"
    DEDUCTING_INVENTORY = "deducting_inventory"
    COMPLETING = "completing"
    AWARDING_POINTS = "awarding_points"
    DONE = "done"


class FailedStep(StrEnum):
    """Where an existing order got stuck."""

    INVENTORY = "inventory"
    COMPLETION = "completion"


FAILED_STEP_STATE = {
    FailedStep.INVENTORY: SagaState.DEDUCTING_INVENTORY,
    FailedStep.COMPLETION: SagaState.COMPLETING,
}


class StepStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"
    IGNORED = "ignored"  # failed under a best-effort policy
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class StepRecord:
    state: SagaState
    status: StepStatus
    detail: str = ""


# ═══════════════════════════════════════════════════════════════════════════════
# Error Values
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ValidationError:
    """Cart or payment rejected locally; nothing was sent."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class TransportError:
    """Timeout or network failure; the backend may not have seen the call."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class RemoteRejection:
    """Backend answered with a non-2xx status or a malformed success body."""

    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class InventoryError:
    """
    Stock was not deducted for the order.

    still_deducted lists lines the ledger kept after a failed restore. When
    it is non-empty the order is partially deducted and re-running the full
    deduction would take those lines twice.
    """

    order_id: int
    message: str
    lines: tuple[LineDeduction, ...] = ()
    still_deducted: tuple[LineDeduction, ...] = ()

    @property
    def partial(self) -> bool:
        return bool(self.still_deducted)

    def __str__(self) -> str:
        if not self.still_deducted:
            return self.message
        return f"{self.message}; still deducted: {describe_deductions(self.still_deducted)}"


def describe_deductions(lines: tuple[LineDeduction, ...]) -> str:
    return ", ".join(f"{line.name} x{line.quantity_deducted:g}" for line in lines)


@dataclass(frozen=True, slots=True)
class CompletionError:
    order_id: int
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class PointsError:
    order_id: int
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class Cancelled:
    """Caller cancelled before `state` ran."""

    state: SagaState
    order_id: int | None = None

    def __str__(self) -> str:
        return f"cancelled before {self.state.value.replace('_', ' ')}"


type RejectionCause = ValidationError | TransportError | RemoteRejection | Cancelled
type IncompleteCause = InventoryError | CompletionError | Cancelled | ValidationError

# ═══════════════════════════════════════════════════════════════════════════════
# Outcomes
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Completed:
    order_id: int
    points_awarded: int = 0
    trail: tuple[StepRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class CreatedButIncomplete:
    """
    The order exists remotely but the saga could not finish.

    Never a success: the operator decides what happens next.
    """

    order_id: int
    failed_step: FailedStep
    cause: IncompleteCause
    trail: tuple[StepRecord, ...] = ()


@dataclass(frozen=True, slots=True)
class Rejected:
    """No remote side effect happened."""

    cause: RejectionCause
    trail: tuple[StepRecord, ...] = ()


type OrderOutcome = Completed | CreatedButIncomplete | Rejected

# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "SagaState",
    "FailedStep",
    "FAILED_STEP_STATE",
    "StepStatus",
    "StepRecord",
    "ValidationError",
    "TransportError",
    "RemoteRejection",
    "InventoryError",
    "describe_deductions",
    "CompletionError",
    "PointsError",
    "Cancelled",
    "RejectionCause",
    "IncompleteCause",
    "Completed",
    "CreatedButIncomplete",
    "Rejected",
    "OrderOutcome",
)
