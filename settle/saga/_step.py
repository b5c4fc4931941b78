"""
Saga steps — one remote call, its failure policy, its trail record.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog
from combinators import lift as L
from kungfu import LazyCoroResult, Result, Ok, Error

from settle.saga._types import SagaState, StepRecord, StepStatus
from settle.saga.policy import ContinuePolicy, FailurePolicy, TimeoutPolicy, abort

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    A single saga step: the action plus how its failure is treated.

    AbortPolicy failures end the saga; ContinuePolicy failures are recorded
    as ignored and the caller carries on.
    """

    state: SagaState
    action: LazyCoroResult[T, E]
    policy: FailurePolicy = field(default_factory=abort)

    @property
    def best_effort(self) -> bool:
        return isinstance(self.policy, ContinuePolicy)


# ═══════════════════════════════════════════════════════════════════════════════
# step() / from_async()
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    state: SagaState,
    action: LazyCoroResult[T, E],
    policy: FailurePolicy | None = None,
) -> SagaStep[T, E]:
    """
    Create a step from an action that already yields a Result.

    Example:
        S.step(
            SagaState.DEDUCTING_INVENTORY,
            LazyCoroResult(deduct),
        )
    """
    return SagaStep(state=state, action=action, policy=policy or abort())


def from_async[T, E](
    state: SagaState,
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    policy: FailurePolicy | None = None,
    timeout: TimeoutPolicy | None = None,
) -> SagaStep[T, E]:
    """
    Create step from async callable with error handling.

    A timeout surfaces as TimeoutError through on_error.

    Example:
        S.from_async(
            SagaState.CREATING_ORDER,
            lambda: backend.create_order(payload),
            on_error=classify_create_error,
            timeout=S.policy.timeout(seconds=30),
        )
    """
    if timeout is not None:
        action = _bounded(action, timeout)
    return step(state, L.catching_async(action, on_error=on_error), policy)


def _bounded[T](
    action: Callable[[], Awaitable[T]],
    policy: TimeoutPolicy,
) -> Callable[[], Awaitable[T]]:
    async def run() -> T:
        async with asyncio.timeout(policy.seconds):
            return await action()

    return run


# ═══════════════════════════════════════════════════════════════════════════════
# run_step()
# ═══════════════════════════════════════════════════════════════════════════════


async def run_step[T, E](
    saga_step: SagaStep[T, E],
    trail: list[StepRecord],
) -> Result[T, E]:
    """Execute a step and append its record to the trail."""
    logger.info("saga.transition", state=saga_step.state.value)
    result = await saga_step.action
    match result:
        case Ok(value):
            trail.append(StepRecord(saga_step.state, StepStatus.OK))
            return Ok(value)
        case Error(e):
            if saga_step.best_effort:
                trail.append(StepRecord(saga_step.state, StepStatus.IGNORED, str(e)))
                logger.warning("saga.step_ignored", state=saga_step.state.value, error=str(e))
            else:
                trail.append(StepRecord(saga_step.state, StepStatus.FAILED, str(e)))
                logger.error("saga.step_failed", state=saga_step.state.value, error=str(e))
            return Error(e)


def skip(state: SagaState, trail: list[StepRecord], detail: str) -> None:
    logger.info("saga.step_skipped", state=state.value, reason=detail)
    trail.append(StepRecord(state, StepStatus.SKIPPED, detail))


__all__ = ("SagaStep", "step", "from_async", "run_step", "skip")
