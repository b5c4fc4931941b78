"""
Step policies.

Namespace: S.policy.*

Examples:
    S.step(state, action, S.policy.continue_())
    S.from_async(state, action, on_error, timeout=S.policy.timeout(seconds=30))
"""

from __future__ import annotations

from settle.saga.policy._timeout import TimeoutPolicy, timeout
from settle.saga.policy._on_failure import (
    AbortPolicy,
    ContinuePolicy,
    FailurePolicy,
    abort,
    continue_,
)

__all__ = (
    "timeout",
    "abort",
    "continue_",
    "TimeoutPolicy",
    "AbortPolicy",
    "ContinuePolicy",
    "FailurePolicy",
)
