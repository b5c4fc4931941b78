"""
On-failure policies.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ContinuePolicy:
    """Log the failure and keep going (best-effort step)."""
    pass


def continue_() -> ContinuePolicy:
    """Continue on failure."""
    return ContinuePolicy()


@dataclass(frozen=True, slots=True)
class AbortPolicy:
    """Stop the saga at this step."""
    pass


def abort() -> AbortPolicy:
    """Abort on failure."""
    return AbortPolicy()


type FailurePolicy = AbortPolicy | ContinuePolicy


__all__ = ("ContinuePolicy", "continue_", "AbortPolicy", "abort", "FailurePolicy")
