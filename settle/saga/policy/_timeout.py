"""
Timeout policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True, slots=True)
class TimeoutPolicy:
    """Upper bound for a single step."""
    duration: timedelta

    @property
    def seconds(self) -> float:
        return self.duration.total_seconds()


def timeout(seconds: float | None = None, duration: timedelta | None = None) -> TimeoutPolicy:
    """
    Bound a step.

    Example:
        S.policy.timeout(seconds=30)
        S.policy.timeout(duration=timedelta(minutes=1))
    """
    if duration is not None:
        return TimeoutPolicy(duration)
    if seconds is not None:
        return TimeoutPolicy(timedelta(seconds=seconds))
    raise ValueError("Must provide seconds or duration")


__all__ = ("TimeoutPolicy", "timeout")
