"""Errors raised by the scheduling core.

None of these are retried internally: a scheduling attempt that raises
returns no schedule at all.
"""

from __future__ import annotations

from typing import Sequence


class SchedulingError(Exception):
    """Base class for all scheduling failures."""


class UnschedulableActivity(SchedulingError):
    """No eligible resource can ever accommodate an activity."""

    def __init__(self, activity_id: str, reason: str) -> None:
        super().__init__(f"Activity {activity_id!r} cannot be scheduled: {reason}")
        self.activity_id = activity_id
        self.reason = reason


class MalformedGenotype(SchedulingError, ValueError):
    """OSV is not a permutation of all activity ids or an MAV index is out of range."""


class DeadlockedPrecedence(SchedulingError):
    """Activities remain unplaced but none of them can become ready."""

    def __init__(self, remaining: Sequence[str]) -> None:
        preview = ", ".join(list(remaining)[:10])
        super().__init__(
            f"Precedence deadlock: {len(remaining)} activities can never become ready ({preview})"
        )
        self.remaining = tuple(remaining)


class InfeasibleSchedule(SchedulingError):
    """A schedule breaks at least one feasibility invariant."""

    def __init__(self, violations: Sequence) -> None:
        first = violations[0].message if violations else "unknown violation"
        super().__init__(f"{len(violations)} violation(s), first: {first}")
        self.violations = tuple(violations)
