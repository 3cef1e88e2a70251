"""Post-hoc feasibility checks for schedules.

``find_violations`` reports every broken invariant instead of stopping at
the first one; ``check_feasible`` turns a non-empty report into an
``InfeasibleSchedule`` error.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import InfeasibleSchedule
from .instance import ProblemInstance
from .models import Assignment, Schedule


class ViolationKind(Enum):
    MISSING = "missing"
    DUPLICATE = "duplicate"
    UNKNOWN = "unknown"
    ELIGIBILITY = "eligibility"
    DURATION = "duration"
    NEGATIVE_START = "negative_start"
    RELEASE = "release"
    PRECEDENCE = "precedence"
    CAPACITY = "capacity"
    SETUP = "setup"
    CALENDAR = "calendar"
    EXCLUSIVE = "exclusive"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    activity_id: Optional[str] = None
    resource_id: Optional[str] = None


def _check_assignments(instance: ProblemInstance, schedule: Schedule) -> list[Violation]:
    out: list[Violation] = []
    counts = Counter(a.activity_id for a in schedule)
    for activity_id, n in sorted(counts.items()):
        if activity_id not in instance.activity_index:
            out.append(Violation(ViolationKind.UNKNOWN, f"Unknown activity {activity_id}", activity_id))
        elif n > 1:
            out.append(
                Violation(ViolationKind.DUPLICATE, f"Activity {activity_id} placed {n} times", activity_id)
            )
    for act in instance.activities:
        if act.id not in counts:
            out.append(Violation(ViolationKind.MISSING, f"Activity {act.id} not placed", act.id))

    for a in schedule:
        i = instance.activity_index.get(a.activity_id)
        if i is None:
            continue
        act = instance.activities[i]
        if a.resource_id not in act.eligible_resources:
            out.append(
                Violation(
                    ViolationKind.ELIGIBILITY,
                    f"Activity {a.activity_id} on non-eligible resource {a.resource_id}",
                    a.activity_id,
                    a.resource_id,
                )
            )
        elif a.end - a.start != act.duration_on(a.resource_id) or a.end <= a.start:
            out.append(
                Violation(
                    ViolationKind.DURATION,
                    f"Activity {a.activity_id} runs [{a.start}, {a.end}) instead of "
                    f"{act.duration_on(a.resource_id)} units",
                    a.activity_id,
                    a.resource_id,
                )
            )
        if a.busy_start < 0:
            out.append(
                Violation(
                    ViolationKind.NEGATIVE_START,
                    f"Activity {a.activity_id} committed from {a.busy_start}",
                    a.activity_id,
                )
            )
        release = instance.task_for(i).release_time
        if a.start < release:
            out.append(
                Violation(
                    ViolationKind.RELEASE,
                    f"Activity {a.activity_id} starts at {a.start} before release {release}",
                    a.activity_id,
                )
            )
    return out


def _check_precedence(instance: ProblemInstance, schedule: Schedule) -> list[Violation]:
    out: list[Violation] = []
    for i, preds in enumerate(instance.predecessors):
        after = schedule.assignment_for(instance.activities[i].id)
        if after is None:
            continue
        for p, delay in preds:
            before = schedule.assignment_for(instance.activities[p].id)
            if before is not None and before.end + delay > after.start:
                out.append(
                    Violation(
                        ViolationKind.PRECEDENCE,
                        f"{after.activity_id} starts at {after.start} before "
                        f"{before.activity_id} ends at {before.end} (+{delay})",
                        after.activity_id,
                    )
                )
    return out


def _check_resources(instance: ProblemInstance, schedule: Schedule) -> list[Violation]:
    out: list[Violation] = []
    for r in instance.resources:
        rows = schedule.for_resource(r.id)
        events = sorted([(a.busy_start, 1) for a in rows] + [(a.end, -1) for a in rows])
        load = 0
        for t, delta in events:
            load += delta
            if load > max(1, r.capacity):
                out.append(
                    Violation(
                        ViolationKind.CAPACITY,
                        f"Resource {r.id} runs {load} activities at {t} (capacity {r.capacity})",
                        resource_id=r.id,
                    )
                )
                break

        lanes: dict[int, list[Assignment]] = {}
        for a in rows:
            lanes.setdefault(a.lane, []).append(a)
        for lane_rows in lanes.values():
            for prev, cur in zip(lane_rows, lane_rows[1:]):
                need = instance.transitions.setup_time(
                    r.id,
                    instance.setup_type[instance.activity_index[prev.activity_id]],
                    instance.setup_type[instance.activity_index[cur.activity_id]],
                )
                if cur.setup < need:
                    out.append(
                        Violation(
                            ViolationKind.SETUP,
                            f"{cur.activity_id} after {prev.activity_id} on {r.id} needs "
                            f"setup {need}, got {cur.setup}",
                            cur.activity_id,
                            r.id,
                        )
                    )

        for a in rows:
            length = a.end - a.busy_start
            if r.calendar.earliest_fit(a.busy_start, length) != a.busy_start:
                out.append(
                    Violation(
                        ViolationKind.CALENDAR,
                        f"{a.activity_id} on {r.id} [{a.busy_start}, {a.end}) "
                        "leaves the working calendar",
                        a.activity_id,
                        r.id,
                    )
                )
    return out


def _check_exclusive(instance: ProblemInstance, schedule: Schedule) -> list[Violation]:
    out: list[Violation] = []
    for i, partners in enumerate(instance.exclusive):
        a = schedule.assignment_for(instance.activities[i].id)
        if a is None:
            continue
        for j in partners:
            if j <= i:
                continue
            b = schedule.assignment_for(instance.activities[j].id)
            if b is not None and a.busy_start < b.end and b.busy_start < a.end:
                out.append(
                    Violation(
                        ViolationKind.EXCLUSIVE,
                        f"Exclusive activities {a.activity_id} and {b.activity_id} overlap",
                        a.activity_id,
                    )
                )
    return out


def find_violations(instance: ProblemInstance, schedule: Schedule) -> list[Violation]:
    """Every feasibility breach of ``schedule`` (empty list = feasible)."""
    return (
        _check_assignments(instance, schedule)
        + _check_precedence(instance, schedule)
        + _check_resources(instance, schedule)
        + _check_exclusive(instance, schedule)
    )


def check_feasible(instance: ProblemInstance, schedule: Schedule) -> bool:
    """Return True for a feasible schedule.

    Raises:
        InfeasibleSchedule: With all violations when any invariant breaks.
    """
    violations = find_violations(instance, schedule)
    if violations:
        raise InfeasibleSchedule(violations)
    return True
