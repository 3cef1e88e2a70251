"""Core data structures for machine scheduling problems.

This module defines the immutable domain model:
    TimeWindow       -- half-open working interval ``[start, end)``.
    Calendar         -- working windows minus blocked periods.
    Resource         -- machine (capacity 1) or pooled resource (capacity N).
    Activity         -- one operation with eligible resources and predecessors.
    Task             -- a job: weighted, optionally due, made of activities.
    Constraint       -- precedence or resource-exclusivity edge.
    TransitionMatrix -- sequence-dependent setup durations.
    Assignment       -- one placed activity.
    Schedule         -- set of assignments produced by a scheduling run.

All times are integers on a single axis starting at 0. The caller decides
what one unit means (minutes, milliseconds, ...).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Iterable, Mapping, Optional, Sequence

INFINITY = math.inf


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` on the time axis."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    def contains(self, time: float) -> bool:
        return self.start <= time < self.end

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.start < other.end and other.start < self.end


def _merge(windows: Iterable[TimeWindow]) -> list[TimeWindow]:
    merged: list[TimeWindow] = []
    for w in sorted(windows, key=lambda w: (w.start, w.end)):
        if w.end <= w.start:
            continue
        if merged and w.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = TimeWindow(last.start, max(last.end, w.end))
        else:
            merged.append(w)
    return merged


@dataclass(frozen=True)
class Calendar:
    """Availability pattern of a resource.

    A time point is working iff it lies inside one of ``windows`` and inside
    none of ``blocked``. An empty ``windows`` tuple means the resource is
    always open (apart from blocked periods).

    Attributes:
        windows: Working windows; overlapping or touching ones are merged.
        blocked: Periods that override working windows (maintenance etc.).
    """

    windows: tuple[TimeWindow, ...] = ()
    blocked: tuple[TimeWindow, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "windows", tuple(self.windows))
        object.__setattr__(self, "blocked", tuple(self.blocked))

    @classmethod
    def from_pairs(
        cls,
        windows: Iterable[tuple[float, float]] = (),
        blocked: Iterable[tuple[float, float]] = (),
    ) -> "Calendar":
        return cls(
            windows=tuple(TimeWindow(s, e) for s, e in windows),
            blocked=tuple(TimeWindow(s, e) for s, e in blocked),
        )

    @cached_property
    def _working(self) -> tuple[TimeWindow, ...]:
        base = _merge(self.windows) if self.windows else [TimeWindow(0, INFINITY)]
        blocked = _merge(self.blocked)
        result: list[TimeWindow] = []
        for w in base:
            pieces = [w]
            for b in blocked:
                next_pieces: list[TimeWindow] = []
                for p in pieces:
                    if not p.overlaps(b):
                        next_pieces.append(p)
                        continue
                    if p.start < b.start:
                        next_pieces.append(TimeWindow(p.start, b.start))
                    if b.end < p.end:
                        next_pieces.append(TimeWindow(b.end, p.end))
                pieces = next_pieces
            result.extend(pieces)
        return tuple(result)

    def working_windows(self) -> tuple[TimeWindow, ...]:
        """Return sorted, disjoint working windows (the last may end at infinity)."""
        return self._working

    @property
    def always_open(self) -> bool:
        return not self.windows and not self.blocked

    def is_working(self, time: float) -> bool:
        return any(w.contains(time) for w in self._working)

    def next_available(self, time: float) -> Optional[float]:
        """First working instant at or after ``time`` (None when there is none)."""
        for w in self._working:
            if w.end > time:
                return max(time, w.start)
        return None

    def earliest_fit(
        self,
        lower: float,
        length: float,
        horizon: Optional[float] = None,
    ) -> Optional[float]:
        """Earliest start ``s >= lower`` such that ``[s, s + length)`` is working.

        The whole interval must lie inside a single working window; an
        activity is never split across a calendar gap.

        Args:
            lower: Earliest admissible start.
            length: Length of the block to place (setup + processing).
            horizon: Optional upper bound for the block end.

        Returns:
            The start time, or None when no window before ``horizon`` fits.
        """
        for w in self._working:
            if w.end <= lower:
                continue
            start = max(lower, w.start)
            if horizon is not None and start + length > horizon:
                return None
            if start + length <= w.end:
                return start
        return None

    def available_time(self, start: float, end: float) -> float:
        """Working time inside ``[start, end)``."""
        if end <= start:
            return 0
        total = 0
        for w in self._working:
            lo = max(start, w.start)
            hi = min(end, w.end)
            if hi > lo:
                total += hi - lo
        return total


@dataclass(frozen=True)
class Resource:
    """A machine (capacity 1) or a pool of identical units (capacity N)."""

    id: str
    capacity: int = 1
    calendar: Calendar = field(default_factory=Calendar)
    name: str = ""


@dataclass(frozen=True)
class Activity:
    """Single operation of a task.

    Attributes:
        id: Unique activity identifier.
        processing_time: Nominal duration (used on resources without an
            override and by the dispatching rules).
        eligible_resources: Resource ids in preference order. One id for
            fixed job-shop, several for flexible job-shop.
        predecessors: Ids of activities that must finish first.
        activity_type: Setup category; falls back to the task category.
        resource_times: Per-resource duration overrides.
    """

    id: str
    processing_time: int
    eligible_resources: tuple[str, ...] = ()
    predecessors: tuple[str, ...] = ()
    activity_type: Optional[str] = None
    resource_times: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "eligible_resources", tuple(self.eligible_resources))
        object.__setattr__(self, "predecessors", tuple(self.predecessors))
        object.__setattr__(self, "resource_times", dict(self.resource_times))

    def duration_on(self, resource_id: str) -> int:
        return self.resource_times.get(resource_id, self.processing_time)


@dataclass(frozen=True)
class Task:
    """A job made of precedence-linked activities.

    Attributes:
        id: Unique task identifier.
        activities: Activities owned by the task.
        due_date: Desired completion time (None = no due date).
        weight: Priority weight (higher = more important).
        release_time: Earliest start of the task's root activities.
        category: Default setup type for activities without one.
    """

    id: str
    activities: tuple[Activity, ...] = ()
    due_date: Optional[int] = None
    weight: float = 1.0
    release_time: int = 0
    category: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "activities", tuple(self.activities))

    @classmethod
    def chain(cls, id: str, activities: Sequence[Activity], **kwargs) -> "Task":
        """Build a task whose activities run one after another in the given order."""
        linked: list[Activity] = []
        for i, act in enumerate(activities):
            if i > 0 and activities[i - 1].id not in act.predecessors:
                act = replace(act, predecessors=(activities[i - 1].id,) + act.predecessors)
            linked.append(act)
        return cls(id=id, activities=tuple(linked), **kwargs)

    @property
    def total_processing_time(self) -> int:
        return sum(a.processing_time for a in self.activities)

    @property
    def activity_count(self) -> int:
        return len(self.activities)


class ConstraintKind(Enum):
    PRECEDENCE = "precedence"
    EXCLUSIVE = "exclusive"


@dataclass(frozen=True)
class Constraint:
    """Edge between two activities.

    PRECEDENCE: ``end(first) + min_delay <= start(second)``.
    EXCLUSIVE: the committed intervals of both activities never overlap.
    """

    kind: ConstraintKind
    first: str
    second: str
    min_delay: int = 0

    @classmethod
    def precedence(cls, before: str, after: str, min_delay: int = 0) -> "Constraint":
        return cls(ConstraintKind.PRECEDENCE, before, after, min_delay)

    @classmethod
    def exclusive(cls, a: str, b: str) -> "Constraint":
        return cls(ConstraintKind.EXCLUSIVE, a, b)


@dataclass(frozen=True)
class TransitionMatrix:
    """Sequence-dependent setup times keyed by ``(resource, from_type, to_type)``.

    A missing entry means zero setup, unless the resource has a default in
    ``defaults``; that default applies only when the two types differ.
    """

    entries: Mapping[tuple[str, str, str], int] = field(default_factory=dict)
    defaults: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_entries(
        cls,
        entries: Iterable[tuple[str, str, str, int]],
        defaults: Optional[Mapping[str, int]] = None,
    ) -> "TransitionMatrix":
        return cls(
            entries={(r, a, b): t for r, a, b, t in entries},
            defaults=dict(defaults or {}),
        )

    def setup_time(self, resource_id: str, from_type: Optional[str], to_type: str) -> int:
        if from_type is None:
            return 0
        explicit = self.entries.get((resource_id, from_type, to_type))
        if explicit is not None:
            return explicit
        if from_type == to_type:
            return 0
        return self.defaults.get(resource_id, 0)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class Assignment:
    """Placed activity.

    Fields:
        activity_id: Activity identifier.
        task_id: Owning task identifier.
        resource_id: Resource the activity runs on.
        start: Processing start (already after any setup).
        end: Processing end (``start + processing time``).
        setup: Setup performed right before ``start``.
        lane: Unit of a pooled resource used (0 for machines).
    """

    activity_id: str
    task_id: str
    resource_id: str
    start: int
    end: int
    setup: int = 0
    lane: int = 0

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def busy_start(self) -> int:
        """Start of the committed interval, setup included."""
        return self.start - self.setup


@dataclass(frozen=True)
class Schedule:
    """Assignments of one scheduling run, in placement order."""

    assignments: tuple[Assignment, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "assignments", tuple(self.assignments))

    def __len__(self) -> int:
        return len(self.assignments)

    def __iter__(self):
        return iter(self.assignments)

    @cached_property
    def _by_activity(self) -> dict[str, Assignment]:
        return {a.activity_id: a for a in self.assignments}

    @property
    def makespan(self) -> int:
        return max((a.end for a in self.assignments), default=0)

    def assignment_for(self, activity_id: str) -> Optional[Assignment]:
        return self._by_activity.get(activity_id)

    def for_task(self, task_id: str) -> list[Assignment]:
        return [a for a in self.assignments if a.task_id == task_id]

    def for_resource(self, resource_id: str) -> list[Assignment]:
        return sorted(
            (a for a in self.assignments if a.resource_id == resource_id),
            key=lambda a: (a.start, a.activity_id),
        )

    def task_completion(self, task_id: str) -> Optional[int]:
        return max((a.end for a in self.assignments if a.task_id == task_id), default=None)

    def is_complete(self, instance) -> bool:
        """True when every activity of ``instance`` is assigned exactly once."""
        ids = [a.activity_id for a in self.assignments]
        return len(ids) == len(set(ids)) and set(ids) == set(instance.activity_ids())
