"""KPI evaluation of completed schedules.

All functions here are pure: they read a ``ProblemInstance`` and a
``Schedule`` and return fresh values, so they can be called concurrently on
distinct schedules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from .instance import ProblemInstance
from .models import Schedule


@dataclass(frozen=True)
class KpiVector:
    """Key performance indicators of one schedule.

    Attributes:
        makespan: Latest end time over all assignments.
        total_tardiness: Sum over tasks of ``max(0, completion - due)``.
        weighted_tardiness: Same, each term multiplied by the task weight.
        max_tardiness: Largest single-task tardiness.
        on_time_rate: Share of scheduled tasks finishing by their due date
            (tasks without one count as on time).
        mean_flow_time: Mean of ``completion - release_time`` over tasks.
        utilization: Busy time (setup included) over calendar-available
            capacity in ``[0, makespan)``, per resource id.
        mean_utilization: Mean of ``utilization`` over resources.
    """

    makespan: int = 0
    total_tardiness: int = 0
    weighted_tardiness: float = 0.0
    max_tardiness: int = 0
    on_time_rate: float = 1.0
    mean_flow_time: float = 0.0
    utilization: Mapping[str, float] = field(default_factory=dict)
    mean_utilization: float = 0.0

    def as_tuple(self) -> tuple[float, ...]:
        """Minimisation objectives in a fixed order (utilization excluded)."""
        return (
            self.makespan,
            self.total_tardiness,
            self.weighted_tardiness,
            self.max_tardiness,
            self.mean_flow_time,
        )

    def meets_thresholds(self, max_tardiness: int, min_utilization: float) -> bool:
        return self.max_tardiness <= max_tardiness and self.mean_utilization >= min_utilization


def resource_utilization(instance: ProblemInstance, schedule: Schedule) -> dict[str, float]:
    """Busy share of each resource's available capacity up to the makespan."""
    makespan = schedule.makespan
    busy: dict[str, int] = {r.id: 0 for r in instance.resources}
    for a in schedule:
        busy[a.resource_id] = busy.get(a.resource_id, 0) + (a.end - a.busy_start)
    result: dict[str, float] = {}
    for r in instance.resources:
        available = r.calendar.available_time(0, makespan) * max(1, r.capacity)
        result[r.id] = busy[r.id] / available if available > 0 else 0.0
    return result


def evaluate_kpis(instance: ProblemInstance, schedule: Schedule) -> KpiVector:
    """Compute the ``KpiVector`` of a completed schedule."""
    total_tardiness = 0
    weighted_tardiness = 0.0
    max_tardiness = 0
    on_time = 0
    counted = 0
    flow_total = 0
    for task in instance.tasks:
        completion = schedule.task_completion(task.id)
        if completion is None:
            continue
        counted += 1
        flow_total += completion - task.release_time
        if task.due_date is None or completion <= task.due_date:
            on_time += 1
            continue
        tardiness = completion - task.due_date
        total_tardiness += tardiness
        weighted_tardiness += task.weight * tardiness
        max_tardiness = max(max_tardiness, tardiness)

    utilization = resource_utilization(instance, schedule)
    mean_utilization = sum(utilization.values()) / len(utilization) if utilization else 0.0
    return KpiVector(
        makespan=schedule.makespan,
        total_tardiness=total_tardiness,
        weighted_tardiness=weighted_tardiness,
        max_tardiness=max_tardiness,
        on_time_rate=on_time / counted if counted else 1.0,
        mean_flow_time=flow_total / counted if counted else 0.0,
        utilization=utilization,
        mean_utilization=mean_utilization,
    )


class Objective(Enum):
    MAKESPAN = "makespan"
    TOTAL_TARDINESS = "total_tardiness"
    WEIGHTED_TARDINESS = "weighted_tardiness"
    MAX_TARDINESS = "max_tardiness"
    MEAN_FLOW_TIME = "mean_flow_time"
    WEIGHTED_SUM = "weighted_sum"


_NUMERIC_KPIS = (
    "makespan",
    "total_tardiness",
    "weighted_tardiness",
    "max_tardiness",
    "on_time_rate",
    "mean_flow_time",
    "mean_utilization",
)


def objective_value(
    kpis: KpiVector,
    objective: Objective = Objective.MAKESPAN,
    weights: Optional[Mapping[str, float]] = None,
) -> float:
    """Scalarise a KPI vector for a search that minimises one number.

    ``WEIGHTED_SUM`` sums ``weight * kpi`` over ``weights``; give rates that
    should be maximised (``on_time_rate``, ``mean_utilization``) a negative
    weight.

    Raises:
        ValueError: If ``WEIGHTED_SUM`` has no weights or names an unknown KPI.
    """
    if objective is not Objective.WEIGHTED_SUM:
        return float(getattr(kpis, objective.value))
    if not weights:
        raise ValueError("WEIGHTED_SUM objective requires weights")
    total = 0.0
    for name, weight in weights.items():
        if name not in _NUMERIC_KPIS:
            raise ValueError(f"Unknown KPI: {name}")
        total += weight * getattr(kpis, name)
    return total
