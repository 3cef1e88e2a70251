"""Arena-style, read-only view of one scheduling problem.

``ProblemInstance`` flattens tasks and activities into tuples indexed by a
dense integer so that the constructive scheduler can work with plain index
lists instead of object graphs. Activity order is task order, then the order
of activities inside each task; resource order is the order given.

The instance is never mutated after ``build`` and can be shared between any
number of concurrent scheduling attempts. It is also the surface an external
constraint-programming layer reads (tasks, resources, constraints,
transitions are kept as given).

Input validation (unique ids, acyclic precedence, existing resource
references) is assumed to have run beforehand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from .models import (
    Activity,
    Constraint,
    ConstraintKind,
    Resource,
    Task,
    TransitionMatrix,
)


@dataclass(frozen=True)
class ProblemInstance:
    """Immutable problem data with dense activity and resource indices.

    Attributes:
        tasks: Tasks as given.
        resources: Resources as given.
        constraints: Extra precedence / exclusivity edges as given.
        transitions: Setup-time matrix.
        activities: All activities, dense index order.
        task_of: Task index of each activity.
        predecessors: ``(predecessor_index, min_delay)`` pairs per activity.
        successors: Successor indices per activity.
        eligible: Eligible resource indices per activity (preference order).
        durations: Processing time per eligible resource, parallel to ``eligible``.
        exclusive: Exclusivity partners per activity.
        setup_type: Setup category per activity.
    """

    tasks: tuple[Task, ...]
    resources: tuple[Resource, ...]
    constraints: tuple[Constraint, ...]
    transitions: TransitionMatrix
    activities: tuple[Activity, ...]
    task_of: tuple[int, ...]
    predecessors: tuple[tuple[tuple[int, int], ...], ...]
    successors: tuple[tuple[int, ...], ...]
    eligible: tuple[tuple[int, ...], ...]
    durations: tuple[tuple[int, ...], ...]
    exclusive: tuple[tuple[int, ...], ...]
    setup_type: tuple[str, ...]
    activity_index: dict[str, int] = field(repr=False)
    resource_index: dict[str, int] = field(repr=False)

    @classmethod
    def build(
        cls,
        tasks: Sequence[Task],
        resources: Sequence[Resource],
        constraints: Iterable[Constraint] = (),
        transitions: Optional[TransitionMatrix] = None,
    ) -> "ProblemInstance":
        tasks = tuple(tasks)
        resources = tuple(resources)
        constraints = tuple(constraints)
        resource_index = {r.id: i for i, r in enumerate(resources)}

        activities: list[Activity] = []
        task_of: list[int] = []
        setup_type: list[str] = []
        for t_idx, task in enumerate(tasks):
            for act in task.activities:
                activities.append(act)
                task_of.append(t_idx)
                setup_type.append(act.activity_type if act.activity_type is not None else task.category)
        activity_index = {a.id: i for i, a in enumerate(activities)}

        preds: list[dict[int, int]] = [dict() for _ in activities]
        for i, act in enumerate(activities):
            for pred_id in act.predecessors:
                preds[i][activity_index[pred_id]] = 0
        exclusive: list[set[int]] = [set() for _ in activities]
        for c in constraints:
            a = activity_index[c.first]
            b = activity_index[c.second]
            if c.kind is ConstraintKind.PRECEDENCE:
                preds[b][a] = max(preds[b].get(a, 0), c.min_delay)
            else:
                exclusive[a].add(b)
                exclusive[b].add(a)

        succs: list[list[int]] = [[] for _ in activities]
        for i, p in enumerate(preds):
            for j in sorted(p):
                succs[j].append(i)

        eligible = tuple(
            tuple(resource_index[r] for r in act.eligible_resources) for act in activities
        )
        durations = tuple(
            tuple(act.duration_on(r) for r in act.eligible_resources) for act in activities
        )
        return cls(
            tasks=tasks,
            resources=resources,
            constraints=constraints,
            transitions=transitions or TransitionMatrix(),
            activities=tuple(activities),
            task_of=tuple(task_of),
            predecessors=tuple(tuple(sorted(p.items())) for p in preds),
            successors=tuple(tuple(s) for s in succs),
            eligible=eligible,
            durations=durations,
            exclusive=tuple(tuple(sorted(e)) for e in exclusive),
            setup_type=tuple(setup_type),
            activity_index=activity_index,
            resource_index=resource_index,
        )

    @property
    def size(self) -> int:
        """Number of activities."""
        return len(self.activities)

    def task_for(self, activity: int) -> Task:
        return self.tasks[self.task_of[activity]]

    def duration(self, activity: int, resource: int) -> int:
        """Processing time of ``activity`` on resource index ``resource``."""
        return self.durations[activity][self.eligible[activity].index(resource)]

    def activity_ids(self) -> list[str]:
        return [a.id for a in self.activities]
