"""Shared discrete-event constructive scheduler.

Both the greedy scheduler and the genotype decoder run ``construct``; they
differ only in the priority source they pass in:

    RulePriority      -- any eligible resource, pick by dispatching rule.
    GenotypePriority  -- MAV-selected resource only, pick by lowest OSV rank.

Each step computes, for every ready activity and every resource the source
allows, the earliest feasible placement. The earliest of those fixes the
decision point ``(t*, r*)`` (ties: lower resource index). The source then
picks among the ready activities allowed on ``r*`` that were ready by
``t*``, and the pick is placed at its own earliest placement on ``r*``.
"""

from __future__ import annotations

import logging
import random
from typing import Mapping, Optional, Sequence

from .dispatching import ATC_DEFAULT_K, DispatchContext, Rule, select
from .errors import DeadlockedPrecedence, UnschedulableActivity
from .instance import ProblemInstance
from .models import Assignment, Schedule
from .timeline import Placement, ResourceTimeline

logger = logging.getLogger("jssched.constructive")


class PrioritySource:
    """Supplies allowed resources and candidate picks to ``construct``."""

    def resources(self, activity: int) -> Sequence[int]:
        raise NotImplementedError

    def pick(self, candidates: list[int], context: DispatchContext) -> int:
        raise NotImplementedError


class RulePriority(PrioritySource):
    """Named (or weighted blend of) dispatching rules over all eligible resources."""

    def __init__(
        self,
        instance: ProblemInstance,
        rule: Optional[Rule],
        tie_breakers: Sequence[Rule] = (),
        rng: Optional[random.Random] = None,
        weights: Optional[Mapping[Rule, float]] = None,
    ) -> None:
        self.instance = instance
        self.rule = rule
        self.tie_breakers = tuple(tie_breakers)
        self.rng = rng
        self.weights = dict(weights or {})

    def resources(self, activity: int) -> Sequence[int]:
        return self.instance.eligible[activity]

    def pick(self, candidates: list[int], context: DispatchContext) -> int:
        return select(
            self.rule, candidates, context, self.rng, self.tie_breakers, self.weights
        )


class GenotypePriority(PrioritySource):
    """OSV rank picks and MAV resource choice of an already validated genotype."""

    def __init__(self, instance: ProblemInstance, osv: Sequence[str], mav: Sequence[int]) -> None:
        self.instance = instance
        self.rank = {activity_id: pos for pos, activity_id in enumerate(osv)}
        self.mav = tuple(mav)

    def resources(self, activity: int) -> Sequence[int]:
        eligible = self.instance.eligible[activity]
        if not eligible:
            return ()
        return (eligible[self.mav[activity]],)

    def pick(self, candidates: list[int], context: DispatchContext) -> int:
        activities = self.instance.activities
        return min(candidates, key=lambda a: self.rank[activities[a].id])


def construct(
    instance: ProblemInstance,
    source: PrioritySource,
    horizon: Optional[int] = None,
    atc_k: float = ATC_DEFAULT_K,
) -> Schedule:
    """Build a complete schedule by discrete-event simulation.

    Args:
        instance: Problem data (read only).
        source: Resource choice and candidate pick policy.
        horizon: Optional bound every committed block must end by.
        atc_k: Look-ahead parameter handed to the dispatching context.

    Returns:
        Schedule with every activity placed exactly once, in placement order.

    Raises:
        UnschedulableActivity: An activity has no allowed resource or no
            feasible slot on any of them.
        DeadlockedPrecedence: Activities remain but none can become ready.
    """
    n = instance.size
    activities = instance.activities
    timelines = [ResourceTimeline(i, r) for i, r in enumerate(instance.resources)]
    pending_preds = [len(p) for p in instance.predecessors]
    intervals: dict[int, tuple[int, int]] = {}
    ends: dict[int, int] = {}
    remaining_work = [t.total_processing_time for t in instance.tasks]
    remaining_ops = [t.activity_count for t in instance.tasks]
    ready: dict[int, int] = {
        i: instance.task_for(i).release_time for i in range(n) if pending_preds[i] == 0
    }
    assignments: list[Assignment] = []

    def placement_for(a: int, r: int) -> Optional[Placement]:
        blockers = [intervals[p] for p in instance.exclusive[a] if p in intervals]
        return timelines[r].earliest_placement(
            ready[a],
            instance.setup_type[a],
            instance.duration(a, r),
            instance.transitions,
            blockers,
            horizon,
        )

    while len(assignments) < n:
        if not ready:
            placed = {activities[i].id for i in ends}
            raise DeadlockedPrecedence([a.id for a in activities if a.id not in placed])

        options: dict[int, dict[int, Placement]] = {}
        best: Optional[Placement] = None
        for a in sorted(ready):
            allowed = source.resources(a)
            if not allowed:
                raise UnschedulableActivity(activities[a].id, "no eligible resource")
            per_resource: dict[int, Placement] = {}
            for r in allowed:
                placement = placement_for(a, r)
                if placement is not None:
                    per_resource[r] = placement
            if not per_resource:
                reason = "no calendar window fits"
                if horizon is not None:
                    reason += f" before horizon {horizon}"
                raise UnschedulableActivity(activities[a].id, reason)
            options[a] = per_resource
            for placement in per_resource.values():
                if best is None or (placement.start, placement.resource) < (
                    best.start,
                    best.resource,
                ):
                    best = placement

        t_star, r_star = best.start, best.resource
        candidates = [a for a in sorted(ready) if r_star in options[a] and ready[a] <= t_star]
        p_avg = sum(instance.duration(a, r_star) for a in candidates) / len(candidates)
        context = DispatchContext(
            instance=instance,
            now=t_star,
            resource=r_star,
            ready_times=ready,
            remaining_work=remaining_work,
            remaining_ops=remaining_ops,
            average_processing_time=p_avg,
            atc_k=atc_k,
        )
        chosen = source.pick(candidates, context)
        placement = options[chosen][r_star]
        logger.debug(
            "t=%s resource=%s candidates=%d -> %s [%s, %s) setup=%s",
            t_star,
            instance.resources[r_star].id,
            len(candidates),
            activities[chosen].id,
            placement.start,
            placement.end,
            placement.setup,
        )

        timelines[r_star].commit(placement, instance.setup_type[chosen])
        intervals[chosen] = (placement.busy_start, placement.end)
        ends[chosen] = placement.end
        t_idx = instance.task_of[chosen]
        remaining_work[t_idx] -= activities[chosen].processing_time
        remaining_ops[t_idx] -= 1
        del ready[chosen]
        assignments.append(
            Assignment(
                activity_id=activities[chosen].id,
                task_id=instance.tasks[t_idx].id,
                resource_id=instance.resources[r_star].id,
                start=placement.start,
                end=placement.end,
                setup=placement.setup,
                lane=placement.lane,
            )
        )

        for succ in instance.successors[chosen]:
            pending_preds[succ] -= 1
            if pending_preds[succ] == 0:
                release = instance.task_for(succ).release_time
                ready[succ] = max(
                    [release] + [ends[p] + delay for p, delay in instance.predecessors[succ]]
                )

    return Schedule(assignments=tuple(assignments))
