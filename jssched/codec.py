"""OSV/MAV genotype codec.

A genotype has two parallel parts:

    osv -- Operation Sequence Vector: every activity id exactly once. The
           position is a priority rank; lower rank wins among the ready
           candidates of a decision point.
    mav -- Machine Assignment Vector: one index per activity (dense instance
           order) into that activity's eligible resource list.

Decoding runs the same constructive simulation as the greedy scheduler, so
both paths share their feasibility semantics. The codec defines no
objective; ``fitness`` returns the full ``KpiVector``.
"""

from __future__ import annotations

import logging
import operator
import random
from dataclasses import dataclass
from typing import Optional

from .config import SchedulerConfig
from .constructive import GenotypePriority, construct
from .dispatching import Rule
from .errors import MalformedGenotype
from .greedy import greedy_schedule
from .instance import ProblemInstance
from .kpi import KpiVector, evaluate_kpis
from .models import Schedule

logger = logging.getLogger("jssched.codec")


@dataclass(frozen=True)
class Genotype:
    osv: tuple[str, ...]
    mav: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "osv", tuple(self.osv))
        object.__setattr__(self, "mav", tuple(self.mav))

    @property
    def key(self) -> tuple[tuple[str, ...], tuple[int, ...]]:
        return (self.osv, self.mav)


def validate_genotype(instance: ProblemInstance, genotype: Genotype) -> None:
    """Check that ``genotype`` is well formed for ``instance``.

    Activities without eligible resources are not checked here; decoding
    reports them as unschedulable.

    Raises:
        MalformedGenotype: If the OSV is not a permutation of all activity
            ids or an MAV entry is out of range.
    """
    n = instance.size
    if len(genotype.osv) != n:
        raise MalformedGenotype(f"OSV length {len(genotype.osv)} != activity count {n}")
    seen: set[str] = set()
    for activity_id in genotype.osv:
        if activity_id not in instance.activity_index:
            raise MalformedGenotype(f"OSV holds unknown activity {activity_id!r}")
        if activity_id in seen:
            raise MalformedGenotype(f"OSV holds activity {activity_id!r} twice")
        seen.add(activity_id)
    if len(genotype.mav) != n:
        raise MalformedGenotype(f"MAV length {len(genotype.mav)} != activity count {n}")
    for i, value in enumerate(genotype.mav):
        options = len(instance.eligible[i])
        if options == 0:
            continue
        try:
            index = operator.index(value)
        except TypeError:
            index = None
        if index is None or isinstance(value, bool) or not (0 <= index < options):
            raise MalformedGenotype(
                f"MAV value {value!r} out of range for activity "
                f"{instance.activities[i].id!r} ({options} eligible resources)"
            )


class GenotypeCodec:
    """Maps genotypes to schedules and KPI vectors for one problem instance."""

    def __init__(self, instance: ProblemInstance, config: Optional[SchedulerConfig] = None) -> None:
        self.instance = instance
        self.config = config or SchedulerConfig()

    def validate(self, genotype: Genotype) -> None:
        validate_genotype(self.instance, genotype)

    def decode(self, genotype: Genotype) -> Schedule:
        """Build the schedule a genotype describes.

        Raises:
            MalformedGenotype: For an ill-formed genotype (never clamped).
            UnschedulableActivity: An activity fits nowhere on its MAV resource.
            DeadlockedPrecedence: Precedence edges form a cycle.
        """
        self.validate(genotype)
        source = GenotypePriority(self.instance, genotype.osv, genotype.mav)
        schedule = construct(
            self.instance, source, horizon=self.config.horizon, atc_k=self.config.atc_k
        )
        logger.debug("decoded genotype: makespan=%d", schedule.makespan)
        return schedule

    def encode(self, schedule: Schedule) -> Genotype:
        """Derive a genotype from a complete schedule.

        The OSV orders activities by start time (ties by activity id); the
        MAV holds each assignment's resource position in the eligible list.

        Raises:
            ValueError: If the schedule misses an activity or uses a
                resource the activity is not eligible for.
        """
        instance = self.instance
        rows = []
        mav = []
        for act in instance.activities:
            a = schedule.assignment_for(act.id)
            if a is None:
                raise ValueError(f"Schedule has no assignment for activity {act.id!r}")
            if a.resource_id not in act.eligible_resources:
                raise ValueError(
                    f"Activity {act.id!r} assigned to non-eligible resource {a.resource_id!r}"
                )
            rows.append((a.start, act.id))
            mav.append(act.eligible_resources.index(a.resource_id))
        rows.sort()
        return Genotype(osv=tuple(activity_id for _, activity_id in rows), mav=tuple(mav))

    def fitness(self, genotype: Genotype) -> KpiVector:
        return evaluate_kpis(self.instance, self.decode(genotype))

    def evaluate(
        self,
        genotype: Genotype,
        cache: dict | None = None,
        return_schedule: bool = False,
    ) -> KpiVector | tuple[KpiVector, Schedule]:
        """``fitness`` with an optional cache keyed by the genotype."""
        key = genotype.key
        if cache is not None and key in cache:
            kpis, sched = cache[key]
            if return_schedule:
                return kpis, sched
            return kpis
        sched = self.decode(genotype)
        kpis = evaluate_kpis(self.instance, sched)
        if cache is not None:
            cache[key] = (kpis, sched)
        if return_schedule:
            return kpis, sched
        return kpis


def _random_osv(instance: ProblemInstance, rng: random.Random) -> tuple[str, ...]:
    osv = instance.activity_ids()
    rng.shuffle(osv)
    return tuple(osv)


def random_genotype(instance: ProblemInstance, *, rng: random.Random) -> Genotype:
    """Random OSV permutation and uniformly drawn MAV indices."""
    osv = _random_osv(instance, rng)
    mav = tuple(rng.randrange(len(e)) if e else 0 for e in instance.eligible)
    return Genotype(osv, mav)


def load_balanced_genotype(instance: ProblemInstance, *, rng: random.Random) -> Genotype:
    """Random OSV; each activity goes to its currently least-loaded eligible resource.

    Load is the processing time assigned so far; ties go to the earlier
    entry of the eligible list.
    """
    osv = _random_osv(instance, rng)
    load = [0] * len(instance.resources)
    mav = []
    for i, eligible in enumerate(instance.eligible):
        if not eligible:
            mav.append(0)
            continue
        pos = min(range(len(eligible)), key=lambda k: load[eligible[k]])
        load[eligible[pos]] += instance.durations[i][pos]
        mav.append(pos)
    return Genotype(osv, tuple(mav))


def shortest_time_genotype(instance: ProblemInstance, *, rng: random.Random) -> Genotype:
    """Random OSV; each activity goes to its fastest eligible resource."""
    osv = _random_osv(instance, rng)
    mav = tuple(
        min(range(len(d)), key=lambda k: d[k]) if d else 0 for d in instance.durations
    )
    return Genotype(osv, mav)


def seed_genotype(
    instance: ProblemInstance,
    rule: Rule | str,
    config: Optional[SchedulerConfig] = None,
    rng: Optional[random.Random] = None,
) -> Genotype:
    """Encode the greedy schedule of ``rule`` (known-good population member)."""
    schedule = greedy_schedule(instance, rule, config, rng)
    return GenotypeCodec(instance, config).encode(schedule)
