"""Priority dispatching rules.

Every rule maps a ready activity to a scalar key; lower key means higher
priority. Rules that prefer large values (LPT, MWKR, MOPNR, PRIORITY, ATC)
return the negated value. The rule set is closed: ``Rule`` is an enum and
``priority_key`` is the only evaluation function.

Rules can also be blended: the primary key is then a positive weighted sum
of rule keys (for instance 0.7 EDD + 0.3 SPT).

Ordering is total and deterministic: primary key, then optional secondary
rules, then ascending activity id.

References:
    Pinedo (2016), "Scheduling: Theory, Algorithms, and Systems", Ch. 4.
    Vepsalainen & Morton (1987) for ATC.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from .instance import ProblemInstance

ATC_DEFAULT_K = 2.0


class Rule(Enum):
    SPT = "Shortest Processing Time"
    LPT = "Longest Processing Time"
    EDD = "Earliest Due Date"
    FIFO = "First In First Out"
    SLACK = "Minimum Slack"
    CR = "Critical Ratio"
    ATC = "Apparent Tardiness Cost"
    WSPT = "Weighted Shortest Processing Time"
    MWKR = "Most Work Remaining"
    LWKR = "Least Work Remaining"
    MOPNR = "Most Operations Remaining"
    PRIORITY = "Highest Task Weight"
    RANDOM = "Random"

    @property
    def description(self) -> str:
        return self.value

    @classmethod
    def parse(cls, name: "str | Rule") -> "Rule":
        """Look a rule up by its (case-insensitive) name."""
        if isinstance(name, Rule):
            return name
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown dispatching rule: {name}") from None


@dataclass(frozen=True)
class DispatchContext:
    """State snapshot a rule is evaluated against.

    Attributes:
        instance: Problem data.
        now: Current simulation time.
        resource: Resource index being dispatched (None = nominal times).
        ready_times: Time each candidate activity became ready.
        remaining_work: Unplaced processing time per task index (candidate included).
        remaining_ops: Unplaced activity count per task index (candidate included).
        average_processing_time: Mean processing time of the candidates (ATC).
        atc_k: ATC look-ahead parameter.
    """

    instance: ProblemInstance
    now: int = 0
    resource: Optional[int] = None
    ready_times: Optional[Mapping[int, int]] = None
    remaining_work: Sequence[int] = ()
    remaining_ops: Sequence[int] = ()
    average_processing_time: Optional[float] = None
    atc_k: float = ATC_DEFAULT_K

    def processing_time(self, activity: int) -> int:
        if self.resource is not None and self.resource in self.instance.eligible[activity]:
            return self.instance.duration(activity, self.resource)
        return self.instance.activities[activity].processing_time

    def task_remaining_work(self, activity: int) -> int:
        t = self.instance.task_of[activity]
        if self.remaining_work:
            return self.remaining_work[t]
        return self.instance.tasks[t].total_processing_time

    def task_remaining_ops(self, activity: int) -> int:
        t = self.instance.task_of[activity]
        if self.remaining_ops:
            return self.remaining_ops[t]
        return self.instance.tasks[t].activity_count

    def ready_time(self, activity: int) -> int:
        if self.ready_times is None:
            return self.instance.task_for(activity).release_time
        return self.ready_times.get(activity, 0)


def priority_key(
    rule: Rule,
    activity: int,
    context: DispatchContext,
    rng: Optional[random.Random] = None,
) -> float:
    """Scalar key of ``activity`` under ``rule`` (lower = dispatched first).

    Tasks without a due date sort last for EDD, SLACK and CR and carry no
    tardiness risk for ATC (score 0).

    Raises:
        ValueError: If ``rule`` is RANDOM and no ``rng`` is given.
    """
    task = context.instance.task_for(activity)
    p = context.processing_time(activity)
    now = context.now

    if rule is Rule.SPT:
        return p
    if rule is Rule.LPT:
        return -p
    if rule is Rule.EDD:
        return task.due_date if task.due_date is not None else math.inf
    if rule is Rule.FIFO:
        return context.ready_time(activity)
    if rule is Rule.SLACK:
        if task.due_date is None:
            return math.inf
        return task.due_date - now - context.task_remaining_work(activity)
    if rule is Rule.CR:
        remaining = context.task_remaining_work(activity)
        if task.due_date is None or remaining <= 0:
            return math.inf
        return (task.due_date - now) / remaining
    if rule is Rule.ATC:
        if p <= 0:
            return math.inf
        if task.due_date is None:
            return 0.0
        p_avg = max(context.average_processing_time or p, 1.0)
        slack = max(0.0, task.due_date - p - now)
        urgency = math.exp(-slack / (context.atc_k * p_avg))
        return -(task.weight / p * urgency)
    if rule is Rule.WSPT:
        if task.weight <= 0:
            return math.inf
        return p / task.weight
    if rule is Rule.MWKR:
        return -context.task_remaining_work(activity)
    if rule is Rule.LWKR:
        return context.task_remaining_work(activity)
    if rule is Rule.MOPNR:
        return -context.task_remaining_ops(activity)
    if rule is Rule.PRIORITY:
        return -task.weight
    if rule is Rule.RANDOM:
        if rng is None:
            raise ValueError("RANDOM rule requires a seeded random source")
        return rng.random()
    raise ValueError(f"Unsupported rule: {rule}")  # pragma: no cover


def normalize_weights(weights: Optional[Mapping["Rule | str", float]]) -> dict[Rule, float]:
    """Parse a rule-weight mapping (rule names accepted as keys).

    Raises:
        ValueError: For an unknown rule name or a weight that is not positive.
    """
    result: dict[Rule, float] = {}
    for name, weight in (weights or {}).items():
        weight = float(weight)
        if not weight > 0:
            raise ValueError(f"Rule weight must be positive: {name}={weight}")
        result[Rule.parse(name)] = weight
    return result


def weighted_key(
    weights: Mapping[Rule, float],
    activity: int,
    context: DispatchContext,
    rng: Optional[random.Random] = None,
) -> float:
    """Weighted sum of rule keys; rules are evaluated in enum order."""
    return sum(
        weights[rule] * priority_key(rule, activity, context, rng)
        for rule in Rule
        if rule in weights
    )


def rank(
    rule: Optional[Rule],
    candidates: Iterable[int],
    context: DispatchContext,
    rng: Optional[random.Random] = None,
    tie_breakers: Sequence[Rule] = (),
    weights: Optional[Mapping[Rule, float]] = None,
) -> list[int]:
    """Order candidate activity indices from highest to lowest priority.

    With ``weights`` the primary key is the weighted sum of rule keys and
    ``rule`` is ignored; tie breakers and the activity id follow as usual.
    Keys are evaluated in ascending index order, so a RANDOM rule consumes
    the random source in a reproducible sequence.

    Raises:
        ValueError: If neither ``rule`` nor ``weights`` is given.
    """
    if rule is None and not weights:
        raise ValueError("Either a rule or rule weights are required")
    activities = context.instance.activities
    keyed = []
    for a in sorted(candidates):
        if weights:
            key = (weighted_key(weights, a, context, rng),)
        else:
            key = (priority_key(rule, a, context, rng),)
        key += tuple(priority_key(tb, a, context, rng) for tb in tie_breakers)
        keyed.append((key, activities[a].id, a))
    keyed.sort()
    return [a for _, _, a in keyed]


def select(
    rule: Optional[Rule],
    candidates: Iterable[int],
    context: DispatchContext,
    rng: Optional[random.Random] = None,
    tie_breakers: Sequence[Rule] = (),
    weights: Optional[Mapping[Rule, float]] = None,
) -> Optional[int]:
    """Best candidate under ``rule`` (or ``weights``); None without candidates."""
    ordered = rank(rule, candidates, context, rng, tie_breakers, weights)
    return ordered[0] if ordered else None
