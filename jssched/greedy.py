"""Greedy (dispatching-rule driven) scheduler."""

from __future__ import annotations

import logging
import random
import time
from typing import Mapping, Optional

from .config import SchedulerConfig
from .constructive import RulePriority, construct
from .dispatching import Rule, normalize_weights
from .instance import ProblemInstance
from .models import Schedule

logger = logging.getLogger("jssched.greedy")


def greedy_schedule(
    instance: ProblemInstance,
    rule: Rule | str | Mapping | None = None,
    config: Optional[SchedulerConfig] = None,
    rng: Optional[random.Random] = None,
) -> Schedule:
    """Schedule every activity with a dispatching rule or a weighted rule blend.

    Args:
        instance: Problem data.
        rule: Dispatching rule (enum member or its name), or a mapping of
            rules to positive weights. None falls back to
            ``config.rule_weights``.
        config: Horizon, ATC parameter, tie breakers, rule weights and seed.
        rng: Random source for the RANDOM rule; built from ``config.seed``
            when omitted.

    Returns:
        Complete feasible schedule.

    Raises:
        ValueError: If no rule is given and the config has no rule weights,
            or if RANDOM is used with neither ``rng`` nor ``config.seed``.
        UnschedulableActivity: Some activity fits on no eligible resource.
        DeadlockedPrecedence: Precedence edges form a cycle.
    """
    config = config or SchedulerConfig()
    if rule is None:
        if not config.rule_weights:
            raise ValueError("No dispatching rule given and config has no rule_weights")
        weights = config.rule_weights
        rule = None
    elif isinstance(rule, Mapping):
        weights = normalize_weights(rule)
        rule = None
    else:
        weights = {}
        rule = Rule.parse(rule)

    if rng is None:
        uses_random = (
            rule is Rule.RANDOM or Rule.RANDOM in weights or Rule.RANDOM in config.tie_breakers
        )
        if uses_random and config.seed is None:
            raise ValueError("RANDOM dispatching needs an rng or config.seed")
        rng = config.make_rng()
    source = RulePriority(instance, rule, config.tie_breakers, rng, weights)
    t0 = time.perf_counter()
    schedule = construct(instance, source, horizon=config.horizon, atc_k=config.atc_k)
    label = rule.name if rule is not None else "+".join(f"{w:g}*{r.name}" for r, w in weights.items())
    logger.info(
        "[greedy] rule=%s activities=%d makespan=%d time=%.4fs",
        label,
        len(schedule),
        schedule.makespan,
        time.perf_counter() - t0,
    )
    return schedule


class GreedyScheduler:
    """Reusable greedy scheduler bound to one rule (or rule blend) and configuration."""

    def __init__(
        self,
        rule: Rule | str | Mapping | None = Rule.SPT,
        config: Optional[SchedulerConfig] = None,
    ) -> None:
        if isinstance(rule, Mapping):
            rule = normalize_weights(rule)
        elif rule is not None:
            rule = Rule.parse(rule)
        self.rule = rule
        self.config = config or SchedulerConfig()

    def schedule(
        self, instance: ProblemInstance, rng: Optional[random.Random] = None
    ) -> Schedule:
        return greedy_schedule(instance, self.rule, self.config, rng)

    def compare(self, instance: ProblemInstance, rules=None) -> dict[Rule, Schedule]:
        """Run several rules on the same instance.

        By default every rule runs; RANDOM is left out when the config has
        no seed, since its result would not be reproducible.
        """
        if rules is None:
            rules = [r for r in Rule if r is not Rule.RANDOM or self.config.seed is not None]
        return {Rule.parse(r): greedy_schedule(instance, r, self.config) for r in rules}
