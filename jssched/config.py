"""Scheduler configuration.

Settings are read from a YAML (or JSON) file. They may sit at the top level
or under a ``scheduler:`` section so the scheduler can share a file with the
caller's own settings::

    scheduler:
      horizon: 480
      atc_k: 2.0
      tie_breakers: [EDD, SPT]
      rule_weights: {EDD: 0.7, SPT: 0.3}
      seed: 7
      log_level: DEBUG
"""

from __future__ import annotations

import json
import logging
import os
import random
from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional

import yaml

from .dispatching import ATC_DEFAULT_K, Rule, normalize_weights


@dataclass(slots=True)
class SchedulerConfig:
    """Knobs shared by the greedy scheduler and the genotype codec.

    Attributes:
        horizon: Upper bound every committed block must end by (None = open).
        atc_k: ATC look-ahead parameter.
        tie_breakers: Secondary rules applied before the activity-id tie-break.
        rule_weights: Weighted rule blend used when no single rule is given.
        seed: Seed of the random source built by ``make_rng``. Required
            whenever RANDOM takes part in dispatching and no random source
            is passed in.
        log_level: Level name passed to ``setup_logging``.
    """

    horizon: Optional[int] = None
    atc_k: float = ATC_DEFAULT_K
    tie_breakers: tuple[Rule, ...] = ()
    rule_weights: dict[Rule, float] = field(default_factory=dict)
    seed: Optional[int] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.tie_breakers = tuple(Rule.parse(r) for r in self.tie_breakers)
        self.rule_weights = normalize_weights(self.rule_weights)
        if self.horizon is not None and self.horizon < 0:
            raise ValueError("horizon must be non-negative")
        if self.atc_k <= 0:
            raise ValueError("atc_k must be positive")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SchedulerConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown scheduler config keys: {', '.join(unknown)}")
        values = dict(data)
        if "tie_breakers" in values and values["tie_breakers"] is not None:
            values["tie_breakers"] = tuple(values["tie_breakers"])
        elif "tie_breakers" in values:
            values["tie_breakers"] = ()
        if "rule_weights" in values and values["rule_weights"] is None:
            values["rule_weights"] = {}
        if values.get("atc_k") is not None:
            values["atc_k"] = float(values["atc_k"])
        return cls(**values)

    def make_rng(self) -> random.Random:
        """Fresh random source seeded with ``seed``."""
        return random.Random(self.seed)


def load_config(path: str) -> SchedulerConfig:
    """Read a ``SchedulerConfig`` from a YAML or JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not a mapping or holds unknown keys.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    if path.endswith(".json"):
        cfg = json.loads(text)
    else:
        cfg = yaml.safe_load(text) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"Config root must be a mapping: {path}")
    if isinstance(cfg.get("scheduler"), dict):
        cfg = cfg["scheduler"]
    return SchedulerConfig.from_mapping(cfg)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
