"""Core package for job-shop and flexible job-shop scheduling.

Exports the domain model, the greedy scheduler, the genotype codec and the
KPI evaluator.
"""

from jssched.codec import Genotype, GenotypeCodec  # noqa: F401
from jssched.config import SchedulerConfig, load_config  # noqa: F401
from jssched.dispatching import Rule  # noqa: F401
from jssched.errors import (  # noqa: F401
    DeadlockedPrecedence,
    InfeasibleSchedule,
    MalformedGenotype,
    SchedulingError,
    UnschedulableActivity,
)
from jssched.greedy import GreedyScheduler, greedy_schedule  # noqa: F401
from jssched.instance import ProblemInstance  # noqa: F401
from jssched.kpi import KpiVector, evaluate_kpis  # noqa: F401
from jssched.models import (  # noqa: F401
    Activity,
    Assignment,
    Calendar,
    Constraint,
    Resource,
    Schedule,
    Task,
    TransitionMatrix,
)

__all__ = [
    "Activity",
    "Assignment",
    "Calendar",
    "Constraint",
    "DeadlockedPrecedence",
    "Genotype",
    "GenotypeCodec",
    "GreedyScheduler",
    "InfeasibleSchedule",
    "KpiVector",
    "MalformedGenotype",
    "ProblemInstance",
    "Resource",
    "Rule",
    "Schedule",
    "SchedulerConfig",
    "SchedulingError",
    "Task",
    "TransitionMatrix",
    "UnschedulableActivity",
    "evaluate_kpis",
    "greedy_schedule",
    "load_config",
]
