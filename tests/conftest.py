"""Pytest configuration & custom summary hook.

Also ensures the project root is on sys.path for imports.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so 'import jssched.*' works
_root = Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from jssched.instance import ProblemInstance  # noqa: E402
from jssched.models import Activity, Resource, Task  # noqa: E402


def _job(task_id: str, ops, **kwargs) -> Task:
    """Chain task from ``(resource_ids, processing_time, overrides)`` tuples."""
    acts = [
        Activity(f"{task_id}-{k + 1}", p, eligible_resources=res, resource_times=times)
        for k, (res, p, times) in enumerate(ops)
    ]
    return Task.chain(task_id, acts, **kwargs)


@pytest.fixture
def fixed_job_shop() -> ProblemInstance:
    """3 jobs x 3 machines, one eligible machine per operation."""
    tasks = [
        _job("J1", [(("M1",), 3, {}), (("M2",), 2, {}), (("M3",), 2, {})], due_date=10),
        _job("J2", [(("M1",), 2, {}), (("M3",), 1, {}), (("M2",), 4, {})], due_date=8, weight=2.0),
        _job("J3", [(("M2",), 4, {}), (("M3",), 3, {}), (("M1",), 1, {})]),
    ]
    resources = [Resource("M1"), Resource("M2"), Resource("M3")]
    return ProblemInstance.build(tasks, resources)


@pytest.fixture
def flexible_job_shop() -> ProblemInstance:
    """3 jobs over 3 machines where several operations have two eligible machines."""
    tasks = [
        _job(
            "J1",
            [(("M1", "M2"), 3, {"M2": 5}), (("M2",), 2, {}), (("M3", "M1"), 2, {})],
            due_date=12,
        ),
        _job(
            "J2",
            [(("M1",), 2, {}), (("M3", "M2"), 1, {"M2": 2}), (("M2",), 4, {})],
            due_date=9,
            weight=3.0,
        ),
        _job(
            "J3",
            [(("M2", "M3"), 4, {"M3": 3}), (("M3",), 3, {}), (("M1", "M2"), 1, {})],
            release_time=2,
        ),
    ]
    resources = [Resource("M1"), Resource("M2", capacity=2), Resource("M3")]
    return ProblemInstance.build(tasks, resources)


def pytest_terminal_summary(
    terminalreporter: pytest.TerminalReporter,
    exitstatus: int,
    config: pytest.Config,
) -> None:  # noqa: D401
    """Append a compact custom summary at the end of test session."""
    stats = terminalreporter.stats
    collected = terminalreporter._numcollected  # type: ignore[attr-defined]
    passed = len(stats.get("passed", []))
    failed = len(stats.get("failed", []))
    errors = len(stats.get("error", []))
    skipped = len(stats.get("skipped", []))
    xfailed = len(stats.get("xfailed", []))
    xpassed = len(stats.get("xpassed", []))

    terminalreporter.section("Custom summary", sep="=")
    terminalreporter.write_line(
        "Collected: "
        f"{collected} | Passed: {passed} | Failed: {failed} | "
        f"Errors: {errors} | Skipped: {skipped} | "
        f"xfailed: {xfailed} | xpassed: {xpassed}"
    )
    if failed:
        terminalreporter.write_line("Failed tests:")
        for rep in stats["failed"]:
            terminalreporter.write_line(f"  - {rep.nodeid}")
