import pytest

from jssched.instance import ProblemInstance
from jssched.models import (
    Activity,
    Assignment,
    Calendar,
    Constraint,
    Resource,
    Schedule,
    Task,
    TimeWindow,
    TransitionMatrix,
)


def test_always_open_calendar():
    cal = Calendar()
    assert cal.always_open
    assert cal.earliest_fit(5, 10) == 5
    assert cal.available_time(0, 50) == 50
    assert cal.is_working(1_000_000)


def test_calendar_fit_skips_too_short_window():
    cal = Calendar.from_pairs(windows=[(0, 10), (20, 40)])
    assert cal.earliest_fit(5, 8) == 20
    assert cal.earliest_fit(0, 25) is None
    assert not cal.is_working(15)
    assert cal.next_available(15) == 20
    assert cal.next_available(40) is None
    assert cal.available_time(0, 30) == 20


def test_calendar_blocked_period_splits_window():
    cal = Calendar.from_pairs(blocked=[(10, 20)])
    windows = cal.working_windows()
    assert windows[0] == TimeWindow(0, 10)
    assert windows[1].start == 20
    assert cal.earliest_fit(5, 10) == 20
    assert cal.earliest_fit(0, 10) == 0


def test_calendar_touching_windows_merge():
    cal = Calendar.from_pairs(windows=[(10, 20), (0, 10)])
    assert cal.working_windows() == (TimeWindow(0, 20),)
    assert cal.earliest_fit(5, 12) == 5


def test_calendar_horizon_bounds_fit():
    cal = Calendar()
    assert cal.earliest_fit(0, 10, horizon=5) is None
    assert cal.earliest_fit(0, 10, horizon=10) == 0


def test_transition_matrix_lookup():
    tm = TransitionMatrix.from_entries([("R", "X", "Y", 15)])
    assert tm.setup_time("R", "X", "Y") == 15
    assert tm.setup_time("R", "Y", "X") == 0
    assert tm.setup_time("R", None, "Y") == 0
    assert tm.setup_time("OTHER", "X", "Y") == 0
    assert len(tm) == 1


def test_transition_matrix_default_only_for_type_change():
    tm = TransitionMatrix.from_entries([("R", "X", "X", 3)], defaults={"R": 5})
    assert tm.setup_time("R", "Y", "X") == 5
    assert tm.setup_time("R", "Y", "Y") == 0
    assert tm.setup_time("R", "X", "X") == 3


def test_task_chain_links_activities():
    task = Task.chain("T", [Activity("A", 30, ("R",)), Activity("B", 20, ("R",))])
    assert task.activities[0].predecessors == ()
    assert task.activities[1].predecessors == ("A",)
    assert task.total_processing_time == 50
    assert task.activity_count == 2


def test_activity_duration_override():
    act = Activity("op", 10, ("R1", "R2"), resource_times={"R2": 8})
    assert act.duration_on("R1") == 10
    assert act.duration_on("R2") == 8


def test_instance_build_indices():
    t1 = Task.chain(
        "T1",
        [Activity("a", 5, ("R1",), activity_type="cut"), Activity("b", 3, ("R2", "R1"))],
        category="steel",
    )
    t2 = Task("T2", (Activity("c", 4, ("R2",)),))
    inst = ProblemInstance.build(
        [t1, t2],
        [Resource("R1"), Resource("R2")],
        constraints=[Constraint.precedence("b", "c", min_delay=2), Constraint.exclusive("a", "c")],
    )
    assert inst.size == 3
    assert inst.activity_ids() == ["a", "b", "c"]
    assert inst.task_of == (0, 0, 1)
    assert inst.predecessors == ((), ((0, 0),), ((1, 2),))
    assert inst.successors == ((1,), (2,), ())
    assert inst.eligible[1] == (1, 0)
    assert inst.duration(1, 0) == 3
    assert inst.exclusive == ((2,), (), (0,))
    assert inst.setup_type == ("cut", "steel", "")
    assert inst.task_for(2).id == "T2"


def test_schedule_queries():
    inst = ProblemInstance.build(
        [Task.chain("T", [Activity("A", 30, ("R",)), Activity("B", 20, ("R",))])],
        [Resource("R")],
    )
    sched = Schedule(
        (
            Assignment("B", "T", "R", 30, 50),
            Assignment("A", "T", "R", 0, 30),
        )
    )
    assert sched.makespan == 50
    assert [a.activity_id for a in sched.for_resource("R")] == ["A", "B"]
    assert sched.task_completion("T") == 50
    assert sched.task_completion("missing") is None
    assert sched.assignment_for("A").end == 30
    assert sched.is_complete(inst)
    assert not Schedule(sched.assignments[:1]).is_complete(inst)


def test_assignment_busy_start_includes_setup():
    a = Assignment("A", "T", "R", start=25, end=35, setup=15)
    assert a.busy_start == 10
    assert a.duration == 10


@pytest.mark.parametrize("window,time,expected", [((0, 10), 0, True), ((0, 10), 10, False)])
def test_time_window_half_open(window, time, expected):
    assert TimeWindow(*window).contains(time) is expected
