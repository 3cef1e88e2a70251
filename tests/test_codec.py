import random

import pytest

from jssched.codec import (
    Genotype,
    GenotypeCodec,
    load_balanced_genotype,
    random_genotype,
    seed_genotype,
    shortest_time_genotype,
)
from jssched.config import SchedulerConfig
from jssched.dispatching import Rule
from jssched.errors import MalformedGenotype, UnschedulableActivity
from jssched.feasibility import find_violations
from jssched.greedy import greedy_schedule
from jssched.instance import ProblemInstance
from jssched.kpi import KpiVector, evaluate_kpis
from jssched.models import Activity, Calendar, Resource, Schedule, Task


def flexible_single() -> ProblemInstance:
    """One activity eligible on R1 (10 units) and R2 (8 units)."""
    act = Activity("op", 10, ("R1", "R2"), resource_times={"R2": 8})
    return ProblemInstance.build([Task("T", (act,))], [Resource("R1"), Resource("R2")])


def placements(schedule: Schedule) -> dict:
    return {a.activity_id: (a.resource_id, a.start, a.end) for a in schedule}


def test_mav_selects_resource():
    codec = GenotypeCodec(flexible_single())
    on_r2 = codec.decode(Genotype(("op",), (1,))).assignment_for("op")
    assert on_r2.resource_id == "R2"
    assert on_r2.end - on_r2.start == 8
    on_r1 = codec.decode(Genotype(("op",), (0,))).assignment_for("op")
    assert on_r1.resource_id == "R1"
    assert on_r1.end - on_r1.start == 10


@pytest.mark.parametrize(
    "osv,mav",
    [
        ((), (0,)),
        (("other",), (0,)),
        (("op", "op"), (0,)),
        (("op",), (2,)),
        (("op",), (-1,)),
        (("op",), ()),
        (("op",), (0, 0)),
    ],
)
def test_malformed_genotype_rejected(osv, mav):
    codec = GenotypeCodec(flexible_single())
    with pytest.raises(MalformedGenotype):
        codec.decode(Genotype(osv, mav))


def test_malformed_genotype_is_value_error():
    with pytest.raises(ValueError):
        GenotypeCodec(flexible_single()).validate(Genotype(("op",), (5,)))


@pytest.mark.parametrize("rule", [r for r in Rule if r is not Rule.RANDOM])
def test_round_trip_exact_for_fixed_job_shop(rule, fixed_job_shop):
    codec = GenotypeCodec(fixed_job_shop)
    original = greedy_schedule(fixed_job_shop, rule)
    decoded = codec.decode(codec.encode(original))
    assert placements(decoded) == placements(original)
    assert evaluate_kpis(fixed_job_shop, decoded) == evaluate_kpis(fixed_job_shop, original)


def test_round_trip_random_rule(fixed_job_shop):
    codec = GenotypeCodec(fixed_job_shop)
    original = greedy_schedule(fixed_job_shop, Rule.RANDOM, SchedulerConfig(seed=42))
    decoded = codec.decode(codec.encode(original))
    assert placements(decoded) == placements(original)


def test_encode_orders_by_start_then_id(fixed_job_shop):
    codec = GenotypeCodec(fixed_job_shop)
    sched = greedy_schedule(fixed_job_shop, Rule.SPT)
    genotype = codec.encode(sched)
    starts = [sched.assignment_for(a).start for a in genotype.osv]
    assert starts == sorted(starts)
    assert genotype.mav == (0,) * fixed_job_shop.size


def test_encode_rejects_incomplete_schedule(fixed_job_shop):
    codec = GenotypeCodec(fixed_job_shop)
    sched = greedy_schedule(fixed_job_shop, Rule.SPT)
    with pytest.raises(ValueError):
        codec.encode(Schedule(sched.assignments[1:]))


def test_decode_is_deterministic(flexible_job_shop):
    codec = GenotypeCodec(flexible_job_shop)
    genotype = random_genotype(flexible_job_shop, rng=random.Random(9))
    assert codec.decode(genotype) == codec.decode(genotype)


@pytest.mark.parametrize("seed", range(5))
def test_random_genotypes_decode_to_feasible_schedules(seed, flexible_job_shop):
    codec = GenotypeCodec(flexible_job_shop)
    genotype = random_genotype(flexible_job_shop, rng=random.Random(seed))
    codec.validate(genotype)
    sched = codec.decode(genotype)
    assert sched.is_complete(flexible_job_shop)
    assert find_violations(flexible_job_shop, sched) == []


def test_random_genotype_reproducible(flexible_job_shop):
    g1 = random_genotype(flexible_job_shop, rng=random.Random(4))
    g2 = random_genotype(flexible_job_shop, rng=random.Random(4))
    assert g1 == g2


def test_load_balanced_genotype_spreads_load():
    tasks = [Task(f"T{i}", (Activity(f"a{i}", 10, ("R1", "R2")),)) for i in range(2)]
    inst = ProblemInstance.build(tasks, [Resource("R1"), Resource("R2")])
    genotype = load_balanced_genotype(inst, rng=random.Random(0))
    assert genotype.mav == (0, 1)
    assert sorted(genotype.osv) == ["a0", "a1"]


def test_shortest_time_genotype_picks_fastest_resource():
    genotype = shortest_time_genotype(flexible_single(), rng=random.Random(0))
    assert genotype.mav == (1,)


def test_seed_genotype_reproduces_greedy(fixed_job_shop):
    genotype = seed_genotype(fixed_job_shop, Rule.EDD)
    codec = GenotypeCodec(fixed_job_shop)
    greedy = greedy_schedule(fixed_job_shop, Rule.EDD)
    assert codec.fitness(genotype) == evaluate_kpis(fixed_job_shop, greedy)


def test_evaluate_uses_cache(fixed_job_shop):
    codec = GenotypeCodec(fixed_job_shop)
    genotype = random_genotype(fixed_job_shop, rng=random.Random(1))
    cache: dict = {}
    first = codec.evaluate(genotype, cache=cache)
    second = codec.evaluate(genotype, cache=cache)
    assert isinstance(first, KpiVector)
    assert second is first
    assert len(cache) == 1
    kpis, sched = codec.evaluate(genotype, cache=cache, return_schedule=True)
    assert kpis is first
    assert sched.makespan == first.makespan


def test_mav_resource_without_window_is_unschedulable():
    act = Activity("op", 10, ("R1", "R2"))
    inst = ProblemInstance.build(
        [Task("T", (act,))],
        [Resource("R1"), Resource("R2", calendar=Calendar.from_pairs(windows=[(0, 5)]))],
    )
    codec = GenotypeCodec(inst)
    assert codec.decode(Genotype(("op",), (0,))).makespan == 10
    with pytest.raises(UnschedulableActivity):
        codec.decode(Genotype(("op",), (1,)))


class IntLike:
    """Integer-like MAV entry, as produced by array-based GA loops."""

    def __init__(self, value: int) -> None:
        self.value = value

    def __index__(self) -> int:
        return self.value


def test_integer_like_mav_values_accepted():
    codec = GenotypeCodec(flexible_single())
    on_r2 = codec.decode(Genotype(("op",), (IntLike(1),))).assignment_for("op")
    assert on_r2.resource_id == "R2"
    assert on_r2.end - on_r2.start == 8


@pytest.mark.parametrize("value", [IntLike(2), IntLike(-1), True, "1", 1.0])
def test_non_index_or_out_of_range_mav_rejected(value):
    codec = GenotypeCodec(flexible_single())
    with pytest.raises(MalformedGenotype):
        codec.validate(Genotype(("op",), (value,)))
