from __future__ import annotations

import math
from dataclasses import replace

import pytest

from fleetopt.catalog import Catalog, HostType, Task
from fleetopt.cost import provision
from fleetopt.errors import Infeasible, SearchTimeout
from fleetopt.feasibility import fits, is_locally_feasible
from fleetopt.optimizer import BranchAndBoundOptimizer, OptimizerConfig, SharedIncumbent, exhaustive_search, optimize
from fleetopt.presets import preset_staircase

SEEDS = list(range(12))


def test_tiny_catalog(tiny_catalog):
    result = optimize(tiny_catalog)
    # Everything fits on one large instance (6, 4) <= (8, 8) for 3.0.
    assert result.total_cost == 3.0
    assert result.host_ids() == ["large", "large", "large"]
    assert result.instance_counts() == {"small": 0, "large": 1}
    assert result.optimal
    assert result.method == "branch_and_bound"


@pytest.mark.parametrize("n", [3, 5, 7])
def test_staircase_matches_exhaustive(n):
    cat = preset_staircase(n)
    got = optimize(cat)
    ref = exhaustive_search(cat)
    assert got.total_cost == ref.total_cost
    assert got.assignment == ref.assignment


def _best_cost_by_subsets(cat: Catalog) -> float:
    """
    Brute-force optimum over every split of the tasks into one group per host type.

    Cost is a sum of independent per-host-type terms, so a DP over (host types done,
    tasks placed) covers every assignment without enumerating all H ** T of them.
    """
    T = cat.num_tasks
    full = (1 << T) - 1
    group_costs: list[dict[int, float]] = []
    for ht in cat.host_types:
        costs: dict[int, float] = {}
        for mask in range(full + 1):
            members = [t for t in range(T) if mask >> t & 1]
            if not all(fits(cat.tasks[t], ht) for t in members):
                continue
            n = 0
            for d, cap in enumerate(ht.capacity):
                total = sum(cat.tasks[t].demand[d] for t in members)
                if total:
                    n = max(n, math.ceil(total / cap))
            costs[mask] = n * ht.cost
        group_costs.append(costs)

    best = {0: 0.0}
    for costs in group_costs:
        nxt: dict[int, float] = {}
        for placed, c in best.items():
            rest = full & ~placed
            sub = rest
            while True:
                if sub in costs:
                    key = placed | sub
                    nxt[key] = min(nxt.get(key, math.inf), c + costs[sub])
                if sub == 0:
                    break
                sub = (sub - 1) & rest
        best = nxt
    return best[full]


def test_staircase_ten_by_ten_matches_brute_force():
    cat = preset_staircase(10)
    result = optimize(cat)
    assert result.total_cost == pytest.approx(_best_cost_by_subsets(cat))
    assert result.optimal
    assert is_locally_feasible(cat, result.assignment)
    assert provision(cat, result.assignment) == result.plan


@pytest.mark.parametrize("seed", SEEDS[:4])
def test_larger_random_catalogs_match_brute_force(random_catalog, seed):
    cat = random_catalog(seed, num_hosts=5, num_tasks=9)
    assert optimize(cat).total_cost == pytest.approx(_best_cost_by_subsets(cat))


@pytest.mark.parametrize("seed", SEEDS)
def test_matches_exhaustive_on_random_catalogs(random_catalog, seed):
    cat = random_catalog(seed)
    got = optimize(cat)
    ref = exhaustive_search(cat)
    assert got.total_cost == pytest.approx(ref.total_cost)
    # Same tie-break: first optimum in (task, host) enumeration order.
    assert got.assignment == ref.assignment


@pytest.mark.parametrize("seed", SEEDS[:6])
def test_float_costs_match_exhaustive(random_catalog, seed):
    cat = random_catalog(seed, float_costs=True)
    assert optimize(cat).total_cost == pytest.approx(exhaustive_search(cat).total_cost)


@pytest.mark.parametrize("seed", SEEDS[:6])
def test_committed_cost_bound_alone_is_still_exact(random_catalog, seed):
    cat = random_catalog(seed)
    plain = optimize(cat, OptimizerConfig(use_fractional_bound=False))
    full = optimize(cat)
    assert plain.total_cost == full.total_cost
    assert plain.assignment == full.assignment
    assert full.nodes_explored <= plain.nodes_explored


@pytest.mark.parametrize("seed", SEEDS)
def test_parallel_equals_sequential(random_catalog, seed):
    cat = random_catalog(seed, num_hosts=5, num_tasks=7)
    seq = optimize(cat)
    par = optimize(cat, OptimizerConfig(workers=4))
    assert par.total_cost == seq.total_cost
    assert par.assignment == seq.assignment
    assert par.optimal


def test_result_is_locally_feasible(random_catalog):
    cat = random_catalog(99, num_hosts=5, num_tasks=8)
    result = optimize(cat)
    for t, h in enumerate(result.assignment.host_of):
        assert fits(cat.tasks[t], cat.host_types[h])


def test_idempotent(random_catalog):
    cat = random_catalog(7, num_hosts=5, num_tasks=7)
    a = optimize(cat)
    b = optimize(cat)
    assert a.total_cost == b.total_cost
    assert a.assignment == b.assignment


@pytest.mark.parametrize("seed", SEEDS[:6])
def test_raising_a_unit_cost_never_lowers_best_cost(random_catalog, seed):
    cat = random_catalog(seed)
    base = optimize(cat).total_cost
    for h in range(cat.num_host_types):
        hosts = list(cat.host_types)
        hosts[h] = replace(hosts[h], cost=hosts[h].cost * 1.5 + 1)
        bumped = Catalog.create(host_types=hosts, tasks=cat.tasks)
        assert optimize(bumped).total_cost >= base


def test_infeasible_task_is_reported():
    cat = Catalog.create(
        host_types=[HostType("a", (4, 4), 1.0), HostType("b", (8, 2), 2.0)],
        tasks=[Task("ok", (1, 1)), Task("huge", (6, 6))],
    )
    with pytest.raises(Infeasible) as exc:
        optimize(cat)
    assert exc.value.task_ids == ["huge"]
    with pytest.raises(Infeasible):
        exhaustive_search(cat)


def test_zero_capacity_host_type_is_usable_for_zero_demand():
    cat = Catalog.create(
        host_types=[HostType("memonly", (0, 5), 1.0), HostType("general", (4, 4), 5.0)],
        tasks=[Task("cache", (0, 5)), Task("web", (1, 1))],
    )
    result = optimize(cat)
    assert result.host_ids() == ["memonly", "general"]
    assert result.total_cost == 6.0


def test_time_limit_without_solution_raises():
    cat = preset_staircase(6)
    opt = BranchAndBoundOptimizer(config=OptimizerConfig(time_limit_s=0.0, check_every=1))
    with pytest.raises(SearchTimeout):
        opt.solve(cat)


def test_time_limit_after_first_solution_returns_best_found(random_catalog):
    cat = random_catalog(3, num_hosts=8, num_tasks=14)
    cfg = OptimizerConfig(time_limit_s=0.05, check_every=1, use_fractional_bound=False)
    result = optimize(cat, cfg)
    assert not result.optimal
    assert is_locally_feasible(cat, result.assignment)
    assert result.total_cost == provision(cat, result.assignment).total_cost
    assert result.nodes_explored > cat.num_tasks


def test_generous_time_limit_still_certifies():
    result = optimize(preset_staircase(6), OptimizerConfig(time_limit_s=60.0))
    assert result.optimal
    assert result.total_cost == 42.0


def test_shared_incumbent_prefers_earlier_branch_on_ties():
    inc = SharedIncumbent()
    assert inc.offer(10.0, 3)
    assert inc.offer(10.0, 1)
    assert not inc.offer(10.0, 2)
    assert inc.offer(9.0, 5)
    assert inc.cost == 9.0
    # Equal bound: only branches at or after the holder's rank are pruned.
    assert inc.dominates(9.0, 5)
    assert inc.dominates(9.0, 7)
    assert not inc.dominates(9.0, 4)
    assert inc.dominates(9.5, 0)
    assert not inc.dominates(8.0, 9)
