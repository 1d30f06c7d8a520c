from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from .capacity import instances_for_totals
from .catalog import Catalog
from .cost import provision
from .errors import Infeasible, SearchTimeout, Unsatisfiable
from .feasibility import candidate_hosts, unplaceable_tasks
from .plan import Assignment, OptimizationResult

_log = logging.getLogger(__name__)

# Costs closer than this (relative) are treated as ties.
COST_RTOL = 1e-9


def _tol(cost: float) -> float:
    return COST_RTOL * max(1.0, abs(cost)) if math.isfinite(cost) else 0.0


@dataclass(frozen=True)
class OptimizerConfig:
    workers: int = 1
    time_limit_s: float | None = None
    use_fractional_bound: bool = True
    check_every: int = 1024  # nodes between deadline checks


class SharedIncumbent:
    """
    Best complete cost seen by any worker, with the rank of the branch that found it.

    Replaced only on a strictly lower cost, or on an equal cost from an earlier
    branch, so ties resolve to enumeration order no matter which worker finishes first.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._best: tuple[float, float] = (math.inf, math.inf)

    @property
    def cost(self) -> float:
        return self._best[0]

    def offer(self, cost: float, rank: int) -> bool:
        with self._lock:
            best_cost, best_rank = self._best
            tol = _tol(best_cost)
            if cost < best_cost - tol or (cost <= best_cost + tol and rank < best_rank):
                self._best = (cost, float(rank))
                return True
            return False

    def dominates(self, bound: float, rank: int) -> bool:
        best_cost, best_rank = self._best  # single read; tuple swap is atomic
        tol = _tol(best_cost)
        if bound > best_cost + tol:
            return True
        return bound >= best_cost - tol and best_rank <= rank


class _Stop(Exception):
    pass


@dataclass
class _BranchOutcome:
    rank: int
    cost: float
    host_of: tuple[int, ...] | None
    nodes: int
    stopped: bool


class _BranchSearch:
    """Depth-first search over one slice of task 0's host choices. Owns its mutable state."""

    def __init__(
        self,
        *,
        catalog: Catalog,
        cands: list[tuple[int, ...]],
        suffix: list[tuple[float, ...]],
        incumbent: SharedIncumbent,
        stop: threading.Event,
        deadline: float | None,
        config: OptimizerConfig,
    ) -> None:
        self.catalog = catalog
        self.cands = cands
        self.suffix = suffix
        self.incumbent = incumbent
        self.stop = stop
        self.deadline = deadline
        self.config = config

        self.T = catalog.num_tasks
        self.D = catalog.num_dimensions
        self.caps = [catalog.capacity(h) for h in range(catalog.num_host_types)]
        self.costs = [catalog.cost(h) for h in range(catalog.num_host_types)]
        self.demands = [catalog.demand(t) for t in range(self.T)]
        self.host_ids = [h.id for h in catalog.host_types]

        self.totals = [[0] * self.D for _ in range(catalog.num_host_types)]
        self.inst = [0] * catalog.num_host_types
        self.host_of = [0] * self.T
        self.nodes = 0
        self.rank = 0
        self.best_cost = math.inf
        self.best_host_of: tuple[int, ...] | None = None

    def run(self, rank: int, first_hosts: tuple[int, ...]) -> _BranchOutcome:
        self.rank = rank
        stopped = False
        try:
            self._expand(0, 0.0, (0.0,) * self.D, first_hosts)
        except _Stop:
            stopped = True
        return _BranchOutcome(
            rank=rank, cost=self.best_cost, host_of=self.best_host_of, nodes=self.nodes, stopped=stopped
        )

    def _tick(self) -> None:
        self.nodes += 1
        if self.stop.is_set():
            raise _Stop()
        if self.deadline is not None and self.nodes % self.config.check_every == 0:
            if time.monotonic() >= self.deadline:
                self.stop.set()
                raise _Stop()

    def _expand(self, k: int, committed: float, frac: tuple[float, ...], hosts: tuple[int, ...]) -> None:
        self._tick()
        if k == self.T:
            # The parent admitted this cost against the incumbent, so it beats our own best.
            self.best_cost = committed
            self.best_host_of = tuple(self.host_of)
            if self.incumbent.offer(committed, self.rank):
                _log.debug("incumbent %.4f from branch %d after %d nodes", committed, self.rank, self.nodes)
            return

        dem = self.demands[k]
        for h in hosts:
            row = self.totals[h]
            for d in range(self.D):
                row[d] += dem[d]
            old = self.inst[h]
            try:
                new = instances_for_totals(self.caps[h], row, host_id=self.host_ids[h])
            except Unsatisfiable:
                for d in range(self.D):
                    row[d] -= dem[d]
                continue

            self.inst[h] = new
            child_cost = committed + (new - old) * self.costs[h]
            child_frac = frac
            bound = child_cost
            if self.config.use_fractional_bound:
                cap = self.caps[h]
                child_frac = tuple(
                    frac[d] + dem[d] * self.costs[h] / cap[d] if dem[d] else frac[d] for d in range(self.D)
                )
                rest = self.suffix[k + 1]
                fb = max(child_frac[d] + rest[d] for d in range(self.D))
                bound = max(child_cost, fb)

            if not self.incumbent.dominates(bound, self.rank):
                self.host_of[k] = h
                next_hosts = self.cands[k + 1] if k + 1 < self.T else ()
                self._expand(k + 1, child_cost, child_frac, next_hosts)

            self.inst[h] = old
            for d in range(self.D):
                row[d] -= dem[d]


def _fractional_suffix(catalog: Catalog, cands: list[tuple[int, ...]]) -> list[tuple[float, ...]]:
    """
    suffix[k][d]: cheapest possible fractional spend on dimension d by tasks k..T-1.

    Any final plan pays at least sum(cost_h * load_h[d] / cap_h[d]) per dimension,
    and each task's share of that is at least demand[d] * min(cost_h / cap_h[d]).
    """
    D = catalog.num_dimensions
    suffix: list[tuple[float, ...]] = [(0.0,) * D]
    for t in range(catalog.num_tasks - 1, -1, -1):
        dem = catalog.demand(t)
        share = []
        for d in range(D):
            if dem[d] == 0:
                share.append(0.0)
                continue
            share.append(dem[d] * min(catalog.cost(h) / catalog.capacity(h)[d] for h in cands[t]))
        suffix.append(tuple(a + b for a, b in zip(suffix[-1], share)))
    suffix.reverse()
    return suffix


class BranchAndBoundOptimizer:
    def __init__(self, *, config: OptimizerConfig | None = None) -> None:
        self.config = config or OptimizerConfig()

    def solve(self, catalog: Catalog) -> OptimizationResult:
        t0 = time.monotonic()
        missing = unplaceable_tasks(catalog)
        if missing:
            raise Infeasible(f"no host type fits task(s): {', '.join(missing)}", task_ids=missing)

        cands = [candidate_hosts(catalog, t) for t in range(catalog.num_tasks)]
        suffix = _fractional_suffix(catalog, cands)
        incumbent = SharedIncumbent()
        stop = threading.Event()
        deadline = t0 + self.config.time_limit_s if self.config.time_limit_s is not None else None

        def search() -> _BranchSearch:
            return _BranchSearch(
                catalog=catalog,
                cands=cands,
                suffix=suffix,
                incumbent=incumbent,
                stop=stop,
                deadline=deadline,
                config=self.config,
            )

        workers = max(1, int(self.config.workers))
        if workers == 1 or len(cands[0]) == 1:
            outcomes = [search().run(0, cands[0])]
        else:
            # One job per host choice of task 0; rank = position in enumeration order.
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(search().run, rank, (h,)) for rank, h in enumerate(cands[0])]
                outcomes = [f.result() for f in futures]

        nodes = sum(o.nodes for o in outcomes)
        stopped = any(o.stopped for o in outcomes)
        found = [o for o in outcomes if o.host_of is not None]
        elapsed_ms = (time.monotonic() - t0) * 1000.0
        if not found:
            if stopped:
                raise SearchTimeout(f"time limit of {self.config.time_limit_s}s reached before any complete assignment")
            raise Infeasible("search exhausted without a complete assignment")

        found.sort(key=lambda o: o.rank)
        best = found[0]
        for o in found[1:]:
            if o.cost < best.cost - _tol(best.cost):
                best = o
        assert best.host_of is not None
        _log.info(
            "branch and bound finished: cost=%.4f nodes=%d workers=%d optimal=%s (%.1f ms)",
            best.cost,
            nodes,
            workers,
            not stopped,
            elapsed_ms,
        )
        return build_result(
            catalog, best.host_of, method="branch_and_bound", optimal=not stopped, nodes=nodes, elapsed_ms=elapsed_ms
        )


def optimize(catalog: Catalog, config: OptimizerConfig | None = None) -> OptimizationResult:
    return BranchAndBoundOptimizer(config=config).solve(catalog)


def exhaustive_search(catalog: Catalog) -> OptimizationResult:
    """Enumerate every locally feasible assignment. Reference oracle for small catalogs."""
    t0 = time.monotonic()
    missing = unplaceable_tasks(catalog)
    if missing:
        raise Infeasible(f"no host type fits task(s): {', '.join(missing)}", task_ids=missing)

    cands = [candidate_hosts(catalog, t) for t in range(catalog.num_tasks)]
    best_cost = math.inf
    best: tuple[int, ...] | None = None
    count = 0
    for combo in itertools.product(*cands):
        count += 1
        try:
            c = provision(catalog, Assignment.from_hosts(combo, num_host_types=catalog.num_host_types)).total_cost
        except Unsatisfiable:
            continue
        if c < best_cost - _tol(best_cost):
            best_cost, best = c, combo
    if best is None:
        raise Infeasible("no locally feasible assignment")
    return build_result(
        catalog, best, method="exhaustive", optimal=True, nodes=count, elapsed_ms=(time.monotonic() - t0) * 1000.0
    )


def build_result(
    catalog: Catalog,
    host_of: tuple[int, ...],
    *,
    method: str,
    optimal: bool,
    nodes: int,
    elapsed_ms: float,
    objective_value: float | None = None,
) -> OptimizationResult:
    assignment = Assignment.from_hosts(host_of, num_host_types=catalog.num_host_types)
    return OptimizationResult(
        assignment=assignment,
        plan=provision(catalog, assignment),
        optimal=optimal,
        method=method,
        nodes_explored=nodes,
        elapsed_ms=float(elapsed_ms),
        objective_value=objective_value,
        host_type_ids=tuple(h.id for h in catalog.host_types),
        task_ids=tuple(t.id for t in catalog.tasks),
    )
