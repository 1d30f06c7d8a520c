from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field

import cvxpy as cp
import numpy as np

from .catalog import Catalog
from .errors import Infeasible
from .feasibility import candidate_hosts, unplaceable_tasks
from .optimizer import BranchAndBoundOptimizer, OptimizerConfig, build_result
from .plan import OptimizationResult

_log = logging.getLogger(__name__)

# Preference order among mixed-integer capable cvxpy backends.
MILP_SOLVERS = ("HIGHS", "SCIPY", "GLPK_MI", "CBC", "SCIP", "GUROBI", "CPLEX")


@dataclass(frozen=True)
class IlpConfig:
    solver: str | None = None  # None: first installed entry of MILP_SOLVERS
    verbose: bool = False
    fallback: OptimizerConfig = field(default_factory=OptimizerConfig)


def pick_solver(preferred: str | None = None) -> str | None:
    installed = set(cp.installed_solvers())
    if preferred:
        return preferred if preferred in installed else None
    for name in MILP_SOLVERS:
        if name in installed:
            return name
    return None


class IlpOptimizer:
    """
    Same objective and constraints as the branch and bound search, as an integer program.

    x[t, h] = 1 places task t on host type h; n[h] counts instances. Per dimension,
    placed demand must fit in n[h] * capacity, so at the optimum n[h] is exactly the
    ceiling formula the cost model uses. Optimal cost matches branch and bound; among
    equal-cost assignments the solver may return any one.
    """

    def __init__(self, *, config: IlpConfig | None = None) -> None:
        self.config = config or IlpConfig()

    def solve(self, catalog: Catalog) -> OptimizationResult:
        missing = unplaceable_tasks(catalog)
        if missing:
            raise Infeasible(f"no host type fits task(s): {', '.join(missing)}", task_ids=missing)

        solver = pick_solver(self.config.solver)
        if solver is None:
            _log.warning("no mixed-integer solver available to cvxpy; using branch and bound")
            return self._fallback(catalog)

        t0 = time.monotonic()
        T = catalog.num_tasks
        H = catalog.num_host_types

        demand = np.array([catalog.demand(t) for t in range(T)], dtype=float)  # (T, D)
        capacity = np.array([catalog.capacity(h) for h in range(H)], dtype=float)  # (H, D)
        cost = np.array([catalog.cost(h) for h in range(H)], dtype=float)

        blocked = np.ones((T, H), dtype=float)
        for t in range(T):
            for h in candidate_hosts(catalog, t):
                blocked[t, h] = 0.0

        x = cp.Variable((T, H), boolean=True)
        n = cp.Variable(H, integer=True)

        constraints = []
        constraints.append(n >= 0)
        # Exactly one host type per task.
        constraints.append(cp.sum(x, axis=1) == 1)
        # Only pairs that fit.
        constraints.append(cp.multiply(x, blocked) == 0)
        # Aggregate demand per host type and dimension is covered by its instances.
        for d in range(catalog.num_dimensions):
            constraints.append(demand[:, d] @ x <= cp.multiply(capacity[:, d], n))

        problem = cp.Problem(cp.Minimize(cost @ n), constraints)

        try:
            problem.solve(solver=solver, verbose=self.config.verbose)
        except (cp.SolverError, ValueError) as e:
            _log.warning("cvxpy solver %s failed (%s); using branch and bound", solver, e)
            return self._fallback(catalog)

        if problem.status not in (cp.OPTIMAL, cp.OPTIMAL_INACCURATE) or x.value is None:
            _log.warning("cvxpy returned status %s; using branch and bound", problem.status)
            return self._fallback(catalog)

        xv = np.asarray(x.value, dtype=float)
        host_of = tuple(int(np.argmax(xv[t])) for t in range(T))
        obj_val = float(problem.value) if problem.value is not None else None
        elapsed_ms = (time.monotonic() - t0) * 1000.0
        _log.info("ilp (%s) finished: status=%s objective=%s (%.1f ms)", solver, problem.status, obj_val, elapsed_ms)
        return build_result(
            catalog,
            host_of,
            method="ilp",
            optimal=problem.status == cp.OPTIMAL,
            nodes=0,
            elapsed_ms=elapsed_ms,
            objective_value=obj_val,
        )

    def _fallback(self, catalog: Catalog) -> OptimizationResult:
        return BranchAndBoundOptimizer(config=self.config.fallback).solve(catalog)
