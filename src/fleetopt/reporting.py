from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.table import Table

from .catalog import Catalog
from .plan import OptimizationResult


def result_to_jsonable(result: OptimizationResult) -> dict[str, Any]:
    return {
        "method": result.method,
        "optimal": result.optimal,
        "total_cost": float(result.total_cost),
        "assignment": {tid: hid for tid, hid in zip(result.task_ids, result.host_ids())},
        "instances": result.instance_counts(),
        "nodes_explored": int(result.nodes_explored),
        "elapsed_ms": float(result.elapsed_ms),
        "objective_value": result.objective_value,
    }


def plan_table(catalog: Catalog, result: OptimizationResult) -> Table:
    """One row per host type that is actually provisioned."""
    title = f"Provisioning plan ({result.method}, {'optimal' if result.optimal else 'best found, not proven optimal'})"
    table = Table(title=title)
    table.add_column("host type")
    for dim in catalog.dimensions:
        table.add_column(dim, justify="right")
    table.add_column("unit cost", justify="right")
    table.add_column("instances", justify="right")
    table.add_column("subtotal", justify="right")
    table.add_column("tasks")

    for h, ht in enumerate(catalog.host_types):
        n = result.plan.instances[h]
        if n == 0:
            continue
        tasks = sorted(result.assignment.tasks_on[h])
        table.add_row(
            ht.id,
            *[str(c) for c in ht.capacity],
            f"{ht.cost:g}",
            str(n),
            f"{n * ht.cost:g}",
            ", ".join(catalog.tasks[t].id for t in tasks),
        )
    return table


def print_result(catalog: Catalog, result: OptimizationResult, *, console: Console) -> None:
    console.print(plan_table(catalog, result))
    console.print(f"[bold]Total cost[/bold]: {result.total_cost:g}")
    console.print(f"Nodes explored: {result.nodes_explored}  Elapsed: {result.elapsed_ms:.1f} ms")
