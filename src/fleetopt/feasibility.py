from __future__ import annotations

from .catalog import Catalog, HostType, Task
from .plan import Assignment


def fits(task: Task, host_type: HostType) -> bool:
    # Per-pair check only; co-location is the capacity aggregator's job.
    return all(d <= c for d, c in zip(task.demand, host_type.capacity))


def candidate_hosts(catalog: Catalog, t: int) -> tuple[int, ...]:
    """Host type indices that fit task `t`, ascending."""
    task = catalog.tasks[t]
    return tuple(h for h, ht in enumerate(catalog.host_types) if fits(task, ht))


def is_locally_feasible(catalog: Catalog, assignment: Assignment) -> bool:
    return all(fits(catalog.tasks[t], catalog.host_types[h]) for t, h in enumerate(assignment.host_of))


def unplaceable_tasks(catalog: Catalog) -> list[str]:
    return [task.id for t, task in enumerate(catalog.tasks) if not candidate_hosts(catalog, t)]
