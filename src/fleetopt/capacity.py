from __future__ import annotations

from typing import Iterable, Sequence

from .catalog import Catalog
from .errors import Unsatisfiable


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


def instances_for_totals(capacity: Sequence[int], totals: Sequence[int], *, host_id: str | None = None) -> int:
    """
    Instances needed so that every dimension's capacity covers its total demand.

    Each dimension is packed on its own (ceil(total / capacity)) and the bottleneck
    dimension wins. This is a lower bound on true multi-dimensional bin packing;
    it is the figure the cost model charges for.
    """
    need = 0
    for d, (cap, total) in enumerate(zip(capacity, totals)):
        if total == 0:
            continue
        if cap == 0:
            raise Unsatisfiable(
                f"host type {host_id or '?'} has zero capacity in dimension {d} but demand {total}",
                host_id=host_id,
                dimension=d,
            )
        need = max(need, _ceil_div(total, cap))
    return need


def required_instances(capacity: Sequence[int], demands: Iterable[Sequence[int]], *, host_id: str | None = None) -> int:
    totals = [0] * len(capacity)
    for dem in demands:
        for d, v in enumerate(dem):
            totals[d] += v
    return instances_for_totals(capacity, totals, host_id=host_id)


def host_instances(catalog: Catalog, h: int, task_indices: Iterable[int]) -> int:
    return required_instances(
        catalog.capacity(h),
        (catalog.demand(t) for t in task_indices),
        host_id=catalog.host_types[h].id,
    )
