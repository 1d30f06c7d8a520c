from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .errors import InvalidCatalog

DEFAULT_DIMENSIONS = ("cpu", "mem")


@dataclass(frozen=True)
class HostType:
    id: str
    capacity: tuple[int, ...]  # one entry per resource dimension
    cost: float  # per instance


@dataclass(frozen=True)
class Task:
    id: str
    demand: tuple[int, ...]


@dataclass(frozen=True)
class Catalog:
    """
    Read-only host types and tasks.

    List order is identifier order: host type 0 is the first entry, and so on.
    The optimizer's tie-break relies on this order. Build through `Catalog.create`
    so the invariants below are checked.
    """

    host_types: tuple[HostType, ...]
    tasks: tuple[Task, ...]
    dimensions: tuple[str, ...]

    @staticmethod
    def create(
        host_types: Sequence[HostType],
        tasks: Sequence[Task],
        dimensions: Sequence[str] | None = None,
    ) -> "Catalog":
        hosts = tuple(HostType(id=str(h.id), capacity=tuple(h.capacity), cost=h.cost) for h in host_types)
        tsks = tuple(Task(id=str(t.id), demand=tuple(t.demand)) for t in tasks)
        if not hosts:
            raise InvalidCatalog("catalog must contain at least one host type")
        if not tsks:
            raise InvalidCatalog("catalog must contain at least one task")

        ndim = len(hosts[0].capacity)
        if dimensions is None:
            dims = DEFAULT_DIMENSIONS if ndim == len(DEFAULT_DIMENSIONS) else tuple(f"d{i}" for i in range(ndim))
        else:
            dims = tuple(str(d) for d in dimensions)
        if ndim == 0:
            raise InvalidCatalog("resource vectors must have at least one dimension")
        if len(dims) != ndim or len(set(dims)) != ndim:
            raise InvalidCatalog(f"dimension labels {list(dims)} do not match {ndim} resource dimensions")

        _check_unique([h.id for h in hosts], "host type")
        _check_unique([t.id for t in tsks], "task")

        for h in hosts:
            _check_vector(h.capacity, ndim, f"host type {h.id!r} capacity")
            if isinstance(h.cost, bool) or not isinstance(h.cost, (int, float)) or not math.isfinite(h.cost) or h.cost < 0:
                raise InvalidCatalog(f"host type {h.id!r} cost must be a finite non-negative number, got {h.cost!r}")
        for t in tsks:
            _check_vector(t.demand, ndim, f"task {t.id!r} demand")

        return Catalog(host_types=hosts, tasks=tsks, dimensions=dims)

    @property
    def num_host_types(self) -> int:
        return len(self.host_types)

    @property
    def num_tasks(self) -> int:
        return len(self.tasks)

    @property
    def num_dimensions(self) -> int:
        return len(self.dimensions)

    def capacity(self, h: int) -> tuple[int, ...]:
        return self.host_types[h].capacity

    def demand(self, t: int) -> tuple[int, ...]:
        return self.tasks[t].demand

    def cost(self, h: int) -> float:
        return float(self.host_types[h].cost)

    def host_index(self, host_id: str) -> int:
        for i, h in enumerate(self.host_types):
            if h.id == host_id:
                return i
        raise KeyError(host_id)

    def task_index(self, task_id: str) -> int:
        for i, t in enumerate(self.tasks):
            if t.id == task_id:
                return i
        raise KeyError(task_id)


def _check_unique(ids: list[str], kind: str) -> None:
    seen: set[str] = set()
    for i in ids:
        if i in seen:
            raise InvalidCatalog(f"duplicate {kind} id {i!r}")
        seen.add(i)


def _check_vector(values: tuple[int, ...], ndim: int, what: str) -> None:
    if len(values) != ndim:
        raise InvalidCatalog(f"{what} has {len(values)} dimensions, expected {ndim}")
    for v in values:
        if isinstance(v, bool) or not isinstance(v, int):
            raise InvalidCatalog(f"{what} must contain integers, got {v!r}")
        if v < 0:
            raise InvalidCatalog(f"{what} must be non-negative, got {v!r}")
