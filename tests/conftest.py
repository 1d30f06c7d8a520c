from __future__ import annotations

import random

import pytest

from fleetopt.catalog import Catalog, HostType, Task


def _random_catalog(seed: int, *, num_hosts: int = 4, num_tasks: int = 6, float_costs: bool = False) -> Catalog:
    rng = random.Random(seed)
    hosts = []
    for i in range(num_hosts - 1):
        cap = (rng.randint(0, 8), rng.randint(0, 8))
        cost = round(rng.uniform(0.5, 10.0), 3) if float_costs else float(rng.randint(1, 10))
        hosts.append(HostType(id=f"h{i}", capacity=cap, cost=cost))
    # Large enough for every task, so each catalog is feasible.
    hosts.append(HostType(id=f"h{num_hosts - 1}", capacity=(8, 8), cost=float(rng.randint(5, 20))))
    tasks = [Task(id=f"t{j}", demand=(rng.randint(0, 6), rng.randint(0, 6))) for j in range(num_tasks)]
    return Catalog.create(host_types=hosts, tasks=tasks)


@pytest.fixture
def random_catalog():
    return _random_catalog


@pytest.fixture
def tiny_catalog() -> Catalog:
    return Catalog.create(
        host_types=[
            HostType(id="small", capacity=(2, 2), cost=1.0),
            HostType(id="large", capacity=(8, 8), cost=3.0),
        ],
        tasks=[
            Task(id="a", demand=(1, 1)),
            Task(id="b", demand=(1, 1)),
            Task(id="c", demand=(4, 2)),
        ],
    )
