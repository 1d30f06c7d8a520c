from __future__ import annotations

from .catalog import Catalog, HostType, Task


def preset_staircase(n: int = 10) -> Catalog:
    """
    Host type i has capacity (i, i) at cost 2i; task i demands (i, i), for i = 1..n.

    Task i fits only host types i..n. Every host type costs the same per unit of
    capacity, so plans without stranded capacity are optimal.
    """
    return Catalog.create(
        host_types=[HostType(id=f"h{i}", capacity=(i, i), cost=2.0 * i) for i in range(1, n + 1)],
        tasks=[Task(id=f"t{i}", demand=(i, i)) for i in range(1, n + 1)],
    )


def preset_cloud_small() -> Catalog:
    """
    General-purpose / compute / memory machine shapes (vCPU, GiB) with hourly prices,
    and a mixed batch of services.
    """
    return Catalog.create(
        host_types=[
            HostType(id="e2-standard-2", capacity=(2, 8), cost=0.067),
            HostType(id="e2-standard-4", capacity=(4, 16), cost=0.134),
            HostType(id="e2-standard-8", capacity=(8, 32), cost=0.268),
            HostType(id="c2-standard-8", capacity=(8, 32), cost=0.334),
            HostType(id="e2-highcpu-8", capacity=(8, 8), cost=0.198),
            HostType(id="e2-highmem-4", capacity=(4, 32), cost=0.181),
        ],
        tasks=[
            Task(id="api", demand=(2, 4)),
            Task(id="worker-a", demand=(3, 2)),
            Task(id="worker-b", demand=(3, 2)),
            Task(id="cache", demand=(1, 24)),
            Task(id="db", demand=(4, 16)),
            Task(id="batch", demand=(6, 6)),
            Task(id="ingest", demand=(1, 2)),
            Task(id="metrics", demand=(1, 4)),
        ],
    )


PRESETS = {
    "staircase": preset_staircase,
    "cloud_small": preset_cloud_small,
}
