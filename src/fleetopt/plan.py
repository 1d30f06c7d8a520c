from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence


@dataclass(frozen=True)
class Assignment:
    """
    Task index -> host type index, with the inverse derived at construction.

    `host_of[t] == h` iff `t in tasks_on[h]`; both views come from the same tuple
    so they cannot drift apart.
    """

    host_of: tuple[int, ...]
    num_host_types: int
    tasks_on: tuple[frozenset[int], ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        host_of = tuple(int(h) for h in self.host_of)
        buckets: list[set[int]] = [set() for _ in range(self.num_host_types)]
        for t, h in enumerate(host_of):
            if not 0 <= h < self.num_host_types:
                raise ValueError(f"task {t} assigned to unknown host type index {h}")
            buckets[h].add(t)
        object.__setattr__(self, "host_of", host_of)
        object.__setattr__(self, "tasks_on", tuple(frozenset(b) for b in buckets))

    @staticmethod
    def from_hosts(host_of: Sequence[int], *, num_host_types: int) -> "Assignment":
        return Assignment(host_of=tuple(host_of), num_host_types=num_host_types)

    @property
    def num_tasks(self) -> int:
        return len(self.host_of)


@dataclass(frozen=True)
class ProvisioningPlan:
    instances: tuple[int, ...]  # indexed by host type
    total_cost: float


@dataclass(frozen=True)
class OptimizationResult:
    assignment: Assignment
    plan: ProvisioningPlan
    optimal: bool  # False when a time limit cut the search short
    method: str  # "branch_and_bound" | "ilp" | "exhaustive"
    nodes_explored: int = 0
    elapsed_ms: float = 0.0
    objective_value: float | None = None  # solver objective (ilp only)
    host_type_ids: tuple[str, ...] = ()
    task_ids: tuple[str, ...] = ()

    @property
    def total_cost(self) -> float:
        return self.plan.total_cost

    def host_ids(self) -> list[str]:
        """Host type id per task, in task order."""
        return [self.host_type_ids[h] for h in self.assignment.host_of]

    def instance_counts(self) -> dict[str, int]:
        return {hid: n for hid, n in zip(self.host_type_ids, self.plan.instances)}
