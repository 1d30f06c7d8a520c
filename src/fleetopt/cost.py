from __future__ import annotations

from .capacity import host_instances
from .catalog import Catalog
from .plan import Assignment, ProvisioningPlan


def provision(catalog: Catalog, assignment: Assignment) -> ProvisioningPlan:
    if assignment.num_tasks != catalog.num_tasks or assignment.num_host_types != catalog.num_host_types:
        raise ValueError("assignment does not match catalog shape")
    instances = tuple(host_instances(catalog, h, assignment.tasks_on[h]) for h in range(catalog.num_host_types))
    total = sum(n * catalog.cost(h) for h, n in enumerate(instances))
    return ProvisioningPlan(instances=instances, total_cost=float(total))


def total_cost(catalog: Catalog, assignment: Assignment) -> float:
    return provision(catalog, assignment).total_cost
