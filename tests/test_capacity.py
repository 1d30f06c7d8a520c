from __future__ import annotations

import pytest

from fleetopt.capacity import host_instances, instances_for_totals, required_instances
from fleetopt.errors import Unsatisfiable


def test_two_small_tasks_share_one_instance():
    assert required_instances((2, 2), [(1, 1), (1, 1)]) == 1


def test_ceiling_per_dimension():
    assert required_instances((2, 2), [(1, 1), (1, 1), (1, 0)]) == 2
    assert required_instances((4, 10), [(3, 1), (3, 1)]) == 2


def test_bottleneck_dimension_wins():
    # cpu needs ceil(3/4) = 1, mem needs ceil(25/8) = 4
    assert required_instances((4, 8), [(1, 10), (2, 15)]) == 4


def test_no_tasks_needs_no_instances():
    assert required_instances((4, 8), []) == 0
    assert instances_for_totals((4, 8), (0, 0)) == 0


def test_zero_capacity_with_zero_demand_is_fine():
    assert required_instances((0, 5), [(0, 3), (0, 4)]) == 2


def test_zero_capacity_with_positive_demand_is_unsatisfiable():
    with pytest.raises(Unsatisfiable) as exc:
        required_instances((0, 5), [(1, 1)], host_id="memonly")
    assert exc.value.host_id == "memonly"
    assert exc.value.dimension == 0


def test_host_instances_uses_catalog(tiny_catalog):
    assert host_instances(tiny_catalog, 0, [0, 1]) == 1
    assert host_instances(tiny_catalog, 1, [0, 1, 2]) == 1
