from __future__ import annotations


class FleetOptError(Exception):
    """Base class for every error raised by fleetopt."""


class InvalidCatalog(FleetOptError, ValueError):
    """Malformed host types or tasks (detected eagerly at load)."""


class Infeasible(FleetOptError):
    """No locally feasible complete assignment exists."""

    def __init__(self, message: str, *, task_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.task_ids = list(task_ids or [])


class Unsatisfiable(FleetOptError):
    """Aggregate demand at a host type cannot be met by any number of instances."""

    def __init__(self, message: str, *, host_id: str | None = None, dimension: int | None = None) -> None:
        super().__init__(message)
        self.host_id = host_id
        self.dimension = dimension


class SearchTimeout(FleetOptError):
    """Time limit reached before any complete assignment was found."""
