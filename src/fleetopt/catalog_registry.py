from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .catalog import Catalog, HostType, Task
from .errors import InvalidCatalog
from .presets import preset_staircase


class _HostTypeIn(BaseModel):
    id: str
    capacity: list[int] = Field(..., min_length=1)
    cost: float = Field(..., ge=0.0, allow_inf_nan=False)


class _TaskIn(BaseModel):
    id: str
    demand: list[int] = Field(..., min_length=1)


class _CatalogIn(BaseModel):
    dimensions: list[str] | None = None
    host_types: list[_HostTypeIn]
    tasks: list[_TaskIn]


def catalog_to_jsonable(catalog: Catalog) -> dict[str, Any]:
    return {
        "dimensions": list(catalog.dimensions),
        "host_types": [{"id": h.id, "capacity": list(h.capacity), "cost": float(h.cost)} for h in catalog.host_types],
        "tasks": [{"id": t.id, "demand": list(t.demand)} for t in catalog.tasks],
    }


def catalog_from_jsonable(data: Any) -> Catalog:
    try:
        parsed = _CatalogIn.model_validate(data)
    except ValidationError as e:
        raise InvalidCatalog(f"catalog does not match schema: {e}") from e
    return Catalog.create(
        host_types=[HostType(id=h.id, capacity=tuple(h.capacity), cost=float(h.cost)) for h in parsed.host_types],
        tasks=[Task(id=t.id, demand=tuple(t.demand)) for t in parsed.tasks],
        dimensions=parsed.dimensions,
    )


def save_catalog_json(catalog: Catalog, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(catalog_to_jsonable(catalog), indent=2), encoding="utf-8")


def load_catalog(path: Path | None) -> Catalog:
    if path is None:
        return preset_staircase()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidCatalog(f"{path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidCatalog("catalog file must be a JSON object with host_types and tasks")
    return catalog_from_jsonable(data)
