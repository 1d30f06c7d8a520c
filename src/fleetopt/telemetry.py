from __future__ import annotations

import json
import os
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from .plan import OptimizationResult


@dataclass(frozen=True)
class SolveTelemetry:
    event: str  # "solve"
    ts_ms: float
    run_id: str
    solve_id: str
    method: str  # "branch_and_bound" | "ilp" | "exhaustive"
    num_host_types: int
    num_tasks: int
    total_cost: float
    optimal: bool
    nodes_explored: int
    elapsed_ms: float
    objective_value: float | None
    assignment: list[str]  # host type id per task
    instances: dict[str, int]
    workers: int = 1
    time_limit_s: float | None = None
    error: str | None = None


class TelemetryLogger:
    def __init__(self, *, run_dir: Path) -> None:
        self.run_dir = run_dir
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.run_dir / "telemetry.jsonl"
        self.path.touch(exist_ok=True)

    def write(self, obj: Any) -> None:
        line = json.dumps(obj, ensure_ascii=False)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def log_solve(self, st: SolveTelemetry) -> None:
        self.write(asdict(st))


def solve_event(
    result: OptimizationResult,
    *,
    run_id: str,
    solve_id: str,
    workers: int = 1,
    time_limit_s: float | None = None,
) -> SolveTelemetry:
    return SolveTelemetry(
        event="solve",
        ts_ms=now_ms(),
        run_id=run_id,
        solve_id=solve_id,
        method=result.method,
        num_host_types=len(result.host_type_ids),
        num_tasks=len(result.task_ids),
        total_cost=float(result.total_cost),
        optimal=bool(result.optimal),
        nodes_explored=int(result.nodes_explored),
        elapsed_ms=float(result.elapsed_ms),
        objective_value=result.objective_value,
        assignment=result.host_ids(),
        instances=result.instance_counts(),
        workers=workers,
        time_limit_s=time_limit_s,
    )


def read_events(run_dir: Path, event: str = "solve") -> list[dict[str, Any]]:
    path = run_dir / "telemetry.jsonl"
    if not path.exists():
        return []
    out = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        d = json.loads(line)
        if d.get("event") == event:
            out.append(d)
    return out


def now_ms() -> float:
    return time.time() * 1000.0


def make_run_dir(base: str = "runs", *, run_id: str) -> Path:
    d = Path(base) / run_id
    d.mkdir(parents=True, exist_ok=True)
    return d


def default_run_id() -> str:
    return time.strftime("%Y%m%d-%H%M%S") + f"-{os.getpid()}"
