from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from .catalog_registry import load_catalog, save_catalog_json
from .errors import FleetOptError, Infeasible
from .experiment_runner import METHODS, ExperimentConfig, run_experiment, run_solver
from .optimizer import OptimizerConfig
from .presets import PRESETS
from .reporting import print_result, result_to_jsonable
from .telemetry import TelemetryLogger, default_run_id, make_run_dir, solve_event


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fleetopt", description="Cost-optimal host type provisioning for a fixed task set.")
    p.add_argument("--log_level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = p.add_subparsers(dest="command", required=True)

    solve = sub.add_parser("solve", help="Find the cheapest assignment of tasks to host types")
    solve_src = solve.add_mutually_exclusive_group()
    solve_src.add_argument("--catalog", default=None, help="Path to catalog JSON (defaults to the staircase preset)")
    solve_src.add_argument("--preset", choices=sorted(PRESETS), default=None, help="Use a built-in catalog instead of a file")
    solve.add_argument("--method", choices=METHODS, default="bnb", help="bnb=branch and bound, ilp=CVXPY integer program")
    solve.add_argument("--workers", type=int, default=1, help="Threads for branch and bound (1 = sequential)")
    solve.add_argument("--time_limit_s", type=float, default=None, help="Stop early and report best found so far")
    solve.add_argument("--no_fractional_bound", action="store_true", help="Prune on committed cost only")
    solve.add_argument("--ilp_solver", default=None, help="cvxpy solver name for --method ilp")
    solve.add_argument("--run_id", default=None, help="Run id (defaults to timestamp)")
    solve.add_argument("--runs_dir", default="runs", help="Base output dir for telemetry")
    solve.add_argument("--json", action="store_true", help="Print the result as JSON instead of a table")

    write_catalog = sub.add_parser("write-catalog", help="Write a preset catalog as JSON")
    write_catalog.add_argument("--preset", choices=sorted(PRESETS), required=True)
    write_catalog.add_argument("--out", required=True, help="Output JSON path")

    exp = sub.add_parser("experiment", help="Sweep one host type's unit cost and re-solve")
    exp_src = exp.add_mutually_exclusive_group()
    exp_src.add_argument("--catalog", default=None)
    exp_src.add_argument("--preset", choices=sorted(PRESETS), default=None)
    exp.add_argument("--host_id", required=True, help="Host type whose cost is scaled")
    exp.add_argument("--multipliers", default="0.5,1.0,1.5,2.0", help="Comma-separated list")
    exp.add_argument("--method", choices=METHODS, default="bnb")
    exp.add_argument("--workers", type=int, default=1)
    exp.add_argument("--time_limit_s", type=float, default=None)
    exp.add_argument("--ilp_solver", default=None)
    exp.add_argument("--output_dir", default="experiments")
    exp.add_argument("--exp_id", default=None)

    return p


def _catalog_from_args(args: argparse.Namespace):
    if args.preset:
        return PRESETS[args.preset]()
    return load_catalog(Path(args.catalog) if args.catalog else None)


def _solve(args: argparse.Namespace, console: Console) -> int:
    catalog = _catalog_from_args(args)
    cfg = OptimizerConfig(
        workers=args.workers,
        time_limit_s=args.time_limit_s,
        use_fractional_bound=not args.no_fractional_bound,
    )
    run_id = args.run_id or default_run_id()
    run_dir = make_run_dir(args.runs_dir, run_id=run_id)

    try:
        result = run_solver(catalog, method=args.method, optimizer=cfg, ilp_solver=args.ilp_solver)
    except Infeasible as e:
        if e.task_ids:
            console.print(f"[bold red]Infeasible[/bold red]: no host type fits {', '.join(e.task_ids)}")
        raise SystemExit(f"Infeasible: {e}")

    TelemetryLogger(run_dir=run_dir).log_solve(
        solve_event(result, run_id=run_id, solve_id=f"{run_id}-1", workers=cfg.workers, time_limit_s=cfg.time_limit_s)
    )
    summary = result_to_jsonable(result)
    (run_dir / "summary.json").write_text(json.dumps(summary, indent=2), encoding="utf-8")

    if args.json:
        console.print_json(json.dumps(summary))
    else:
        print_result(catalog, result, console=console)
        console.print(f"Telemetry: {str(run_dir / 'telemetry.jsonl')}")
    return 0


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )
    console = Console()
    try:
        if args.command == "solve":
            raise SystemExit(_solve(args, console))
        if args.command == "write-catalog":
            out = Path(args.out)
            save_catalog_json(PRESETS[args.preset](), out)
            console.print(f"Wrote {args.preset} catalog to {out}")
            raise SystemExit(0)
        if args.command == "experiment":
            multipliers = [float(x.strip()) for x in str(args.multipliers).split(",") if x.strip()]
            cfg = ExperimentConfig(
                exp_id=args.exp_id,
                output_dir=args.output_dir,
                host_id=args.host_id,
                multipliers=multipliers or [1.0],
                method=args.method,
                optimizer=OptimizerConfig(workers=args.workers, time_limit_s=args.time_limit_s),
                ilp_solver=args.ilp_solver,
            )
            catalog = _catalog_from_args(args)
            if args.host_id not in {h.id for h in catalog.host_types}:
                raise SystemExit(f"Unknown host type {args.host_id!r}.")
            raise SystemExit(run_experiment(cfg, catalog, console=console))
    except FleetOptError as e:
        raise SystemExit(f"{type(e).__name__}: {e}")


if __name__ == "__main__":
    main()
