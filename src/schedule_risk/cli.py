"""Command-line entry point: validate a task CSV, simulate it, print the results."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from schedule_risk.config import (
    DEFAULT_CONFIDENCE_LEVEL,
    DEFAULT_PERCENTILES,
    DEFAULT_SIMULATION_RUNS,
    SimulationConfig,
)
from schedule_risk.cpm.errors import ScheduleError
from schedule_risk.cpm.monte_carlo import MonteCarloEngine
from schedule_risk.cpm.report import SimulationResult
from schedule_risk.loaders.task_loader import read_tasks_csv
from schedule_risk.logging import get_logger, set_global_log_level
from schedule_risk.validation.task_validator import has_blocking_issues, validate_tasks

logger = get_logger(__name__)


def _parse_percentiles(text: str) -> List[float]:
    try:
        values = [float(p) for p in text.split(",") if p.strip()]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid percentile list: {text!r}") from None
    if not values:
        raise argparse.ArgumentTypeError("At least one percentile is required")
    return values


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="schedule-risk",
        description="Monte Carlo schedule and cost risk analysis for a task CSV.",
    )
    parser.add_argument("tasks", type=Path, help="Task CSV file")
    parser.add_argument("--runs", type=int, default=DEFAULT_SIMULATION_RUNS, help="Number of trials")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    parser.add_argument("--workers", type=int, default=1, help="Worker threads")
    parser.add_argument(
        "--percentiles",
        type=_parse_percentiles,
        default=list(DEFAULT_PERCENTILES),
        help="Comma-separated percentiles, e.g. 10,50,90",
    )
    parser.add_argument(
        "--confidence", type=float, default=DEFAULT_CONFIDENCE_LEVEL, help="Confidence level in percent"
    )
    parser.add_argument("--output", type=Path, default=None, help="Write the per-task table to this CSV")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def format_summary(result: SimulationResult) -> str:
    a = result.analysis
    lines = [f"Simulation Results ({result.valid_runs}/{result.requested_runs} valid runs)"]
    if a is None:
        lines.append("No simulation run produced a valid schedule.")
        return "\n".join(lines)

    lines.append(f"  Mean duration: {a.mean_duration:.2f} days (StdDev: {a.std_dev_duration:.2f})")
    lines.append(f"  Mean cost:     {a.mean_cost:.2f} (StdDev: {a.std_dev_cost:.2f})")
    lines.append(f"  Project SSI (Dur CoV): {a.schedule_sensitivity_index:.3f}")
    pct = pd.DataFrame(
        {"Duration": a.percentiles_duration, "Cost": a.percentiles_cost}
    )
    pct.index = [f"P{p:g}" for p in pct.index]
    lines.append(pct.to_string(float_format=lambda v: f"{v:.2f}"))
    lines.append(
        f"At a {a.confidence_level:g}% confidence level the project finishes within "
        f"{a.duration_at_confidence:.2f} days and costs less than {a.cost_at_confidence:.2f}."
    )
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        set_global_log_level(logging.DEBUG)

    try:
        tasks = read_tasks_csv(args.tasks)
    except (OSError, ValueError) as e:
        print(f"Error loading tasks: {e}", file=sys.stderr)
        return 1

    issues = validate_tasks(tasks)
    for issue in issues:
        print(
            f"[{issue['Severity']}] {issue['IssueType']} (task {issue['TaskID']}): {issue['Description']}",
            file=sys.stderr,
        )
    if has_blocking_issues(issues):
        return 1

    config = SimulationConfig(
        num_runs=args.runs,
        percentiles=tuple(args.percentiles),
        seed=args.seed,
        workers=args.workers,
        confidence_level=args.confidence,
    )
    try:
        result = MonteCarloEngine(config).run(tasks)
    except (ScheduleError, ValueError) as e:
        print(f"Simulation failed: {e}", file=sys.stderr)
        return 1

    print(format_summary(result))
    table = result.task_table()
    if not table.empty:
        print()
        print(table.to_string(index=False, float_format=lambda v: f"{v:.3f}"))

    if args.output is not None:
        table.to_csv(args.output, index=False)
        logger.info(f"Wrote task table to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
