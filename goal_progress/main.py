"""Command-line interface for the goal progress engine.

This module uses the ``click`` library to implement a multi-command
interface. Users point it at a JSON document holding goals, accounts and
balance snapshots (as exported by the storage layer) and can print a progress
report for every goal or inspect one goal's balance history. Results can be
printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import datetime, time
from pathlib import Path
from typing import Dict, List, Optional

import click

from .config import EngineSettings, settings_from_env
from .data_models import HistoryPoint
from .engine import MetricsResult, compute_all_metrics, compute_goal_metrics, summarize_portfolio
from .errors import ConfigurationError, GoalDataError, GoalProgressError
from .formatter import (
    metrics_to_dict,
    points_to_dicts,
    print_metrics,
    print_summary,
    print_trajectory,
    summary_to_dict,
)
from .records import GoalInputs, load_records_from_mapping
from .utils import decimal_from_value, parse_date


def parse_today(value: Optional[str]) -> datetime:
    """Parse the ``--today`` option; defaults to the current local time."""
    if not value:
        return datetime.now()
    try:
        return datetime.combine(parse_date(value), time.min)
    except GoalDataError as exc:
        raise click.BadParameter(str(exc), param_hint="--today")


def load_inputs(path: Path) -> GoalInputs:
    """Read and validate a goal data document."""
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{path} is not valid JSON: {exc}")
    try:
        return load_records_from_mapping(data)
    except GoalDataError as exc:
        raise click.ClickException(f"Invalid goal data in {path}: {exc}")


def build_settings(max_points: Optional[int], tolerance: Optional[str]) -> EngineSettings:
    """Combine ``GOALS_*`` environment settings with command-line overrides."""
    try:
        settings = settings_from_env()
        return EngineSettings(
            chart_max_points=max_points if max_points is not None else settings.chart_max_points,
            on_track_tolerance=(
                decimal_from_value(tolerance)
                if tolerance is not None
                else settings.on_track_tolerance
            ),
            days_per_month=settings.days_per_month,
        )
    except (ConfigurationError, GoalDataError) as exc:
        raise click.BadParameter(str(exc))


def export_metrics_to_json(
    path: Path, results: List[MetricsResult], summary: Dict[str, object]
) -> None:
    """Export metrics and portfolio summary to a JSON file."""
    data = {
        "summary": summary_to_dict(summary),
        "goals": [metrics_to_dict(r, include_trajectory=True) for r in results],
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_metrics_to_csv(path: Path, results: List[MetricsResult]) -> None:
    """Export one row of metrics per goal to a CSV file."""
    header = [
        "Goal_Id",
        "Name",
        "Status",
        "Current_Balance",
        "Target_Amount",
        "Progress_Pct",
        "Remaining_Amount",
        "Days_Remaining",
        "Monthly_Needed",
        "On_Track",
        "Projected_Completion",
        "Reason",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for r in results:
            row = metrics_to_dict(r)
            writer.writerow(
                [
                    row["goal_id"],
                    row["name"],
                    row["status"],
                    row.get("current_balance", ""),
                    row.get("target_amount", ""),
                    row.get("progress_pct", ""),
                    row.get("remaining_amount", ""),
                    "" if row.get("days_remaining") is None else row["days_remaining"],
                    "" if row.get("monthly_needed") is None else row["monthly_needed"],
                    "" if row.get("on_track") is None else row["on_track"],
                    row.get("projected_completion_date") or "",
                    row.get("reason", ""),
                ]
            )


def export_points(path: Path, points: List[HistoryPoint]) -> None:
    """Export a trajectory to JSON or CSV depending on the file suffix."""
    suffix = path.suffix.lower()
    if suffix == ".json":
        with path.open("w", encoding="utf-8") as f:
            json.dump({"points": points_to_dicts(points)}, f, indent=2)
    elif suffix == ".csv":
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["Date", "Balance"])
            for p in points:
                writer.writerow([p.date.isoformat(), float(p.balance)])
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv")


data_option = click.option(
    "--data",
    "data_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with goals, accounts and snapshots",
)
today_option = click.option(
    "--today", "today", help="Evaluation date (YYYY-MM-DD); defaults to now"
)


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """Track progress toward savings goals funded by linked accounts."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@data_option
@today_option
@click.option("--include-inactive", is_flag=True, help="Also report inactive goals")
@click.option("--max-points", "max_points", type=int, help="Maximum chart points per goal")
@click.option("--tolerance", "tolerance", help="On-track tolerance in percentage points")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def report(
    data_path: Path,
    today: Optional[str],
    include_inactive: bool,
    max_points: Optional[int],
    tolerance: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print progress metrics for every goal."""
    now = parse_today(today)
    settings = build_settings(max_points, tolerance)
    inputs = load_inputs(data_path)
    results: List[MetricsResult] = list(inputs.rejected)
    results.extend(
        compute_all_metrics(
            inputs.goals,
            inputs.balances,
            inputs.snapshots,
            now,
            settings,
            include_inactive=include_inactive,
        )
    )
    summary = summarize_portfolio(results)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_metrics_to_json(path, results, summary)
        elif path.suffix.lower() == ".csv":
            export_metrics_to_csv(path, results)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Metrics exported to {path}")
    else:
        print_summary(summary)
        print_metrics(results)


@cli.command()
@data_option
@today_option
@click.option("--goal", "goal_id", required=True, help="Goal id")
@click.option("--full", is_flag=True, help="Show every point instead of the chart sample")
@click.option("--max-points", "max_points", type=int, help="Maximum chart points")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def history(
    data_path: Path,
    today: Optional[str],
    goal_id: str,
    full: bool,
    max_points: Optional[int],
    output: Optional[str],
) -> None:
    """Print a goal's reconstructed balance history."""
    now = parse_today(today)
    settings = build_settings(max_points, None)
    inputs = load_inputs(data_path)
    rejected = {f.goal_id: f for f in inputs.rejected}
    if goal_id in rejected:
        raise click.ClickException(f"Goal {goal_id} is invalid: {rejected[goal_id].reason}")
    goal = next((g for g in inputs.goals if g.id == goal_id), None)
    if goal is None:
        raise click.ClickException(f"Unknown goal: {goal_id}")
    try:
        metrics = compute_goal_metrics(goal, inputs.balances, inputs.snapshots, now, settings)
    except (GoalProgressError, ArithmeticError) as exc:
        raise click.ClickException(f"Could not compute history for goal {goal_id}: {exc}")
    points = metrics.trajectory if full else metrics.chart_points
    if output:
        path = Path(output)
        export_points(path, points)
        click.echo(f"History exported to {path}")
    else:
        if not full and len(metrics.trajectory) > len(points):
            click.echo(
                f"History has {len(metrics.trajectory)} points; showing {len(points)}. "
                "Use --full to show all."
            )
        print_trajectory(points)


if __name__ == "__main__":
    cli()
