"""Output helpers for goal metrics.

This module renders goal metrics and trajectories as plain text tables for
the terminal and converts them into JSON-serialisable dictionaries for file
export and the web layer. Currency formatting is left to the consumer: money
is printed with two decimals and serialised as floats.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .data_models import GoalMetrics, HistoryPoint, MetricsFailure
from .engine import MetricsResult


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


def points_to_dicts(points: Iterable[HistoryPoint]) -> List[Dict[str, Any]]:
    """Convert history points into dictionaries for charts."""
    return [{"date": p.date.isoformat(), "balance": float(p.balance)} for p in points]


def metrics_to_dict(result: MetricsResult, include_trajectory: bool = False) -> Dict[str, Any]:
    """Convert a metrics result (or failure) into a JSON-ready dictionary."""
    if isinstance(result, MetricsFailure):
        return {
            "goal_id": result.goal_id,
            "name": result.name,
            "status": "error",
            "reason": result.reason,
            "retryable": True,
        }
    data: Dict[str, Any] = {
        "goal_id": result.goal_id,
        "name": result.name,
        "status": "ok",
        "target_amount": float(result.target_amount),
        "current_balance": float(result.current_balance),
        "progress_pct": float(result.progress_pct),
        "remaining_amount": float(result.remaining_amount),
        "is_reached": result.is_reached,
        "days_remaining": result.days_remaining,
        "monthly_needed": _money(result.monthly_needed),
        "on_track": result.on_track,
        "projected_completion_date": (
            result.projected_completion_date.isoformat()
            if result.projected_completion_date
            else None
        ),
        "chart_points": points_to_dicts(result.chart_points),
    }
    if include_trajectory:
        data["trajectory"] = points_to_dicts(result.trajectory)
    return data


def summary_to_dict(summary: Dict[str, object]) -> Dict[str, Any]:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in summary.items()}


def _status(result: GoalMetrics) -> str:
    if result.is_reached:
        return "Reached"
    if result.on_track is None:
        return "-"
    return "On track" if result.on_track else "Behind"


def print_summary(summary: Dict[str, object]) -> None:
    """Print the aggregate of all goals in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Goals              : {summary['goal_count']}")
    print(f"Total saved        : {summary['total_saved']:.2f}")
    print(f"Total target       : {summary['total_target']:.2f}")
    print(f"Overall progress   : {summary['overall_pct']:.1f}%")
    print(f"Reached            : {summary['reached']}")
    print(f"On track           : {summary['on_track']}")
    print(f"Behind             : {summary['behind']}")
    if summary.get("failed"):
        print(f"Failed             : {summary['failed']}")
    print("-" * 72)


def print_metrics(results: Iterable[MetricsResult]) -> None:
    """Print one row per goal.

    Goals whose metrics failed are listed with the failure reason so that the
    user can fix the underlying record and run again.
    """
    headers = ["Goal", "Saved", "Target", "Progress", "DaysLeft", "Monthly", "Status", "Projected"]
    print("\t".join(headers))
    for result in results:
        if isinstance(result, MetricsFailure):
            print(f"{result.name or result.goal_id}\tERROR: {result.reason}")
            continue
        row = [
            result.name or result.goal_id,
            f"{result.current_balance:.2f}",
            f"{result.target_amount:.2f}",
            f"{result.progress_pct:.1f}%",
            str(result.days_remaining) if result.days_remaining is not None else "-",
            f"{result.monthly_needed:.2f}" if result.monthly_needed is not None else "-",
            _status(result),
            (
                result.projected_completion_date.isoformat()
                if result.projected_completion_date
                else "-"
            ),
        ]
        print("\t".join(row))


def print_trajectory(points: Iterable[HistoryPoint]) -> None:
    """Print a trajectory as a two-column table with day-over-day change."""
    print("Date\tBalance\tChange")
    previous: Optional[Decimal] = None
    for point in points:
        change = "" if previous is None else f"{point.balance - previous:+.2f}"
        print(f"{point.date.isoformat()}\t{point.balance:.2f}\t{change}")
        previous = point.balance
