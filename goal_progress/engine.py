"""Goal metrics orchestration.

This module ties the allocation, history and projection helpers together into
a single ``GoalMetrics`` bundle per goal. Every call derives all outputs from
scratch from the records it is given; nothing is cached between calls and the
input records are never modified. Callers decide when to recompute, typically
after the storage layer reports that goals, accounts or snapshots changed.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .allocation import balance_map, compute_balance, dangling_account_ids
from .config import EngineSettings
from .data_models import AccountBalance, Goal, GoalMetrics, MetricsFailure, Snapshot
from .errors import GoalDataError
from .history import build_trajectory, downsample
from .projection import (
    days_remaining,
    monthly_needed,
    on_track,
    progress_pct,
    project_completion,
    remaining_amount,
)
from .utils import as_datetime

logger = logging.getLogger(__name__)

MetricsResult = Union[GoalMetrics, MetricsFailure]


def _as_balance_map(
    balances: Union[Mapping[str, Decimal], Iterable[AccountBalance]]
) -> Mapping[str, Decimal]:
    if isinstance(balances, Mapping):
        return balances
    return balance_map(balances)


def compute_goal_metrics(
    goal: Goal,
    balances: Union[Mapping[str, Decimal], Iterable[AccountBalance]],
    snapshots: Iterable[Snapshot],
    now: datetime,
    settings: Optional[EngineSettings] = None,
) -> GoalMetrics:
    """Compute the full metrics bundle for one goal.

    Parameters
    ----------
    goal: Goal
        The goal to evaluate.
    balances: Mapping[str, Decimal] or Iterable[AccountBalance]
        Current account readings.
    snapshots: Iterable[Snapshot]
        Historical account readings. Snapshots of accounts the goal does not
        reference are ignored.
    now: datetime
        Evaluation instant. Its date is used as "today" for the trajectory.
    settings: EngineSettings
        Chart size, on-track tolerance and month length.

    Raises
    ------
    GoalDataError
        If the goal's dates cannot be used for schedule arithmetic.
    """
    settings = settings or EngineSettings()
    if not isinstance(goal.created_at, date):
        raise GoalDataError(f"Goal {goal.id} has no valid created_at timestamp")
    now = as_datetime(now)
    readings = _as_balance_map(balances)

    missing = dangling_account_ids(goal, readings)
    if missing:
        logger.warning(
            "Goal %s references unknown accounts %s; counting them as zero",
            goal.id,
            ", ".join(missing),
        )

    current = compute_balance(goal, readings)
    trajectory = build_trajectory(goal, snapshots, current, now.date())

    return GoalMetrics(
        goal_id=goal.id,
        name=goal.name,
        target_amount=goal.target_amount,
        current_balance=current,
        progress_pct=progress_pct(goal, current),
        remaining_amount=remaining_amount(goal, current),
        is_reached=current >= goal.target_amount,
        days_remaining=days_remaining(goal, now),
        monthly_needed=monthly_needed(goal, current, now, settings.days_per_month),
        on_track=on_track(goal, current, now, settings.on_track_tolerance),
        projected_completion_date=project_completion(goal, current, trajectory, now),
        trajectory=trajectory,
        chart_points=downsample(trajectory, settings.chart_max_points),
    )


def compute_all_metrics(
    goals: Iterable[Goal],
    balances: Union[Mapping[str, Decimal], Iterable[AccountBalance]],
    snapshots: Iterable[Snapshot],
    now: datetime,
    settings: Optional[EngineSettings] = None,
    include_inactive: bool = False,
) -> List[MetricsResult]:
    """Compute metrics for many goals, isolating failures per goal.

    A goal whose records are unusable yields a ``MetricsFailure`` in its slot
    instead of aborting the other goals. Inactive goals are skipped unless
    ``include_inactive`` is set.
    """
    readings = dict(_as_balance_map(balances))
    snapshot_list: Sequence[Snapshot] = list(snapshots)
    results: List[MetricsResult] = []
    for goal in goals:
        if not goal.active and not include_inactive:
            continue
        try:
            results.append(compute_goal_metrics(goal, readings, snapshot_list, now, settings))
        except (GoalDataError, ArithmeticError) as exc:
            logger.warning("Could not compute metrics for goal %s: %s", goal.id, exc)
            results.append(MetricsFailure(goal_id=goal.id, name=goal.name, reason=str(exc)))
    return results


def summarize_portfolio(results: Iterable[MetricsResult]) -> Dict[str, object]:
    """Aggregate metrics across goals for a dashboard header.

    Failed goals are counted but excluded from the money totals.
    """
    total_saved = Decimal("0")
    total_target = Decimal("0")
    summary: Dict[str, object] = {
        "goal_count": 0,
        "reached": 0,
        "on_track": 0,
        "behind": 0,
        "failed": 0,
    }
    for result in results:
        summary["goal_count"] += 1
        if isinstance(result, MetricsFailure):
            summary["failed"] += 1
            continue
        total_saved += result.current_balance
        total_target += result.target_amount
        if result.is_reached:
            summary["reached"] += 1
        elif result.on_track is True:
            summary["on_track"] += 1
        elif result.on_track is False:
            summary["behind"] += 1
    summary["total_saved"] = total_saved
    summary["total_target"] = total_target
    summary["overall_pct"] = (
        min(Decimal(100), max(Decimal(0), total_saved / total_target * 100))
        if total_target > 0
        else Decimal(0)
    )
    return summary
