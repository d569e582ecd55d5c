"""Historical trajectory reconstruction and chart downsampling.

Balance snapshots are replayed date by date through a goal's allocation rules.
Snapshot cadence is irregular and differs between accounts, so on each date
an account without a fresh reading keeps its last observed balance
(carry-forward). Accounts not yet observed contribute zero.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence, Tuple

from .allocation import compute_balance
from .config import DEFAULT_CHART_MAX_POINTS
from .data_models import Goal, HistoryPoint, Snapshot
from .utils import as_datetime

logger = logging.getLogger(__name__)


def latest_readings_by_date(
    snapshots: Iterable[Snapshot], account_ids: Iterable[str]
) -> Dict[date, Dict[str, Decimal]]:
    """Group snapshots of the given accounts by calendar date.

    Within a date only the chronologically latest reading of each account is
    kept. Snapshots of other accounts are ignored.
    """
    wanted = set(account_ids)
    latest: Dict[Tuple[date, str], Snapshot] = {}
    for snap in snapshots:
        if snap.account_id not in wanted:
            continue
        key = (snap.date, snap.account_id)
        current = latest.get(key)
        if current is None or snap.timestamp >= current.timestamp:
            latest[key] = snap
    by_date: Dict[date, Dict[str, Decimal]] = {}
    for (day, account_id), snap in latest.items():
        by_date.setdefault(day, {})[account_id] = snap.balance
    return by_date


def reconstruct_history(goal: Goal, snapshots: Iterable[Snapshot]) -> List[HistoryPoint]:
    """Rebuild a goal's balance on every date that has a snapshot.

    Returns an empty list for manual goals. The result is ordered by date but
    not monotonic in balance: withdrawals show up as drops.
    """
    if goal.is_manual:
        return []
    by_date = latest_readings_by_date(snapshots, (a.account_id for a in goal.allocations))
    running: Dict[str, Decimal] = {}
    history: List[HistoryPoint] = []
    for day in sorted(by_date):
        running.update(by_date[day])
        history.append(HistoryPoint(date=day, balance=compute_balance(goal, running)))
    return history


def build_trajectory(
    goal: Goal,
    snapshots: Iterable[Snapshot],
    current_balance: Decimal,
    today: date,
) -> List[HistoryPoint]:
    """Return the reconstructed history with chart endpoints guaranteed.

    A point for ``today`` carrying ``current_balance`` is appended when the
    history does not already end today, and a point at the goal's creation
    date carrying ``starting_balance`` is prepended when fewer than two points
    remain and the goal was created before the remaining point, so dates stay
    strictly ascending. Snapshots dated after ``today`` are left out so the
    live reading is always the final point.
    """
    history = [p for p in reconstruct_history(goal, snapshots) if p.date <= today]
    if not history or history[-1].date != today:
        history.append(HistoryPoint(date=today, balance=current_balance))
    if len(history) < 2:
        created = as_datetime(goal.created_at).date()
        if created < history[0].date:
            history.insert(0, HistoryPoint(date=created, balance=goal.starting_balance))
    logger.debug("Trajectory for goal %s has %d points", goal.id, len(history))
    return history


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def downsample(
    points: Sequence[HistoryPoint], max_points: int = DEFAULT_CHART_MAX_POINTS
) -> List[HistoryPoint]:
    """Select at most ``max_points`` existing points, keeping both endpoints.

    Interior points are picked at an even stride over the interior indices.
    No values are interpolated, and the selection depends only on
    ``len(points)`` and ``max_points``.
    """
    if max_points < 2:
        raise ValueError("max_points must be at least 2")
    if len(points) <= max_points:
        return list(points)
    selected = [points[0]]
    interior_slots = max_points - 2
    if interior_slots:
        stride = (len(points) - 2) / interior_slots
        for i in range(1, interior_slots + 1):
            selected.append(points[_round_half_up(1 + (i - 1) * stride)])
    selected.append(points[-1])
    return selected
