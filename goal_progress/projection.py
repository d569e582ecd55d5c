"""Pace projection and schedule evaluation.

All functions here are plain arithmetic on a goal, its current balance and an
evaluation instant ``now``. Degenerate spans (zero days, flat or shrinking
savings) return ``None`` instead of raising, since they are ordinary boundary
conditions rather than corrupt data.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Sequence

from .config import DEFAULT_DAYS_PER_MONTH, DEFAULT_ON_TRACK_TOLERANCE
from .data_models import Goal, HistoryPoint
from .errors import GoalDataError
from .utils import as_datetime, days_between

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)
ZERO = Decimal(0)


def _created_at(goal: Goal) -> datetime:
    if not isinstance(goal.created_at, date):
        raise GoalDataError(f"Goal {goal.id} has no valid created_at timestamp")
    return as_datetime(goal.created_at)


def _target_date(goal: Goal) -> Optional[date]:
    if goal.target_date is None:
        return None
    if not isinstance(goal.target_date, date):
        raise GoalDataError(f"Goal {goal.id} has an invalid target_date")
    return goal.target_date


def _project_from_rate(
    goal: Goal, current_balance: Decimal, daily_rate: Decimal, now: datetime
) -> Optional[date]:
    days_to_goal = (goal.target_amount - current_balance) / daily_rate
    try:
        return (now + timedelta(days=float(days_to_goal))).date()
    except OverflowError:
        # pace too slow to land on a representable calendar date
        return None


def project_completion(
    goal: Goal,
    current_balance: Decimal,
    trajectory: Optional[Sequence[HistoryPoint]],
    now: datetime,
) -> Optional[date]:
    """Estimate the date the goal will reach its target.

    The observed pace between the first and last trajectory points is used
    when they are at least a day apart. Otherwise the lifetime average since
    the goal was created is used. The two rates are never mixed: a flat or
    shrinking observed pace yields ``None`` even if the lifetime average is
    positive.

    Returns ``None`` when the goal is already met or no positive pace exists.
    """
    if current_balance >= goal.target_amount:
        return None
    now = as_datetime(now)

    if trajectory and len(trajectory) >= 2:
        first, last = trajectory[0], trajectory[-1]
        span_days = (last.date - first.date).days
        if span_days >= 1:
            daily_rate = (last.balance - first.balance) / Decimal(span_days)
            if daily_rate <= 0:
                logger.debug("Goal %s: trajectory pace is not positive", goal.id)
                return None
            logger.debug("Goal %s: projecting from trajectory pace", goal.id)
            return _project_from_rate(goal, current_balance, daily_rate, now)

    days_since_creation = days_between(_created_at(goal), now)
    if days_since_creation < 1:
        return None
    progress_made = current_balance - goal.starting_balance
    if progress_made <= 0:
        return None
    logger.debug("Goal %s: projecting from lifetime average pace", goal.id)
    return _project_from_rate(goal, current_balance, progress_made / days_since_creation, now)


def days_remaining(goal: Goal, now: datetime) -> Optional[int]:
    """Whole days until the target date, rounded up.

    Zero or negative means the goal is due or past due. ``None`` when the goal
    has no target date.
    """
    target = _target_date(goal)
    if target is None:
        return None
    return math.ceil(days_between(now, target))


def monthly_needed(
    goal: Goal,
    current_balance: Decimal,
    now: datetime,
    days_per_month: Decimal = DEFAULT_DAYS_PER_MONTH,
) -> Optional[Decimal]:
    """Amount to save per month to hit the target by the target date."""
    days = days_remaining(goal, now)
    if days is None or days <= 0:
        return None
    remaining = max(ZERO, goal.target_amount - current_balance)
    months = Decimal(days) / days_per_month
    return remaining / months


def remaining_amount(goal: Goal, current_balance: Decimal) -> Decimal:
    return max(ZERO, goal.target_amount - current_balance)


def progress_pct(goal: Goal, current_balance: Decimal) -> Decimal:
    """Progress from the starting balance toward the target, in [0, 100]."""
    needed = goal.target_amount - goal.starting_balance
    if needed <= 0:
        return HUNDRED
    pct = (current_balance - goal.starting_balance) / needed * HUNDRED
    return min(HUNDRED, max(ZERO, pct))


def on_track(
    goal: Goal,
    current_balance: Decimal,
    now: datetime,
    tolerance: Decimal = DEFAULT_ON_TRACK_TOLERANCE,
) -> Optional[bool]:
    """Compare actual progress against the share of the schedule elapsed.

    A goal is on track when its progress is no more than ``tolerance``
    percentage points behind the straight-line expectation. Goals whose
    target date is not after their creation are reported as on track.
    """
    target = _target_date(goal)
    if target is None:
        return None
    total_days = days_between(_created_at(goal), target)
    if total_days <= 0:
        return True
    elapsed = total_days - days_remaining(goal, now)
    expected_pct = elapsed / total_days * HUNDRED
    return progress_pct(goal, current_balance) >= expected_pct - tolerance
