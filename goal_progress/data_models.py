"""Data models for the goal progress engine.

This module defines dataclasses representing the records the engine reads
(goals, their account allocations, current account balances and historical
balance snapshots) and the short-lived results it produces (history points,
per-goal metrics and per-goal failures). Input records are treated as
read-only values: the engine never mutates a goal, and derived state lives
only in the result objects.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union


class AllocationKind(str, Enum):
    """How an allocation slices an account's balance."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class Allocation:
    """A rule binding part of one account's balance to a goal.

    Attributes
    ----------
    account_id: str
        Reference to an account owned by the storage layer. The account may
        no longer exist; such a dangling allocation simply contributes zero.
    kind: AllocationKind
        ``PERCENTAGE`` takes ``value`` percent of the balance. ``FIXED``
        takes ``value`` dollars, capped at whatever the account holds.
    value: Decimal
        Percent (conventionally 0-100) or dollar amount. Out of range values
        are used as given.
    """

    account_id: str
    kind: AllocationKind
    value: Decimal


@dataclass(frozen=True)
class Goal:
    """A savings goal as supplied by the storage layer."""

    id: str
    name: str
    target_amount: Decimal
    created_at: Union[date, datetime]
    allocations: List[Allocation] = field(default_factory=list)
    starting_balance: Decimal = Decimal("0")
    target_date: Optional[date] = None
    completed: bool = False
    completed_at: Optional[datetime] = None
    # display metadata carried through from storage
    icon: str = ""
    color: str = ""
    active: bool = True
    updated_at: Optional[datetime] = None

    @property
    def is_manual(self) -> bool:
        """Goals without allocations are tracked by hand."""
        return not self.allocations


@dataclass(frozen=True)
class Account:
    """Account info as listed by the storage layer."""

    account_id: str
    name: str
    balance: Decimal
    account_type: Optional[str] = None


@dataclass(frozen=True)
class AccountBalance:
    """Current balance reading for one account."""

    account_id: str
    balance: Decimal


@dataclass(frozen=True)
class Snapshot:
    """Historical balance reading for one account.

    Several snapshots may exist for the same account on the same day; the
    engine keeps the one with the latest ``timestamp``.
    """

    account_id: str
    timestamp: datetime
    balance: Decimal

    @property
    def date(self) -> date:
        return self.timestamp.date()


@dataclass(frozen=True)
class HistoryPoint:
    """A goal's derived balance on one calendar date."""

    date: date
    balance: Decimal


@dataclass
class GoalMetrics:
    """Everything computed for one goal at one evaluation instant.

    ``None`` in an optional field means the value is unavailable (no target
    date, past due, no usable savings pace), never zero.
    """

    goal_id: str
    name: str
    target_amount: Decimal
    current_balance: Decimal
    progress_pct: Decimal
    remaining_amount: Decimal
    is_reached: bool
    days_remaining: Optional[int]
    monthly_needed: Optional[Decimal]
    on_track: Optional[bool]
    projected_completion_date: Optional[date]
    trajectory: List[HistoryPoint]
    chart_points: List[HistoryPoint]


@dataclass
class MetricsFailure:
    """Typed failure result for a goal whose metrics could not be derived.

    The computation is pure, so retrying with the same records fails the same
    way; callers should offer a retry once the underlying data changes.
    """

    goal_id: str
    name: str
    reason: str
