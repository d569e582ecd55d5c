"""Conversion of raw storage records into engine data models.

Storage hands over loosely-typed rows: amounts as numbers or strings, dates
as ISO strings and allocations as a JSON-encoded list (or ``null``). This
module validates them once, at the boundary, so the arithmetic in the engine
can rely on well-formed dataclasses.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from .data_models import (
    Account,
    AccountBalance,
    Allocation,
    AllocationKind,
    Goal,
    MetricsFailure,
    Snapshot,
)
from .errors import GoalDataError
from .utils import decimal_from_value, parse_date, parse_timestamp, parse_wall_clock_timestamp

logger = logging.getLogger(__name__)


@dataclass
class GoalInputs:
    """One bulk read of everything the engine needs.

    ``rejected`` holds goals whose rows could not be parsed; they are reported
    alongside computed metrics rather than dropped silently.
    """

    goals: List[Goal] = field(default_factory=list)
    accounts: List[Account] = field(default_factory=list)
    snapshots: List[Snapshot] = field(default_factory=list)
    rejected: List[MetricsFailure] = field(default_factory=list)

    @property
    def balances(self) -> List[AccountBalance]:
        return balances_from_accounts(self.accounts)


def _require(record: Mapping[str, Any], key: str, kind: str) -> Any:
    value = record.get(key)
    if value is None or value == "":
        raise GoalDataError(f"{kind} record is missing '{key}'")
    return value


def _first_present(record: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if record.get(key) not in (None, ""):
            return record[key]
    return None


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def allocation_from_record(record: Mapping[str, Any]) -> Allocation:
    """Build an ``Allocation`` from a storage row.

    Accepts both the storage names (``allocation_type``/``allocation_value``)
    and the short names (``kind``/``value``).
    """
    if not isinstance(record, Mapping):
        raise GoalDataError(f"Allocation must be an object; got {record!r}")
    raw_kind = _first_present(record, "allocation_type", "kind")
    try:
        kind = AllocationKind(str(raw_kind).strip().lower())
    except ValueError as exc:
        raise GoalDataError(
            f"Allocation type must be 'percentage' or 'fixed'; got {raw_kind!r}"
        ) from exc
    raw_value = _first_present(record, "allocation_value", "value")
    if raw_value is None:
        raise GoalDataError("Allocation record is missing 'allocation_value'")
    return Allocation(
        account_id=str(_require(record, "account_id", "Allocation")),
        kind=kind,
        value=decimal_from_value(raw_value),
    )


def allocations_from_record(raw: Any) -> List[Allocation]:
    """Parse a goal's allocations column.

    ``None`` and empty strings mean a manual goal. Strings are decoded as
    JSON first.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise GoalDataError(f"Allocations are not valid JSON: {exc}") from exc
        if raw is None:
            return []
    if not isinstance(raw, list):
        raise GoalDataError(f"Allocations must be a list; got {type(raw).__name__}")
    return [allocation_from_record(item) for item in raw]


def goal_from_record(record: Mapping[str, Any]) -> Goal:
    """Build a ``Goal`` from a storage row.

    Raises
    ------
    GoalDataError
        If a required field is missing, a date cannot be parsed or the target
        amount is not positive.
    """
    target_amount = decimal_from_value(_require(record, "target_amount", "Goal"))
    if target_amount <= 0:
        raise GoalDataError(f"Goal target amount must be positive; got {target_amount}")
    target_date = record.get("target_date")
    completed_at = record.get("completed_at")
    updated_at = record.get("updated_at")
    starting_balance = record.get("starting_balance")
    return Goal(
        id=str(_require(record, "id", "Goal")),
        name=str(record.get("name") or ""),
        target_amount=target_amount,
        created_at=parse_timestamp(_require(record, "created_at", "Goal")),
        allocations=allocations_from_record(record.get("allocations")),
        starting_balance=(
            decimal_from_value(starting_balance)
            if starting_balance not in (None, "")
            else Decimal("0")
        ),
        target_date=parse_date(target_date) if target_date not in (None, "") else None,
        completed=_as_bool(record.get("completed"), False),
        completed_at=parse_timestamp(completed_at) if completed_at not in (None, "") else None,
        icon=str(record.get("icon") or ""),
        color=str(record.get("color") or ""),
        active=_as_bool(record.get("active"), True),
        updated_at=parse_timestamp(updated_at) if updated_at not in (None, "") else None,
    )


def account_from_record(record: Mapping[str, Any]) -> Account:
    account_type = record.get("account_type")
    return Account(
        account_id=str(_require(record, "account_id", "Account")),
        name=str(record.get("name") or ""),
        balance=decimal_from_value(_require(record, "balance", "Account")),
        account_type=str(account_type) if account_type is not None else None,
    )


def snapshot_from_record(record: Mapping[str, Any]) -> Snapshot:
    """Build a ``Snapshot``; the time may be given as ``snapshot_time``,
    ``timestamp`` or ``date``.

    The reading keeps its own wall-clock time so that it lands on the
    calendar day it was taken, whatever its UTC offset.
    """
    raw_time = _first_present(record, "snapshot_time", "timestamp", "date")
    if raw_time is None:
        raise GoalDataError("Snapshot record is missing 'snapshot_time'")
    return Snapshot(
        account_id=str(_require(record, "account_id", "Snapshot")),
        timestamp=parse_wall_clock_timestamp(raw_time),
        balance=decimal_from_value(_require(record, "balance", "Snapshot")),
    )


def balances_from_accounts(accounts: Iterable[Account]) -> List[AccountBalance]:
    return [AccountBalance(account_id=a.account_id, balance=a.balance) for a in accounts]


def load_records(
    goals: Iterable[Mapping[str, Any]],
    accounts: Iterable[Mapping[str, Any]],
    snapshots: Iterable[Mapping[str, Any]],
) -> GoalInputs:
    """Parse a full set of raw records.

    A malformed goal row is recorded in ``rejected`` and the remaining goals
    are still parsed. A malformed account or snapshot row raises
    ``GoalDataError``, since it would silently skew every goal linked to it.
    """
    inputs = GoalInputs(
        accounts=[account_from_record(r) for r in accounts],
        snapshots=[snapshot_from_record(r) for r in snapshots],
    )
    for record in goals:
        try:
            inputs.goals.append(goal_from_record(record))
        except GoalDataError as exc:
            goal_id = str(record.get("id") or "")
            logger.warning("Rejected goal record %s: %s", goal_id or "<no id>", exc)
            inputs.rejected.append(
                MetricsFailure(goal_id=goal_id, name=str(record.get("name") or ""), reason=str(exc))
            )
    return inputs


def load_records_from_mapping(data: Optional[Mapping[str, Any]]) -> GoalInputs:
    """Parse a document of the form ``{"goals": [...], "accounts": [...],
    "snapshots": [...]}``; missing sections are treated as empty."""
    if not isinstance(data, Mapping):
        raise GoalDataError("Goal data must be a JSON object")
    return load_records(
        data.get("goals") or [],
        data.get("accounts") or [],
        data.get("snapshots") or [],
    )
