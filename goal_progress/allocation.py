"""Allocation-based balance derivation.

A goal linked to accounts owns a slice of each account: either a percentage
of its balance or a fixed dollar amount capped at what the account holds.
The goal's balance is the sum of those slices. Goals without allocations are
tracked manually and keep their starting balance.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Mapping

from .data_models import AccountBalance, Allocation, AllocationKind, Goal

HUNDRED = Decimal(100)


def balance_map(balances: Iterable[AccountBalance]) -> dict:
    """Index current readings by account id (later readings win)."""
    mapping = {}
    for reading in balances:
        mapping[reading.account_id] = reading.balance
    return mapping


def _contribution(allocation: Allocation, account_balance: Decimal) -> Decimal:
    if allocation.kind is AllocationKind.PERCENTAGE:
        return account_balance * allocation.value / HUNDRED
    # never count more than the account actually holds
    return min(allocation.value, account_balance)


def compute_balance(goal: Goal, balances: Mapping[str, Decimal]) -> Decimal:
    """Return the goal's balance given the current balance of each account.

    Parameters
    ----------
    goal: Goal
        The goal whose allocations are applied.
    balances: Mapping[str, Decimal]
        Account id to balance. Accounts missing from the mapping contribute
        zero.

    Returns
    -------
    Decimal
        ``goal.starting_balance`` for manual goals, otherwise the sum of the
        allocation contributions. The result is not clamped, so negative
        account balances can yield a negative total.
    """
    if goal.is_manual:
        return goal.starting_balance
    total = Decimal("0")
    for allocation in goal.allocations:
        account_balance = balances.get(allocation.account_id)
        if account_balance is None:
            continue
        total += _contribution(allocation, account_balance)
    return total


def dangling_account_ids(goal: Goal, balances: Mapping[str, Decimal]) -> List[str]:
    """Return allocation account ids that have no current balance reading."""
    return [a.account_id for a in goal.allocations if a.account_id not in balances]
