"""Pytest configuration and fixtures."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from goal_progress.data_models import Allocation, AllocationKind, Goal, Snapshot


@pytest.fixture
def make_goal():
    """Factory for goals with sensible defaults."""

    def _make_goal(**overrides) -> Goal:
        fields = {
            "id": "goal-1",
            "name": "Emergency Fund",
            "target_amount": Decimal("10000"),
            "created_at": datetime(2024, 1, 1),
            "allocations": [],
            "starting_balance": Decimal("0"),
            "target_date": None,
        }
        fields.update(overrides)
        return Goal(**fields)

    return _make_goal


@pytest.fixture
def pct():
    """Factory for percentage allocations."""

    def _pct(account_id: str, value) -> Allocation:
        return Allocation(account_id=account_id, kind=AllocationKind.PERCENTAGE, value=Decimal(str(value)))

    return _pct


@pytest.fixture
def fixed():
    """Factory for fixed-amount allocations."""

    def _fixed(account_id: str, value) -> Allocation:
        return Allocation(account_id=account_id, kind=AllocationKind.FIXED, value=Decimal(str(value)))

    return _fixed


@pytest.fixture
def snap():
    """Factory for snapshots: ``snap("A", "2024-01-01", 100)``."""

    def _snap(account_id: str, when, balance) -> Snapshot:
        if isinstance(when, str):
            when = datetime.fromisoformat(when)
        elif isinstance(when, date) and not isinstance(when, datetime):
            when = datetime(when.year, when.month, when.day)
        return Snapshot(account_id=account_id, timestamp=when, balance=Decimal(str(balance)))

    return _snap


@pytest.fixture
def house_goal(make_goal, pct):
    """Goal funded 100% by account A, due 182 days after creation."""
    return make_goal(
        id="house",
        name="House Down Payment",
        target_amount=Decimal("10000"),
        created_at=datetime(2024, 1, 1),
        target_date=date(2024, 7, 1),
        allocations=[pct("A", 100)],
    )


@pytest.fixture
def house_snapshots(snap):
    return [
        snap("A", "2024-01-01", 1000),
        snap("A", "2024-04-01", 4000),
        snap("A", "2024-07-01", 8000),
    ]


@pytest.fixture
def goal_data():
    """Raw JSON-style document as exported by the storage layer."""
    return {
        "goals": [
            {
                "id": "house",
                "name": "House Down Payment",
                "target_amount": 10000,
                "target_date": "2024-07-01",
                "allocations": '[{"account_id": "A", "allocation_type": "percentage", "allocation_value": 100}]',
                "starting_balance": 0,
                "created_at": "2024-01-01T00:00:00",
            },
            {
                "id": "trip",
                "name": "Trip",
                "target_amount": "1000",
                "allocations": None,
                "starting_balance": "500",
                "created_at": "2024-01-01",
            },
        ],
        "accounts": [
            {"account_id": "A", "name": "Savings", "balance": 8000, "account_type": "savings"},
        ],
        "snapshots": [
            {"account_id": "A", "snapshot_time": "2024-01-01T09:00:00", "balance": 1000},
            {"account_id": "A", "snapshot_time": "2024-04-01T09:00:00", "balance": 4000},
            {"account_id": "A", "snapshot_time": "2024-07-01", "balance": 8000},
        ],
    }
