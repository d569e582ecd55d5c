"""Persistence layer for goals, accounts and balance snapshots.

This module is the storage collaborator the web app reads from. It keeps the
three tables the goals view needs: accounts with their current balance,
periodic balance snapshots, and goals whose allocations are stored as a JSON
column. Rows are handed to ``goal_progress.records`` for validation, so the
engine never sees raw database values. It defaults to SQLite for local
development, but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from goal_progress.errors import GoalStoreError
from goal_progress.records import GoalInputs, load_records

Base = declarative_base()


class AccountModel(Base):
    __tablename__ = "accounts"

    account_id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, default="")
    balance = Column(Numeric(18, 2), nullable=False, default=0)
    account_type = Column(String(64), nullable=True)


class BalanceSnapshotModel(Base):
    __tablename__ = "balance_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(String(64), index=True, nullable=False)
    snapshot_time = Column(DateTime, nullable=False)
    balance = Column(Numeric(18, 2), nullable=False)


class GoalModel(Base):
    __tablename__ = "goals"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    target_amount = Column(Numeric(18, 2), nullable=False)
    target_date = Column(String(10), nullable=True)
    allocations_json = Column(Text, nullable=True)
    starting_balance = Column(Numeric(18, 2), nullable=False, default=0)
    icon = Column(String(16), nullable=False, default="")
    color = Column(String(32), nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)
    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class GoalStore:
    """Database-backed store for goal inputs."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def load_inputs(self) -> GoalInputs:
        """Read all goals, accounts and snapshots in one session.

        Raises
        ------
        GoalStoreError
            If the database cannot be read. No partial result is returned.
        """
        try:
            with self._session_factory() as session:
                goals = session.execute(
                    select(GoalModel).order_by(GoalModel.created_at.asc())
                ).scalars().all()
                accounts = session.execute(select(AccountModel)).scalars().all()
                snapshots = session.execute(
                    select(BalanceSnapshotModel).order_by(BalanceSnapshotModel.snapshot_time.asc())
                ).scalars().all()
                goal_rows = [self._goal_to_dict(row) for row in goals]
                account_rows = [self._account_to_dict(row) for row in accounts]
                snapshot_rows = [self._snapshot_to_dict(row) for row in snapshots]
        except SQLAlchemyError as exc:
            raise GoalStoreError(f"Could not load goal data: {exc}") from exc
        return load_records(goal_rows, account_rows, snapshot_rows)

    def add_account(
        self,
        account_id: str,
        name: str,
        balance: Decimal,
        account_type: Optional[str] = None,
    ) -> None:
        with self._session_factory() as session:
            session.merge(
                AccountModel(
                    account_id=account_id,
                    name=name,
                    balance=balance,
                    account_type=account_type,
                )
            )
            session.commit()

    def add_snapshot(self, account_id: str, snapshot_time: datetime, balance: Decimal) -> None:
        with self._session_factory() as session:
            session.add(
                BalanceSnapshotModel(
                    account_id=account_id, snapshot_time=snapshot_time, balance=balance
                )
            )
            session.commit()

    def add_goal(
        self,
        goal_id: str,
        name: str,
        target_amount: Decimal,
        created_at: datetime,
        allocations: Optional[Iterable[Dict[str, Any]]] = None,
        starting_balance: Decimal = Decimal("0"),
        target_date: Optional[date] = None,
        icon: str = "",
        color: str = "",
        active: bool = True,
    ) -> None:
        """Insert a goal; ``allocations`` use the storage keys
        ``account_id``/``allocation_type``/``allocation_value``."""
        allocation_list = list(allocations) if allocations is not None else None
        payload = GoalModel(
            id=goal_id,
            name=name,
            target_amount=target_amount,
            target_date=target_date.isoformat() if target_date else None,
            allocations_json=(
                json.dumps(allocation_list, default=str) if allocation_list else None
            ),
            starting_balance=starting_balance,
            icon=icon,
            color=color,
            active=active,
            created_at=created_at,
            updated_at=created_at,
        )
        with self._session_factory() as session:
            session.add(payload)
            session.commit()

    @staticmethod
    def _goal_to_dict(row: GoalModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "target_amount": row.target_amount,
            "target_date": row.target_date,
            "allocations": row.allocations_json,
            "starting_balance": row.starting_balance,
            "icon": row.icon,
            "color": row.color,
            "active": row.active,
            "completed": row.completed,
            "completed_at": row.completed_at,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }

    @staticmethod
    def _account_to_dict(row: AccountModel) -> Dict[str, Any]:
        return {
            "account_id": row.account_id,
            "name": row.name,
            "balance": row.balance,
            "account_type": row.account_type,
        }

    @staticmethod
    def _snapshot_to_dict(row: BalanceSnapshotModel) -> Dict[str, Any]:
        return {
            "account_id": row.account_id,
            "snapshot_time": row.snapshot_time,
            "balance": row.balance,
        }


def create_store_from_env(url: str | None) -> GoalStore:
    return GoalStore(url or "sqlite:///goals.sqlite3")
