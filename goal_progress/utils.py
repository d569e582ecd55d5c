"""Utility functions for the goal progress engine.

This module provides helpers for parsing raw record values into Python data
types (dates, timestamps and decimals) and for measuring the distance between
two instants in fractional days.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation, getcontext
from typing import Any, Union

from .errors import GoalDataError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

SECONDS_PER_DAY = Decimal(86400)

DateLike = Union[date, datetime]


def parse_date(value: Any) -> date:
    """Parse an ISO ``YYYY-MM-DD`` value into a ``date``.

    ``date`` objects are returned as-is and ``datetime`` objects are truncated.
    A trailing time component in a string (``"2024-07-01T00:00:00"``) is
    ignored.

    Raises
    ------
    GoalDataError
        If the value is empty or not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        text = str(value).strip()
        return date.fromisoformat(text[:10])
    except Exception as exc:
        raise GoalDataError(f"Invalid date: {value!r}") from exc


def _parse_aware_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        try:
            text = str(value).strip().replace("Z", "+00:00")
            if not text:
                raise ValueError("empty")
            parsed = datetime.fromisoformat(text)
        except Exception as exc:
            raise GoalDataError(f"Invalid timestamp: {value!r}") from exc
    return parsed


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp (or bare date) into a naive ``datetime``.

    Timezone-aware values are converted to UTC and made naive so that all
    arithmetic inside the engine compares like with like.
    """
    return as_datetime(_parse_aware_timestamp(value))


def parse_wall_clock_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp keeping its local wall-clock time.

    The UTC offset is dropped without conversion, so an evening reading taken
    at ``-05:00`` stays on the calendar day it was taken.
    """
    return _parse_aware_timestamp(value).replace(tzinfo=None)


def decimal_from_value(value: Any) -> Decimal:
    """Convert a number or numeric string into a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``.
    Commas are stripped from strings. Raises ``GoalDataError`` if conversion
    fails or the result is not finite.
    """
    if isinstance(value, bool):
        raise GoalDataError(f"Invalid numeric value: {value!r}")
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, (int, float)):
            result = Decimal(str(value))
        else:
            result = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise GoalDataError(f"Invalid numeric value: {value!r}") from exc
    if not result.is_finite():
        raise GoalDataError(f"Invalid numeric value: {value!r}")
    return result


def as_datetime(value: DateLike) -> datetime:
    """Return ``value`` as a naive ``datetime``.

    Bare dates become midnight. Aware datetimes are converted to UTC and made
    naive.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return (value - value.utcoffset()).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def days_between(start: DateLike, end: DateLike) -> Decimal:
    """Return ``end - start`` in fractional days (negative if ``end`` is earlier)."""
    delta = as_datetime(end) - as_datetime(start)
    seconds = Decimal(delta.days) * SECONDS_PER_DAY + Decimal(delta.seconds)
    seconds += Decimal(delta.microseconds) / Decimal(1_000_000)
    return seconds / SECONDS_PER_DAY
