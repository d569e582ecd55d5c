"""Engine settings.

The chart size cap and the on-track tolerance band default to the values the
goals view has always used. Both can be overridden from the environment or
from the CLI.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from .errors import ConfigurationError, GoalDataError
from .utils import decimal_from_value

DEFAULT_CHART_MAX_POINTS = 18
DEFAULT_ON_TRACK_TOLERANCE = Decimal("5")
DEFAULT_DAYS_PER_MONTH = Decimal("30")


@dataclass(frozen=True)
class EngineSettings:
    """Tunable parameters of the metric computations.

    Attributes
    ----------
    chart_max_points: int
        Upper bound on the number of chart points per goal. Must be at least
        2 so that both endpoints of a trajectory survive downsampling.
    on_track_tolerance: Decimal
        Percentage points a goal may lag its expected progress and still be
        reported as on track.
    days_per_month: Decimal
        Month length used when converting days remaining to months.
    """

    chart_max_points: int = DEFAULT_CHART_MAX_POINTS
    on_track_tolerance: Decimal = DEFAULT_ON_TRACK_TOLERANCE
    days_per_month: Decimal = DEFAULT_DAYS_PER_MONTH

    def __post_init__(self) -> None:
        if self.chart_max_points < 2:
            raise ConfigurationError("chart_max_points must be at least 2")
        if self.on_track_tolerance < 0:
            raise ConfigurationError("on_track_tolerance cannot be negative")
        if self.days_per_month <= 0:
            raise ConfigurationError("days_per_month must be positive")


def _decimal_setting(environ: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return decimal_from_value(raw)
    except GoalDataError as exc:
        raise ConfigurationError(f"{name} must be a number; got {raw!r}") from exc


def settings_from_env(environ: Optional[Mapping[str, str]] = None) -> EngineSettings:
    """Build ``EngineSettings`` from ``GOALS_*`` environment variables."""
    if environ is None:
        environ = os.environ
    raw_points = environ.get("GOALS_CHART_MAX_POINTS", "").strip()
    try:
        max_points = int(raw_points) if raw_points else DEFAULT_CHART_MAX_POINTS
    except ValueError as exc:
        raise ConfigurationError(
            f"GOALS_CHART_MAX_POINTS must be an integer; got {raw_points!r}"
        ) from exc
    return EngineSettings(
        chart_max_points=max_points,
        on_track_tolerance=_decimal_setting(
            environ, "GOALS_ON_TRACK_TOLERANCE", DEFAULT_ON_TRACK_TOLERANCE
        ),
        days_per_month=_decimal_setting(environ, "GOALS_DAYS_PER_MONTH", DEFAULT_DAYS_PER_MONTH),
    )
