"""Tests for pace projection and schedule evaluation."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from goal_progress.data_models import HistoryPoint
from goal_progress.errors import GoalDataError
from goal_progress.projection import (
    days_remaining,
    monthly_needed,
    on_track,
    progress_pct,
    project_completion,
    remaining_amount,
)


class TestProjectCompletion:
    """Test project_completion."""

    def test_none_when_already_reached(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"))

        assert project_completion(goal, Decimal("1000"), [], datetime(2024, 6, 1)) is None

    def test_trajectory_pace(self, make_goal):
        goal = make_goal(target_amount=Decimal("10000"))
        trajectory = [
            HistoryPoint(date(2024, 1, 1), Decimal("1000")),
            HistoryPoint(date(2024, 4, 1), Decimal("4000")),
            HistoryPoint(date(2024, 7, 1), Decimal("8000")),
        ]

        projected = project_completion(goal, Decimal("8000"), trajectory, datetime(2024, 7, 1))

        # 7000 over 182 days, 2000 to go -> 52 days
        assert projected == date(2024, 8, 22)

    def test_flat_trajectory_returns_none_even_with_lifetime_progress(self, make_goal):
        goal = make_goal(
            target_amount=Decimal("10000"),
            created_at=datetime(2023, 1, 1),
            starting_balance=Decimal("0"),
        )
        trajectory = [
            HistoryPoint(date(2024, 1, 1), Decimal("5000")),
            HistoryPoint(date(2024, 1, 11), Decimal("5000")),
        ]

        assert project_completion(goal, Decimal("5000"), trajectory, datetime(2024, 1, 11)) is None

    def test_shrinking_trajectory_returns_none(self, make_goal):
        goal = make_goal(target_amount=Decimal("10000"))
        trajectory = [
            HistoryPoint(date(2024, 1, 1), Decimal("6000")),
            HistoryPoint(date(2024, 2, 1), Decimal("5000")),
        ]

        assert project_completion(goal, Decimal("5000"), trajectory, datetime(2024, 2, 1)) is None

    def test_same_day_trajectory_falls_back_to_lifetime_pace(self, make_goal):
        goal = make_goal(
            target_amount=Decimal("2000"),
            created_at=datetime(2024, 1, 1),
            starting_balance=Decimal("0"),
        )
        trajectory = [
            HistoryPoint(date(2024, 4, 10), Decimal("900")),
            HistoryPoint(date(2024, 4, 10), Decimal("1000")),
        ]
        now = datetime(2024, 4, 10)  # 100 days after creation

        projected = project_completion(goal, Decimal("1000"), trajectory, now)

        # 10 per day, 1000 to go -> 100 days
        assert projected == date(2024, 7, 19)

    def test_lifetime_pace_without_trajectory(self, make_goal):
        goal = make_goal(
            target_amount=Decimal("2000"),
            created_at=datetime(2024, 1, 1),
            starting_balance=Decimal("500"),
        )

        projected = project_completion(goal, Decimal("1500"), None, datetime(2024, 1, 11))

        # 100 per day, 500 to go -> 5 days
        assert projected == date(2024, 1, 16)

    def test_lifetime_pace_needs_a_full_day(self, make_goal):
        goal = make_goal(created_at=datetime(2024, 1, 1, 8, 0))

        assert project_completion(goal, Decimal("100"), [], datetime(2024, 1, 1, 20, 0)) is None

    def test_lifetime_pace_needs_progress(self, make_goal):
        goal = make_goal(starting_balance=Decimal("500"))

        assert project_completion(goal, Decimal("400"), [], datetime(2024, 3, 1)) is None

    def test_absurdly_slow_pace_returns_none(self, make_goal):
        goal = make_goal(target_amount=Decimal("1E+30"))
        trajectory = [
            HistoryPoint(date(2024, 1, 1), Decimal("0")),
            HistoryPoint(date(2024, 1, 2), Decimal("0.01")),
        ]

        assert project_completion(goal, Decimal("0.01"), trajectory, datetime(2024, 1, 2)) is None


class TestDaysRemaining:
    """Test days_remaining."""

    def test_none_without_target_date(self, make_goal):
        assert days_remaining(make_goal(), datetime(2024, 1, 1)) is None

    def test_rounds_partial_days_up(self, make_goal):
        goal = make_goal(target_date=date(2024, 7, 1))

        assert days_remaining(goal, datetime(2024, 6, 30, 12, 0)) == 1

    def test_zero_on_target_date(self, make_goal):
        goal = make_goal(target_date=date(2024, 7, 1))

        assert days_remaining(goal, datetime(2024, 7, 1)) == 0

    def test_negative_when_past_due(self, make_goal):
        goal = make_goal(target_date=date(2024, 7, 1))

        assert days_remaining(goal, datetime(2024, 7, 11)) == -10

    def test_aware_now_converted_to_utc(self, make_goal):
        goal = make_goal(target_date=date(2024, 7, 1))
        now = datetime(2024, 6, 30, 20, 0, tzinfo=timezone(timedelta(hours=-4)))

        assert days_remaining(goal, now) == 0


class TestMonthlyNeeded:
    """Test monthly_needed."""

    def test_remaining_spread_over_months(self, make_goal):
        goal = make_goal(target_amount=Decimal("10000"), target_date=date(2024, 8, 30))

        needed = monthly_needed(goal, Decimal("4000"), datetime(2024, 7, 1))

        # 60 days -> 2 months
        assert needed == Decimal("3000")

    def test_zero_when_already_reached(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"), target_date=date(2024, 8, 30))

        assert monthly_needed(goal, Decimal("1500"), datetime(2024, 7, 1)) == Decimal("0")

    def test_none_when_due(self, make_goal):
        goal = make_goal(target_date=date(2024, 7, 1))

        assert monthly_needed(goal, Decimal("0"), datetime(2024, 7, 1)) is None

    def test_none_without_target_date(self, make_goal):
        assert monthly_needed(make_goal(), Decimal("0"), datetime(2024, 7, 1)) is None

    def test_custom_month_length(self, make_goal):
        goal = make_goal(target_amount=Decimal("600"), target_date=date(2024, 1, 21))

        needed = monthly_needed(goal, Decimal("0"), datetime(2024, 1, 1), Decimal("10"))

        assert needed == Decimal("300")


class TestProgress:
    """Test progress_pct and remaining_amount."""

    def test_progress_from_starting_balance(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"), starting_balance=Decimal("500"))

        assert progress_pct(goal, Decimal("750")) == Decimal("50")

    def test_manual_goal_at_start_is_zero(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"), starting_balance=Decimal("500"))

        assert progress_pct(goal, Decimal("500")) == Decimal("0")

    def test_clamped_on_overshoot(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"))

        assert progress_pct(goal, Decimal("50000")) == Decimal("100")

    def test_clamped_on_undershoot(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"), starting_balance=Decimal("200"))

        assert progress_pct(goal, Decimal("-300")) == Decimal("0")

    def test_complete_when_nothing_needed(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"), starting_balance=Decimal("1200"))

        assert progress_pct(goal, Decimal("0")) == Decimal("100")

    def test_remaining_amount_never_negative(self, make_goal):
        goal = make_goal(target_amount=Decimal("1000"))

        assert remaining_amount(goal, Decimal("400")) == Decimal("600")
        assert remaining_amount(goal, Decimal("1400")) == Decimal("0")


class TestOnTrack:
    """Test on_track."""

    @pytest.fixture
    def ten_day_goal(self, make_goal):
        return make_goal(
            target_amount=Decimal("1000"),
            created_at=datetime(2024, 1, 1),
            target_date=date(2024, 1, 11),
        )

    def test_none_without_target_date(self, make_goal):
        assert on_track(make_goal(), Decimal("0"), datetime(2024, 1, 5)) is None

    def test_within_tolerance(self, ten_day_goal):
        # halfway through the schedule, 46% saved, 5 point tolerance
        assert on_track(ten_day_goal, Decimal("460"), datetime(2024, 1, 6)) is True

    def test_behind_beyond_tolerance(self, ten_day_goal):
        assert on_track(ten_day_goal, Decimal("440"), datetime(2024, 1, 6)) is False

    def test_custom_tolerance(self, ten_day_goal):
        assert on_track(ten_day_goal, Decimal("460"), datetime(2024, 1, 6), Decimal("0")) is False

    def test_ahead_of_schedule(self, ten_day_goal):
        assert on_track(ten_day_goal, Decimal("900"), datetime(2024, 1, 3)) is True

    def test_target_before_creation_counts_as_on_track(self, make_goal):
        goal = make_goal(created_at=datetime(2024, 1, 1), target_date=date(2023, 12, 1))

        assert on_track(goal, Decimal("0"), datetime(2024, 2, 1)) is True

    def test_target_on_creation_day_counts_as_on_track(self, make_goal):
        goal = make_goal(created_at=datetime(2024, 1, 1), target_date=date(2024, 1, 1))

        assert on_track(goal, Decimal("0"), datetime(2024, 1, 1)) is True

    def test_missing_created_at_fails(self, make_goal):
        goal = make_goal(created_at=None, target_date=date(2024, 6, 1))

        with pytest.raises(GoalDataError):
            on_track(goal, Decimal("0"), datetime(2024, 1, 1))
