"""Tests for recurring task date projection and generation windows."""

from datetime import date
from types import SimpleNamespace

from taskflow.services.recurrence import (
    RecurrenceRule,
    add_months,
    describe_pattern,
    iter_occurrences,
    project_occurrences,
)
from taskflow.services.recurring_task import dates_to_generate, instance_title


def rule(kind, start, **kwargs):
    return RecurrenceRule(recurrence_type=kind, start_date=start, **kwargs)


class TestProjection:
    def test_daily_with_interval(self):
        r = rule("daily", date(2024, 1, 1), interval_value=3)
        assert project_occurrences(r, 3) == [date(2024, 1, 1), date(2024, 1, 4), date(2024, 1, 7)]

    def test_custom_advances_by_days(self):
        r = rule("custom", date(2024, 1, 1), interval_value=10)
        assert project_occurrences(r, 2) == [date(2024, 1, 1), date(2024, 1, 11)]

    def test_weekly_without_days_repeats_start_weekday(self):
        r = rule("weekly", date(2024, 1, 3), interval_value=2)
        assert project_occurrences(r, 3) == [date(2024, 1, 3), date(2024, 1, 17), date(2024, 1, 31)]

    def test_weekly_on_selected_days(self):
        # 2024-01-01 is a Monday; 1 = Monday, 3 = Wednesday
        r = rule("weekly", date(2024, 1, 1), days_of_week=(3, 1))
        assert project_occurrences(r, 4) == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 8),
            date(2024, 1, 10),
        ]

    def test_weekly_selected_days_skip_weeks(self):
        r = rule("weekly", date(2024, 1, 1), interval_value=2, days_of_week=(1, 3))
        assert project_occurrences(r, 4) == [
            date(2024, 1, 1),
            date(2024, 1, 3),
            date(2024, 1, 15),
            date(2024, 1, 17),
        ]

    def test_weekly_days_before_start_are_skipped(self):
        # Start on a Thursday; Monday of the first week is before the start
        r = rule("weekly", date(2024, 1, 4), days_of_week=(1, 4))
        assert project_occurrences(r, 3) == [date(2024, 1, 4), date(2024, 1, 8), date(2024, 1, 11)]

    def test_monthly_clamps_to_short_months(self):
        r = rule("monthly", date(2024, 1, 31))
        assert project_occurrences(r, 4) == [
            date(2024, 1, 31),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    def test_monthly_last_day(self):
        r = rule("monthly", date(2023, 1, 15), is_last_day_of_month=True)
        assert project_occurrences(r, 3) == [date(2023, 1, 31), date(2023, 2, 28), date(2023, 3, 31)]

    def test_monthly_explicit_day(self):
        r = rule("monthly", date(2024, 1, 1), day_of_month=15, interval_value=2)
        assert project_occurrences(r, 3) == [date(2024, 1, 15), date(2024, 3, 15), date(2024, 5, 15)]

    def test_yearly_leap_day(self):
        r = rule("yearly", date(2024, 2, 29))
        assert project_occurrences(r, 3) == [date(2024, 2, 29), date(2025, 2, 28), date(2026, 2, 28)]

    def test_yearly_month_of_year(self):
        r = rule("yearly", date(2024, 1, 10), month_of_year=6, day_of_month=1)
        assert project_occurrences(r, 2) == [date(2024, 6, 1), date(2025, 6, 1)]

    def test_end_date_bounds(self):
        r = rule("daily", date(2024, 1, 1), end_date=date(2024, 1, 3))
        assert list(iter_occurrences(r)) == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_max_occurrences_bounds(self):
        r = rule("weekly", date(2024, 1, 1), max_occurrences=2)
        assert list(iter_occurrences(r)) == [date(2024, 1, 1), date(2024, 1, 8)]

    def test_until_bounds(self):
        r = rule("daily", date(2024, 1, 1))
        assert list(iter_occurrences(r, until=date(2024, 1, 2))) == [date(2024, 1, 1), date(2024, 1, 2)]

    def test_after_filters_past_dates(self):
        r = rule("daily", date(2024, 1, 1), interval_value=2)
        assert project_occurrences(r, 2, after=date(2024, 1, 4)) == [date(2024, 1, 5), date(2024, 1, 7)]

    def test_zero_interval_treated_as_one(self):
        r = rule("daily", date(2024, 1, 1), interval_value=0)
        assert project_occurrences(r, 2) == [date(2024, 1, 1), date(2024, 1, 2)]


def test_add_months_across_year():
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)
    assert add_months(date(2024, 11, 30), 3, last_day=True) == date(2025, 2, 28)
    assert add_months(date(2024, 1, 5), 1, day_of_month=31) == date(2024, 2, 29)


def test_rule_from_pattern_row():
    pattern = SimpleNamespace(
        recurrence_type="weekly",
        start_date=date(2024, 1, 1),
        interval_value=None,
        days_of_week=[1, 5],
        day_of_month=None,
        is_last_day_of_month=None,
        month_of_year=None,
        end_date=None,
        max_occurrences=None,
    )
    r = RecurrenceRule.from_pattern(pattern)
    assert r.interval == 1
    assert r.days_of_week == (1, 5)
    assert r.is_last_day_of_month is False


class TestDescribe:
    def test_daily(self):
        assert describe_pattern(rule("daily", date(2024, 1, 1))) == "Daily"
        assert describe_pattern(rule("daily", date(2024, 1, 1), interval_value=3)) == "Every 3 days"

    def test_weekly(self):
        r = rule("weekly", date(2024, 1, 1), days_of_week=(1, 3))
        assert describe_pattern(r) == "Weekly on Mon, Wed"
        r = rule("weekly", date(2024, 1, 1), interval_value=2, days_of_week=(0,))
        assert describe_pattern(r) == "Every 2 weeks on Sun"
        assert describe_pattern(rule("weekly", date(2024, 1, 1))) == "Weekly"

    def test_monthly(self):
        assert describe_pattern(rule("monthly", date(2024, 1, 9))) == "Monthly on day 9"
        r = rule("monthly", date(2024, 1, 9), interval_value=3, is_last_day_of_month=True)
        assert describe_pattern(r) == "Every 3 months on last day"

    def test_yearly_and_custom(self):
        assert describe_pattern(rule("yearly", date(2024, 1, 1), interval_value=2)) == "Every 2 years"
        assert describe_pattern(rule("custom", date(2024, 1, 1))) == "Custom pattern"


class TestGenerationWindow:
    def test_skips_existing_instances(self):
        r = rule("daily", date(2024, 1, 1))
        dates = dates_to_generate(r, date(2024, 1, 1), 3, existing=[date(2024, 1, 2)])
        assert dates == [date(2024, 1, 1), date(2024, 1, 3), date(2024, 1, 4)]

    def test_window_is_capped_by_horizon(self):
        r = rule("daily", date(2024, 1, 1))
        dates = dates_to_generate(r, date(2024, 1, 1), 1000, existing=[], horizon_days=2)
        assert dates == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_future_start_generates_nothing_yet(self):
        r = rule("daily", date(2024, 3, 1))
        assert dates_to_generate(r, date(2024, 1, 1), 7, existing=[]) == []

    def test_instance_title(self):
        assert instance_title("Standup", date(2024, 1, 5)) == "Standup (2024-01-05)"
