"""Date projection for recurring task patterns."""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from itertools import islice
from typing import Any, Iterator, Optional, Sequence

WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class RecurrenceRule:
    """The scheduling fields of a recurring pattern."""

    recurrence_type: str
    start_date: date
    interval_value: int = 1
    days_of_week: Optional[Sequence[int]] = None  # 0 = Sunday
    day_of_month: Optional[int] = None
    is_last_day_of_month: bool = False
    month_of_year: Optional[int] = None
    end_date: Optional[date] = None
    max_occurrences: Optional[int] = None

    @classmethod
    def from_pattern(cls, pattern: Any) -> "RecurrenceRule":
        return cls(
            recurrence_type=pattern.recurrence_type,
            start_date=pattern.start_date,
            interval_value=pattern.interval_value or 1,
            days_of_week=tuple(pattern.days_of_week) if pattern.days_of_week else None,
            day_of_month=pattern.day_of_month,
            is_last_day_of_month=bool(pattern.is_last_day_of_month),
            month_of_year=pattern.month_of_year,
            end_date=pattern.end_date,
            max_occurrences=pattern.max_occurrences,
        )

    @property
    def interval(self) -> int:
        return max(1, self.interval_value)


def _sunday_weekday(day: date) -> int:
    """Weekday with 0 = Sunday."""
    return (day.weekday() + 1) % 7


def add_months(
    start: date,
    months: int,
    day_of_month: Optional[int] = None,
    last_day: bool = False,
) -> date:
    """Shift ``start`` by whole months, clamping to the month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    days_in_month = monthrange(year, month)[1]
    if last_day:
        return date(year, month, days_in_month)
    return date(year, month, min(day_of_month or start.day, days_in_month))


def _candidates(rule: RecurrenceRule) -> Iterator[date]:
    """Unbounded, ascending candidate dates (may precede start_date)."""
    start = rule.start_date
    step = rule.interval

    if rule.recurrence_type == "weekly" and rule.days_of_week:
        selected = sorted({d % 7 for d in rule.days_of_week})
        week_start = start - timedelta(days=_sunday_weekday(start))
        week = 0
        while True:
            base = week_start + timedelta(weeks=week * step)
            for weekday in selected:
                yield base + timedelta(days=weekday)
            week += 1

    k = 0
    while True:
        if rule.recurrence_type == "weekly":
            yield start + timedelta(days=7 * k * step)
        elif rule.recurrence_type == "monthly":
            yield add_months(
                start,
                k * step,
                day_of_month=rule.day_of_month,
                last_day=rule.is_last_day_of_month,
            )
        elif rule.recurrence_type == "yearly":
            month = rule.month_of_year or start.month
            anchor = date(start.year + k * step, month, 1)
            yield add_months(
                anchor,
                0,
                day_of_month=rule.day_of_month or start.day,
                last_day=rule.is_last_day_of_month,
            )
        else:
            # daily and custom advance by whole days
            yield start + timedelta(days=k * step)
        k += 1


def iter_occurrences(rule: RecurrenceRule, until: Optional[date] = None) -> Iterator[date]:
    """Yield scheduled dates from ``start_date`` in ascending order.

    Stops after ``end_date``, after ``max_occurrences`` dates, or after
    ``until`` when given. Without any bound the iterator is infinite.
    """
    emitted = 0
    for candidate in _candidates(rule):
        if candidate < rule.start_date:
            continue
        if rule.end_date is not None and candidate > rule.end_date:
            return
        if until is not None and candidate > until:
            return
        if rule.max_occurrences is not None and emitted >= rule.max_occurrences:
            return
        emitted += 1
        yield candidate


def project_occurrences(
    rule: RecurrenceRule,
    count: int,
    after: Optional[date] = None,
) -> list[date]:
    """Return up to ``count`` scheduled dates, optionally only those on or after ``after``."""
    dates = iter_occurrences(rule)
    if after is not None:
        dates = (d for d in dates if d >= after)
    return list(islice(dates, count))


def describe_pattern(rule: RecurrenceRule) -> str:
    """Human readable summary such as ``Every 2 weeks on Mon, Wed``."""
    n = rule.interval
    kind = rule.recurrence_type

    if kind == "daily":
        return "Daily" if n == 1 else f"Every {n} days"
    if kind == "weekly":
        if rule.days_of_week:
            days = ", ".join(WEEKDAY_NAMES[d % 7] for d in rule.days_of_week)
            return f"Weekly on {days}" if n == 1 else f"Every {n} weeks on {days}"
        return "Weekly" if n == 1 else f"Every {n} weeks"
    if kind == "monthly":
        if rule.is_last_day_of_month:
            return "Monthly on last day" if n == 1 else f"Every {n} months on last day"
        day = rule.day_of_month or rule.start_date.day
        return f"Monthly on day {day}" if n == 1 else f"Every {n} months on day {day}"
    if kind == "yearly":
        return "Yearly" if n == 1 else f"Every {n} years"
    return "Custom pattern"
