"""
Calendar Windows

Week, month and reporting-window arithmetic shared by the summary builder,
the budget tracker and the recurring scheduler.

Weeks run Monday to Sunday. Months run from the 1st to the last calendar day.
All bounds are inclusive calendar days. Month steps use `relativedelta`,
which clamps the day to the length of the target month.
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from pocket_ledger.models.reports import PeriodWindow


DEFAULT_MONTHS_TO_DISPLAY = 12
FUTURE_WINDOW_YEARS = 100
FUTURE_KEY = "future"


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing `day`."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing `day`."""
    start = day.replace(day=1)
    return start, start + relativedelta(months=1, days=-1)


def add_months(day: date, months: int) -> date:
    """Shift a date by whole calendar months; Jan 31 + 1 month is Feb 28 (or 29)."""
    return day + relativedelta(months=months)


def _month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def monthly_periods(
    months: int = DEFAULT_MONTHS_TO_DISPLAY,
    transaction_dates: Optional[Iterable[date]] = None,
    today: Optional[date] = None,
) -> list[PeriodWindow]:
    """
    Build the selectable monthly reporting windows.

    Covers the last `months` months up to the current one, extended back
    to the month of the oldest transaction date. A "future" window starting
    tomorrow is placed right after the current month.

    Args:
        months: Minimum number of months to show
        transaction_dates: Dates whose months must be included
        today: Reference day (defaults to the local date)

    Returns:
        Windows sorted oldest first, with the future window after the current month
    """
    today = today or date.today()
    current = today.replace(day=1)

    month_starts = {add_months(current, -offset) for offset in range(max(months, 1))}

    dates = list(transaction_dates or [])
    if dates:
        cursor = min(min(dates), today).replace(day=1)
        while cursor <= current:
            month_starts.add(cursor)
            cursor = add_months(cursor, 1)

    windows: list[PeriodWindow] = []
    for start in sorted(month_starts):
        first, last = month_bounds(start)
        windows.append(
            PeriodWindow(
                key=_month_key(start),
                label=start.strftime("%b %Y"),
                start=first,
                end=last,
            )
        )

    tomorrow = today + timedelta(days=1)
    future = PeriodWindow(
        key=FUTURE_KEY,
        label="Future",
        start=tomorrow,
        end=tomorrow + relativedelta(years=FUTURE_WINDOW_YEARS),
        is_future=True,
    )

    current_key = _month_key(current)
    position = next(
        (index + 1 for index, window in enumerate(windows) if window.key == current_key),
        len(windows),
    )
    windows.insert(position, future)
    return windows
