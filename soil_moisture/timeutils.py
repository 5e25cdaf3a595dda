from __future__ import annotations

import calendar
from datetime import date, timedelta

from .types import TimeStep


def add_months(day: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of the month."""

    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def shift_years(day: date, years: int) -> date:
    return add_months(day, years * 12)


def step_end(start: date, time_step: TimeStep | str) -> date:
    """Exclusive end of the bucket starting at `start`.

    Unrecognised steps fall back to one week.
    """

    if time_step == "daily":
        return start + timedelta(days=1)
    if time_step == "monthly":
        return add_months(start, 1)
    return start + timedelta(weeks=1)
