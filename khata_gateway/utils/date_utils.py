"""Date manipulation utilities"""

from datetime import date
from dateutil.relativedelta import relativedelta


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping day-of-month to the last day of that month (Jan 31 -> Feb 28/29)"""
    return date(year, month, 1) + relativedelta(day=day)


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Shift a date by whole calendar months.

    `day` is the anchor day-of-month to aim for (defaults to from_date.day).
    Passing the original anchor keeps a 31st-of-month schedule on the 31st
    in long months after passing through a short one.
    """
    anchor = day if day is not None else from_date.day
    return from_date + relativedelta(months=months, day=anchor)
