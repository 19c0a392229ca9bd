"""Date manipulation utilities"""

import calendar
from datetime import date


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month"""
    return calendar.monthrange(year, month)[1]


def shift_month(month: int, year: int, months: int) -> tuple[int, int]:
    """Move (month, year) by a number of months, wrapping year boundaries"""
    index = (year * 12 + (month - 1)) + months
    return index % 12 + 1, index // 12


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length"""
    month, year = shift_month(from_date.month, from_date.year, months)
    day = min(from_date.day, days_in_month(year, month))
    return date(year, month, day)
