# ==============================================================================
# RECURRENCE ARITHMETIC
# ==============================================================================
# Pure calendar arithmetic for recurring templates; inputs are never mutated
# ==============================================================================

from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from typing import Union

from walletwise.core.constants import RecurringInterval


def add_months(moment: datetime, months: int) -> datetime:
    """
    Shift a datetime by whole calendar months.

    The day is clamped to the length of the target month, so
    Jan 31 + 1 month is Feb 28 (or Feb 29 in a leap year).
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def advance(moment: datetime, interval: Union[RecurringInterval, str]) -> datetime:
    """
    Return the next occurrence after ``moment`` for the given interval.

    Example:
        >>> advance(datetime(2024, 1, 31), "monthly")
        datetime.datetime(2024, 2, 29, 0, 0)

    Raises:
        ValueError: If the interval is unknown
    """
    interval = RecurringInterval(interval)
    if interval is RecurringInterval.DAILY:
        return moment + timedelta(days=1)
    if interval is RecurringInterval.WEEKLY:
        return moment + timedelta(days=7)
    return add_months(moment, 1)
