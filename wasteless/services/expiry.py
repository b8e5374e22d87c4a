"""
Days-to-expiry calculation
"""
from datetime import date, datetime
from typing import Union

from wasteless.exceptions import ValidationError

DateLike = Union[date, datetime, str]


def to_calendar_date(value: DateLike) -> date:
    """Normalize a date, datetime or ISO string to a calendar date (time of day discarded)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            raise ValidationError(f"Invalid date: {value!r}", {"value": value})
    raise ValidationError(f"Unsupported date value: {value!r}")


def days_to_expiry(expiry_date: DateLike, today: DateLike) -> int:
    """
    Whole calendar days from ``today`` until ``expiry_date``.

    Already-expired products count as 0 days left, never negative.
    """
    remaining = (to_calendar_date(expiry_date) - to_calendar_date(today)).days
    return max(0, remaining)
