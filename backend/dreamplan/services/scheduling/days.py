"""Epoch-day arithmetic used by the scheduling engine.

Dates enter and leave the engine as ``datetime.date`` values or ISO strings.
Everything in between is a plain ``int`` counting days since 1970-01-01, so
spacing and window checks are integer comparisons with no timezone component.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Union

EPOCH = date(1970, 1, 1)
# 1970-01-01 was a Thursday; Python weekdays run Monday=0 .. Sunday=6.
_EPOCH_WEEKDAY = 3

DateLike = Union[date, datetime, str]


def to_day(value: date) -> int:
    """Convert a calendar date to its epoch-day number."""
    if isinstance(value, datetime):
        value = value.date()
    return (value - EPOCH).days


def from_day(day: int) -> date:
    return EPOCH + timedelta(days=day)


def weekday_of(day: int) -> int:
    """Return the Python weekday (Monday=0) for an epoch day."""
    return (day + _EPOCH_WEEKDAY) % 7


def is_rest_day(day: int, rest_weekday: Optional[int]) -> bool:
    return rest_weekday is not None and weekday_of(day) == rest_weekday


def parse_date(value: Optional[DateLike]) -> Optional[date]:
    """
    Parse a calendar date from a ``date``, ``datetime`` or ISO string.

    Returns None for empty input and raises ValueError for anything that is
    not a recognizable date. Datetime strings keep only their date part.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Unsupported date value: {value!r}")

    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise ValueError(f"Invalid date: {value!r}") from exc


def span_for_working_days(start: int, working_days: int, rest_weekday: Optional[int]) -> int:
    """Return how many calendar days from ``start`` are needed to cover ``working_days``."""
    if working_days <= 0:
        return 0
    day = start
    covered = 0
    while True:
        if not is_rest_day(day, rest_weekday):
            covered += 1
            if covered == working_days:
                return day - start + 1
        day += 1
