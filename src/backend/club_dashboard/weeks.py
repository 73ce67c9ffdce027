"""
Calendar helpers shared by the aggregation and normalization code.

Weeks are anchored on Monday and keyed by that Monday's UTC calendar date.
Day indices follow the Sunday=0 .. Saturday=6 numbering used by the club
schedule screens.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Tuple, Union

DateLike = Union[date, datetime, str]

SUNDAY = 0
SATURDAY = 6
WEEKEND_DAYS = (SUNDAY, SATURDAY)


def to_utc_datetime(value: DateLike) -> datetime:
    """
    Return a naive datetime expressed in UTC.

    Aware datetimes are converted, naive ones are assumed to already be UTC,
    plain dates become midnight and ISO strings are parsed.
    """

    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def utc_now() -> datetime:
    """Current instant as a naive UTC datetime, matching the week keys."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_date(value: DateLike) -> date:
    return to_utc_datetime(value).date()


def day_index(value: Union[date, datetime]) -> int:
    return value.isoweekday() % 7


def monday_of(value: DateLike) -> date:
    day = to_utc_date(value)
    return day - timedelta(days=day.weekday())


def sunday_of(week: date) -> date:
    return week + timedelta(days=6)


def weeks_in_range(start: DateLike, end: DateLike) -> List[date]:
    """
    Enumerate week keys from ``start`` up to (excluding) ``end``.

    A non-Monday ``start`` is emitted as-is to mark the partial leading week,
    the enumeration then continues from the following Monday.
    """

    start_dt = to_utc_datetime(start)
    end_dt = to_utc_datetime(end)
    if start_dt >= end_dt:
        return []

    weeks: List[date] = []
    first = start_dt.date()
    cursor = datetime.combine(first, time.min)
    if first.weekday() != 0:
        weeks.append(first)
        cursor = datetime.combine(monday_of(first) + timedelta(days=7), time.min)

    while cursor < end_dt:
        weeks.append(cursor.date())
        cursor += timedelta(days=7)
    return weeks


def last_sunday(now: Union[date, datetime]) -> date:
    """Most recent Sunday on or before ``now``."""

    today = now.date() if isinstance(now, datetime) else now
    return today - timedelta(days=day_index(today))


def month_bounds(today: Union[date, datetime]) -> Tuple[date, date]:
    day = today.date() if isinstance(today, datetime) else today
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)
