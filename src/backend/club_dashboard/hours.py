from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Union

from .models import ClubOperatingHours
from .weeks import SUNDAY, WEEKEND_DAYS, day_index, utc_now

RANGE_END_REFERENCE_HOUR = 23


def reference_instant(range_end: Optional[Union[date, datetime]], now: datetime) -> datetime:
    """
    Instant the elapsed hours are measured up to.

    A selected range end counts as 23:00 local on that day so the whole day is
    treated as elapsed.
    """

    if range_end is None:
        return now
    end_day = range_end.date() if isinstance(range_end, datetime) else range_end
    return datetime.combine(end_day, time(hour=RANGE_END_REFERENCE_HOUR))


def elapsed_weekly_hours(
    operating_hours: ClubOperatingHours,
    range_end: Optional[Union[date, datetime]] = None,
    now: Optional[datetime] = None,
) -> float:
    """
    Operating hours that have already passed in the week containing the
    reference instant.

    The hours of the reference day itself are counted from opening time and
    are not capped at closing time.
    """

    reference = reference_instant(range_end, now or utc_now())
    day = day_index(reference)
    weekend = day in WEEKEND_DAYS
    current_hours = max(0.0, reference.hour - operating_hours.opening_hour(weekend))

    if weekend:
        weekend_elapsed = current_hours + operating_hours.weekend_hours if day == SUNDAY else current_hours
        return operating_hours.weekday_hours * 5 + weekend_elapsed
    return (day - 1) * operating_hours.weekday_hours + current_hours
