"""
Percentage conversion for club and employee statistics.

Business rules per metric family:
  - Washroom checks are expected every 30 minutes from two observers, so the
    hour-based denominator is doubled and then divided by two observers.
  - Pool checks use the hour-based denominator as-is; the double-initial
    weighting already happened when the raw series was merged.
  - Posted/offered shifts are a share of actual shifts (OFF/SICK excluded).
  - Sick/off shifts are a share of all schedulings (OFF/SICK included).
  - Golden checks are counted once per qualifying day, so they are a share of
    the days in the week.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Union

from .hours import elapsed_weekly_hours
from .models import (
    ClubOperatingHours,
    ClubWeeklyData,
    EmployeeRecord,
    MetricFamily,
    SeriesPoint,
    SeriesUnit,
    WeeklySeries,
)
from .weeks import day_index, sunday_of, to_utc_date, utc_now

FULL_WEEK_DAYS = 7
_ONE_DECIMAL = Decimal("0.1")


def round1(value: float) -> float:
    return float(Decimal(value).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def to_percentage(value: float, denominator: float, dual_observer: bool = False) -> float:
    """
    ``value`` as a percentage of ``denominator``, rounded half-up to one decimal.

    A zero denominator yields ``0.0``. Dual-observer metrics are expected twice
    per period, so their denominator is doubled.
    """

    denominator = float(denominator or 0)
    if denominator == 0:
        return 0.0
    if dual_observer:
        denominator *= 2
    return round1(float(value or 0) / denominator * 100)


def format_percentage(value: float, denominator: float, dual_observer: bool = False) -> str:
    """Display string: ``"0"`` against a zero denominator, one decimal otherwise."""

    if float(denominator or 0) == 0:
        return "0"
    return f"{to_percentage(value, denominator, dual_observer):.1f}"


@dataclass(frozen=True)
class WeekDenominators:
    weekly_hours: float
    days_elapsed: int
    shifts: float
    schedulings: float


def family_percentage(family: MetricFamily, value: float, denominators: WeekDenominators) -> float:
    if family is MetricFamily.WASHROOM_CHECK:
        return to_percentage(value, denominators.weekly_hours * 2, dual_observer=True)
    if family.is_shift_ratio:
        return to_percentage(value, denominators.shifts)
    if family.is_scheduling_ratio:
        return to_percentage(value, denominators.schedulings)
    if family.is_golden:
        return to_percentage(value, denominators.days_elapsed)
    return to_percentage(value, denominators.weekly_hours)


def is_week_in_progress(
    week: date,
    last_week: date,
    is_last: bool,
    range_end: Optional[date],
    today: date,
) -> bool:
    """
    Whether ``week`` is the still-running final week of a series.

    Without a range end that is the latest entry when it started less than
    seven days ago; with a range end it is the latest entry whose Sunday falls
    after the end date.
    """

    if not is_last:
        return False
    if range_end is None:
        return (today - last_week).days < FULL_WEEK_DAYS
    return range_end < sunday_of(week)


def days_elapsed(range_end: Optional[date], today: date) -> int:
    """
    Days of the in-progress week counted for golden checks.

    A selected range end on a Sunday counts as the seventh day; without a range
    end the plain day index is used, so on a Sunday the denominator is zero.
    """

    if range_end is not None:
        return day_index(range_end) or FULL_WEEK_DAYS
    return day_index(today)


def _percentage_series(
    family: MetricFamily,
    series: WeeklySeries,
    shifts: Mapping,
    schedulings: Mapping,
    operating_hours: ClubOperatingHours,
    elapsed_hours: float,
    range_end: Optional[date],
    today: date,
) -> WeeklySeries:
    if not series.points:
        return series.with_points((), unit=SeriesUnit.PERCENT)

    last_week = to_utc_date(series.points[-1].x)
    last_index = len(series.points) - 1
    points: List[SeriesPoint] = []
    for index, point in enumerate(series.points):
        week = to_utc_date(point.x)
        in_progress = is_week_in_progress(week, last_week, index == last_index, range_end, today)
        denominators = WeekDenominators(
            weekly_hours=elapsed_hours if in_progress else operating_hours.weekly_hours,
            days_elapsed=days_elapsed(range_end, today) if in_progress else FULL_WEEK_DAYS,
            shifts=shifts.get(point.x, 0),
            schedulings=schedulings.get(point.x, 0),
        )
        points.append(replace(point, y=family_percentage(family, point.y, denominators)))
    return series.with_points(points, unit=SeriesUnit.PERCENT)


def normalize_club_data(
    data: ClubWeeklyData,
    operating_hours: ClubOperatingHours,
    range_end: Optional[Union[date, datetime]] = None,
    now: Optional[datetime] = None,
) -> ClubWeeklyData:
    """
    Percentage version of a club's raw weekly data.

    Only the metric-family series are converted; the shift, scheduling and
    hour series are carried over as raw values.
    """

    if data.is_percentage:
        raise TypeError("Club data is already expressed as percentages.")

    now = now or utc_now()
    end_day = range_end.date() if isinstance(range_end, datetime) else range_end
    elapsed_hours = elapsed_weekly_hours(operating_hours, range_end=end_day, now=now)
    shifts = data.shift_count.as_map()
    schedulings = data.schedulings_count.as_map()

    metrics: Dict[MetricFamily, WeeklySeries] = {
        family: _percentage_series(
            family,
            series,
            shifts,
            schedulings,
            operating_hours,
            elapsed_hours,
            end_day,
            now.date(),
        )
        for family, series in data.metrics.items()
    }
    return replace(data, metrics=metrics)


def compute_employee_metrics(record: EmployeeRecord) -> EmployeeRecord:
    """
    Employee row with every ratio metric expressed as a percentage.

    Washroom and pool checks are measured per scheduled hour, golden checks
    and posted/offered shifts per shift, sick/off shifts per scheduling.
    Check percentages are only filled in for staff who record checks.
    """

    if record.is_percentage:
        raise TypeError(f"Employee {record.employee_id} is already expressed as percentages.")

    changes = {
        "posted_shift_count": to_percentage(record.posted_shift_count, record.shift_count),
        "offered_shift_count": to_percentage(record.offered_shift_count, record.shift_count),
        "sick_shift_count": to_percentage(record.sick_shift_count, record.schedulings_count),
        "off_shift_count": to_percentage(record.off_shift_count, record.schedulings_count),
        "is_percentage": True,
    }
    if record.pool_check_count is not None:
        changes["pool_check_count"] = to_percentage(record.pool_check_count, record.total_hour_count)
        changes["golden_pool_check_count"] = to_percentage(record.golden_pool_check_count, record.shift_count)
    if record.washroom_check_count is not None:
        changes["washroom_check_count"] = to_percentage(
            record.washroom_check_count, record.total_hour_count, dual_observer=True
        )
        changes["golden_washroom_check_count"] = to_percentage(
            record.golden_washroom_check_count, record.shift_count
        )
    return replace(record, **changes)


def compute_monthly_check_metrics(record: EmployeeRecord) -> EmployeeRecord:
    if record.is_percentage:
        raise TypeError(f"Employee {record.employee_id} is already expressed as percentages.")
    return replace(
        record,
        pool_check_count=to_percentage(record.pool_check_count, record.total_hour_count),
        washroom_check_count=to_percentage(record.washroom_check_count, record.total_hour_count, dual_observer=True),
        is_percentage=True,
    )
