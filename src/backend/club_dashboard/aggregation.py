from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Union

from .models import (
    DAY_COLUMNS,
    ClubEventSet,
    ClubWeeklyData,
    DatedEvent,
    MetricFamily,
    SeriesPoint,
    SeriesUnit,
    WeeklyHoursRow,
    WeeklySeries,
)
from .weeks import DateLike, monday_of, to_utc_date, weeks_in_range

DOUBLE_INITIAL_MULTIPLIER = 2


def _event_date(event: Union[DatedEvent, DateLike]) -> DateLike:
    if isinstance(event, DatedEvent):
        return event.date
    return event


def count_by_week(events: Iterable[Union[DatedEvent, DateLike]], range_start: DateLike) -> Dict[date, int]:
    """
    Count events per Monday-anchored week.

    Events whose week begins before ``range_start`` are folded into the
    bucket keyed by ``range_start`` itself, which is the partial leading week
    emitted by :func:`weeks_in_range`.
    """

    first_week = to_utc_date(range_start)
    counts: Dict[date, int] = defaultdict(int)
    for event in events:
        week = monday_of(_event_date(event))
        if week < first_week:
            counts[first_week] += 1
        else:
            counts[week] += 1
    return dict(counts)


def trim_zero_weeks(points: Sequence[SeriesPoint]) -> List[SeriesPoint]:
    """Drop leading and trailing points whose ``y`` is exactly zero."""

    non_zero = [index for index, point in enumerate(points) if point.y != 0]
    if not non_zero:
        return []
    return list(points[non_zero[0] : non_zero[-1] + 1])


def merge_and_sum(
    primary: Iterable[Union[DatedEvent, DateLike]],
    secondary: Iterable[Union[DatedEvent, DateLike]],
    range_start: DateLike,
    range_end: DateLike,
    multiplier: float = DOUBLE_INITIAL_MULTIPLIER,
    name: str = "",
) -> WeeklySeries:
    """
    Merge two event streams into one weekly count series.

    ``secondary`` counts are weighted by ``multiplier``; a check initialled on
    both the men's and women's side counts twice.
    """

    primary_counts = count_by_week(primary, range_start)
    secondary_counts = count_by_week(secondary, range_start)
    points = [
        SeriesPoint(
            x=week,
            y=primary_counts.get(week, 0) + secondary_counts.get(week, 0) * multiplier,
        )
        for week in weeks_in_range(range_start, range_end)
    ]
    return WeeklySeries(name=name, points=tuple(trim_zero_weeks(points)), unit=SeriesUnit.COUNT)


def _row_for(rows: Sequence[WeeklyHoursRow], week: date) -> Optional[WeeklyHoursRow]:
    for row in rows:
        if row.week_of == week:
            return row
    return None


def weekly_hours_series(
    rows: Sequence[WeeklyHoursRow],
    range_start: DateLike,
    range_end: DateLike,
    name: str = "total_hour_count",
) -> WeeklySeries:
    """
    Build the scheduled-hours series for a range.

    Whole weeks come straight from the table; a range starting mid-week gets a
    leading entry covering the remaining days of that week and the week
    containing ``range_end`` contributes only the days up to the end date.
    A range inside a single week yields one entry for the days it covers.
    """

    start = to_utc_date(range_start)
    end = to_utc_date(range_end)
    if start > end:
        return WeeklySeries(name=name, unit=SeriesUnit.HOURS)

    start_week = monday_of(start)
    end_week = monday_of(end)
    if start_week == end_week and start.weekday() != 0:
        # single partial week: only the days between start and end
        row = _row_for(rows, start_week)
        if row is None:
            return WeeklySeries(name=name, unit=SeriesUnit.HOURS)
        days = DAY_COLUMNS[start.weekday() : end.weekday() + 1]
        return WeeklySeries(
            name=name,
            points=tuple(trim_zero_weeks([SeriesPoint(x=start, y=row.total(days))])),
            unit=SeriesUnit.HOURS,
        )

    points: List[SeriesPoint] = [
        SeriesPoint(x=row.week_of, y=row.total())
        for row in sorted(rows, key=lambda row: row.week_of)
        if start <= row.week_of < end_week
    ]

    if start.weekday() != 0:
        row = _row_for(rows, start_week)
        if row is not None:
            points.insert(0, SeriesPoint(x=start, y=row.total(DAY_COLUMNS[start.weekday() :])))

    row = _row_for(rows, end_week)
    if row is not None:
        points.append(SeriesPoint(x=end_week, y=row.total(DAY_COLUMNS[: end.weekday() + 1])))

    return WeeklySeries(name=name, points=tuple(trim_zero_weeks(points)), unit=SeriesUnit.HOURS)


def build_club_weekly_data(
    events: ClubEventSet,
    range_start: Union[date, datetime],
    range_end: Union[date, datetime],
) -> ClubWeeklyData:
    """
    Turn one club's fetched rows into raw weekly series for every metric.
    """

    def merged(primary, secondary=(), name: str = "") -> WeeklySeries:
        return merge_and_sum(primary, secondary, range_start, range_end, name=name)

    metrics = {
        MetricFamily.POOL_CHECK: merged(
            events.one_pool_checks, events.two_pool_checks, MetricFamily.POOL_CHECK.value
        ),
        MetricFamily.GOLDEN_POOL_CHECK: merged(
            events.golden_pool_checks, name=MetricFamily.GOLDEN_POOL_CHECK.value
        ),
        MetricFamily.WASHROOM_CHECK: merged(
            events.one_washroom_checks, events.two_washroom_checks, MetricFamily.WASHROOM_CHECK.value
        ),
        MetricFamily.GOLDEN_WASHROOM_CHECK: merged(
            events.golden_washroom_checks, name=MetricFamily.GOLDEN_WASHROOM_CHECK.value
        ),
        MetricFamily.POSTED_SHIFT: merged(events.posted_shifts, name=MetricFamily.POSTED_SHIFT.value),
        MetricFamily.OFFERED_SHIFT: merged(events.offered_shifts, name=MetricFamily.OFFERED_SHIFT.value),
        MetricFamily.SICK_SHIFT: merged(events.sick_shifts, name=MetricFamily.SICK_SHIFT.value),
        MetricFamily.OFF_SHIFT: merged(events.off_shifts, name=MetricFamily.OFF_SHIFT.value),
    }
    return ClubWeeklyData(
        club_id=events.club_id,
        metrics=metrics,
        shift_count=merged(events.shifts, name="shift_count"),
        schedulings_count=merged(events.schedulings, name="schedulings_count"),
        total_hour_count=weekly_hours_series(events.schedule_hours, range_start, range_end),
        experience_hour_count=weekly_hours_series(
            events.experience_hours, range_start, range_end, name="experience_hour_count"
        ),
    )
