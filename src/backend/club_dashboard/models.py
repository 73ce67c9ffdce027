from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple, Union

from .weeks import last_sunday

WeekKey = date
SeriesX = Union[date, int]

DAY_COLUMNS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class MetricFamily(str, Enum):
    """
    Metric families shown on the club graphs.

    The value doubles as the field name used by the frontend payloads.
    """

    POOL_CHECK = "pool_check_count"
    GOLDEN_POOL_CHECK = "golden_pool_check_count"
    WASHROOM_CHECK = "washroom_check_count"
    GOLDEN_WASHROOM_CHECK = "golden_washroom_check_count"
    POSTED_SHIFT = "posted_shift_count"
    OFFERED_SHIFT = "offered_shift_count"
    SICK_SHIFT = "sick_shift_count"
    OFF_SHIFT = "off_shift_count"

    @property
    def is_golden(self) -> bool:
        return self in (MetricFamily.GOLDEN_POOL_CHECK, MetricFamily.GOLDEN_WASHROOM_CHECK)

    @property
    def is_shift_ratio(self) -> bool:
        return self in (MetricFamily.POSTED_SHIFT, MetricFamily.OFFERED_SHIFT)

    @property
    def is_scheduling_ratio(self) -> bool:
        return self in (MetricFamily.SICK_SHIFT, MetricFamily.OFF_SHIFT)


class SeriesUnit(str, Enum):
    COUNT = "count"
    PERCENT = "percent"
    HOURS = "hours"


class Department(int, Enum):
    MANAGEMENT = 1
    SALES = 2
    EXPERIENCE = 3
    FACILITIES = 4


class Highlight(str, Enum):
    LEADING = "leading"
    MUTED = "muted"
    NONE = "none"


@dataclass(frozen=True)
class DatedEvent:
    """A single timestamped occurrence such as one washroom check or one shift."""

    date: Union[date, datetime]


@dataclass(frozen=True)
class SeriesPoint:
    x: SeriesX
    y: float
    week: Optional[WeekKey] = None


@dataclass(frozen=True)
class WeeklySeries:
    """
    Chronologically ordered ``{x, y}`` points.

    ``unit`` tells a raw-count series apart from a percentage series so the
    normalizer can refuse to convert the same series twice.
    """

    name: str
    points: Tuple[SeriesPoint, ...] = ()
    unit: SeriesUnit = SeriesUnit.COUNT

    def __len__(self) -> int:
        return len(self.points)

    def as_map(self) -> Dict[SeriesX, float]:
        return {point.x: point.y for point in self.points}

    def with_points(self, points: Iterable[SeriesPoint], unit: Optional[SeriesUnit] = None) -> "WeeklySeries":
        return replace(self, points=tuple(points), unit=unit or self.unit)


@dataclass(frozen=True)
class DateRange:
    """
    Query window selected by a manager.

    ``None`` on either side means "use the default": a fixed epoch for the
    start and the most recent Sunday (club graphs) or today (employee tables)
    for the end.
    """

    start: Optional[Union[date, datetime]] = None
    end: Optional[Union[date, datetime]] = None

    def resolve(self, default_start: date, now: datetime, club_level: bool = True) -> Tuple[datetime, datetime]:
        start = self.start if self.start is not None else default_start
        if self.end is not None:
            end = self.end
        else:
            end = last_sunday(now) if club_level else now
        start_dt = _as_datetime(start)
        end_day = end.date() if isinstance(end, datetime) else end
        end_dt = datetime.combine(end_day, time.max)
        return start_dt, end_dt

    @property
    def end_date(self) -> Optional[date]:
        if self.end is None:
            return None
        return self.end.date() if isinstance(self.end, datetime) else self.end


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


@dataclass(frozen=True)
class ClubOperatingHours:
    """
    Club opening hours expressed as 10-minute-of-day indices (0..143).
    """

    weekday_open_index: int
    weekday_close_index: int
    weekend_open_index: int
    weekend_close_index: int

    @property
    def weekday_hours(self) -> float:
        return (self.weekday_close_index * 10 - self.weekday_open_index * 10) / 60

    @property
    def weekend_hours(self) -> float:
        return (self.weekend_close_index * 10 - self.weekend_open_index * 10) / 60

    @property
    def weekly_hours(self) -> float:
        return self.weekday_hours * 5 + self.weekend_hours * 2

    def opening_hour(self, weekend: bool) -> float:
        index = self.weekend_open_index if weekend else self.weekday_open_index
        return index / 6


@dataclass(frozen=True)
class WeeklyHoursRow:
    """One row of the scheduled-hours table: a week and its per-day hour totals."""

    week_of: date
    hours: Dict[str, float] = field(default_factory=dict)

    def total(self, days: Sequence[str] = DAY_COLUMNS) -> float:
        return sum(float(self.hours.get(day) or 0) for day in days)


@dataclass(frozen=True)
class ClubEventSet:
    """
    Already-fetched event rows for one club and one date range.
    """

    club_id: Optional[int] = None
    one_washroom_checks: Sequence[DatedEvent] = ()
    two_washroom_checks: Sequence[DatedEvent] = ()
    golden_washroom_checks: Sequence[DatedEvent] = ()
    one_pool_checks: Sequence[DatedEvent] = ()
    two_pool_checks: Sequence[DatedEvent] = ()
    golden_pool_checks: Sequence[DatedEvent] = ()
    posted_shifts: Sequence[DatedEvent] = ()
    offered_shifts: Sequence[DatedEvent] = ()
    sick_shifts: Sequence[DatedEvent] = ()
    off_shifts: Sequence[DatedEvent] = ()
    shifts: Sequence[DatedEvent] = ()
    schedulings: Sequence[DatedEvent] = ()
    schedule_hours: Sequence[WeeklyHoursRow] = ()
    experience_hours: Sequence[WeeklyHoursRow] = ()


@dataclass(frozen=True)
class ClubWeeklyData:
    club_id: Optional[int]
    metrics: Dict[MetricFamily, WeeklySeries]
    shift_count: WeeklySeries
    schedulings_count: WeeklySeries
    total_hour_count: WeeklySeries
    experience_hour_count: WeeklySeries

    @property
    def is_percentage(self) -> bool:
        return any(series.unit is SeriesUnit.PERCENT for series in self.metrics.values())

    def series(self, name: str) -> WeeklySeries:
        try:
            return self.metrics[MetricFamily(name)]
        except ValueError:
            extra = {
                "shift_count": self.shift_count,
                "schedulings_count": self.schedulings_count,
                "total_hour_count": self.total_hour_count,
                "experience_hour_count": self.experience_hour_count,
            }
            return extra[name]


@dataclass(frozen=True)
class EmployeeRecord:
    """
    Per-employee counts for a date range.

    Check counts stay ``None`` for staff outside the experience department,
    which never record checks.
    """

    employee_id: int
    name: str
    department_id: int
    initials: Optional[str] = None
    club_id: Optional[int] = None
    posted_shift_count: float = 0
    offered_shift_count: float = 0
    take_count: float = 0
    trade_count: float = 0
    sick_shift_count: float = 0
    off_shift_count: float = 0
    shift_count: float = 0
    schedulings_count: float = 0
    total_hour_count: float = 0
    washroom_check_count: Optional[float] = None
    golden_washroom_check_count: Optional[float] = None
    pool_check_count: Optional[float] = None
    golden_pool_check_count: Optional[float] = None
    is_percentage: bool = False


@dataclass(frozen=True)
class TrendFit:
    slope: float
    intercept: float
    r_squared: float
    total_change: float
    total_percent_change: float
    rate_per_step: float
    percent_rate_per_step: float
    best_fit_line: Tuple[SeriesPoint, SeriesPoint]
    points: Tuple[SeriesPoint, ...]


@dataclass(frozen=True)
class TableRow:
    entity: Any
    highlights: Dict[str, Highlight]


@dataclass(frozen=True)
class ClubReport:
    raw: Sequence[ClubWeeklyData] = ()
    percentage: Sequence[ClubWeeklyData] = ()
    failed_clubs: Sequence[int] = ()


@dataclass(frozen=True)
class EmployeeReport:
    """Employees grouped per club, raw and as percentages."""

    raw: Sequence[Sequence[EmployeeRecord]] = ()
    percentage: Sequence[Sequence[EmployeeRecord]] = ()


def _number(value: float) -> Optional[float]:
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def serialize(obj: Any) -> Any:
    """
    Convert the dataclasses above into JSON-friendly structures.

    Week keys become ISO dates and ``NaN`` becomes ``None`` so callers can
    ship the result straight to the charts.
    """

    if isinstance(obj, ClubWeeklyData):
        payload: Dict[str, Any] = {"club_id": obj.club_id}
        for family, series in obj.metrics.items():
            payload[family.value] = serialize(series)
        payload["shift_count"] = serialize(obj.shift_count)
        payload["schedulings_count"] = serialize(obj.schedulings_count)
        payload["total_hour_count"] = serialize(obj.total_hour_count)
        payload["experience_hour_count"] = serialize(obj.experience_hour_count)
        return payload
    if isinstance(obj, WeeklySeries):
        return [serialize(point) for point in obj.points]
    if isinstance(obj, SeriesPoint):
        data = {"x": serialize(obj.x), "y": _number(obj.y)}
        if obj.week is not None:
            data["date"] = obj.week.isoformat()
        return data
    if isinstance(obj, EmployeeRecord):
        return {
            "employee_id": obj.employee_id,
            "name": obj.name,
            "department_id": obj.department_id,
            "initials": obj.initials,
            "club_id": obj.club_id,
            "posted_shift_count": obj.posted_shift_count,
            "offered_shift_count": obj.offered_shift_count,
            "take_count": obj.take_count,
            "trade_count": obj.trade_count,
            "sick_shift_count": obj.sick_shift_count,
            "off_shift_count": obj.off_shift_count,
            "shift_count": obj.shift_count,
            "schedulings_count": obj.schedulings_count,
            "total_hour_count": obj.total_hour_count,
            "washroom_check_count": obj.washroom_check_count,
            "golden_washroom_check_count": obj.golden_washroom_check_count,
            "pool_check_count": obj.pool_check_count,
            "golden_pool_check_count": obj.golden_pool_check_count,
        }
    if isinstance(obj, TrendFit):
        return {
            "slope": _number(obj.slope),
            "intercept": _number(obj.intercept),
            "rSquared": _number(obj.r_squared),
            "totalChange": _number(obj.total_change),
            "totalPercentChange": _number(obj.total_percent_change),
            "ratePerStep": _number(obj.rate_per_step),
            "percentRatePerStep": _number(obj.percent_rate_per_step),
            "bestFitLine": [serialize(point) for point in obj.best_fit_line],
            "points": [serialize(point) for point in obj.points],
        }
    if isinstance(obj, ClubReport):
        return {
            "raw": [serialize(club) for club in obj.raw],
            "percentage": [serialize(club) for club in obj.percentage],
            "failedClubs": list(obj.failed_clubs),
        }
    if isinstance(obj, EmployeeReport):
        return {
            "raw": [[serialize(row) for row in club] for club in obj.raw],
            "percentage": [[serialize(row) for row in club] for club in obj.percentage],
        }
    if isinstance(obj, TableRow):
        return {
            "entity": serialize(obj.entity),
            "highlights": {metric: flag.value for metric, flag in obj.highlights.items()},
        }
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {serialize(key): serialize(value) for key, value in obj.items()}
    if isinstance(obj, Iterable) and not isinstance(obj, (str, bytes)):
        return [serialize(item) for item in obj]
    if isinstance(obj, float):
        return _number(obj)
    return obj