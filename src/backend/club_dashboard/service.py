from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .aggregation import build_club_weekly_data
from .errors import InvalidMetricError
from .models import (
    ClubEventSet,
    ClubOperatingHours,
    ClubReport,
    ClubWeeklyData,
    DateRange,
    EmployeeRecord,
    EmployeeReport,
    SeriesPoint,
    TableRow,
    TrendFit,
)
from .normalization import compute_employee_metrics, compute_monthly_check_metrics, normalize_club_data
from .ranking import best_performer, highlight_table
from .repository import ClubDataRepository
from .trend import fit_trend
from .weeks import month_bounds, utc_now

logger = logging.getLogger(__name__)

DEFAULT_RANGE_START = date(2024, 9, 1)
TABLE_METRICS = (
    "posted_shift_count",
    "offered_shift_count",
    "sick_shift_count",
    "off_shift_count",
    "washroom_check_count",
    "pool_check_count",
    "take_count",
    "trade_count",
)


def group_by_club(records: Sequence[EmployeeRecord]) -> List[List[EmployeeRecord]]:
    """Split employees per club, keeping clubs in first-seen order."""

    grouped: Dict[Optional[int], List[EmployeeRecord]] = {}
    for record in records:
        grouped.setdefault(record.club_id, []).append(record)
    return list(grouped.values())


class ClubDashboardService:
    """
    Weekly compliance statistics for the club and employee dashboards.

    The service holds no per-request state: the date range and the reference
    time are passed into every call, so one instance can serve many clubs.
    """

    def __init__(
        self,
        operating_hours: ClubOperatingHours,
        default_range_start: date = DEFAULT_RANGE_START,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.operating_hours = operating_hours
        self.default_range_start = default_range_start
        self.clock = clock or utc_now

    def compute_club_weekly_series(
        self,
        events: ClubEventSet,
        date_range: DateRange,
        now: Optional[datetime] = None,
    ) -> ClubWeeklyData:
        start, end = date_range.resolve(self.default_range_start, now or self.clock(), club_level=True)
        return build_club_weekly_data(events, start, end)

    def compute_club_percentages(
        self,
        data: ClubWeeklyData,
        date_range: DateRange,
        now: Optional[datetime] = None,
    ) -> ClubWeeklyData:
        return normalize_club_data(data, self.operating_hours, range_end=date_range.end_date, now=now or self.clock())

    def build_club_report(
        self,
        repositories: Mapping[Optional[int], ClubDataRepository],
        date_range: DateRange,
        now: Optional[datetime] = None,
    ) -> ClubReport:
        """
        Raw and percentage weekly data for every club in ``repositories``.

        A club whose data cannot be loaded or computed is logged and left out;
        the remaining clubs are still returned.
        """

        now = now or self.clock()
        start, end = date_range.resolve(self.default_range_start, now, club_level=True)
        raw: List[ClubWeeklyData] = []
        percentage: List[ClubWeeklyData] = []
        failed: List[Any] = []

        for club_id, repository in repositories.items():
            try:
                events = repository.load_club_events(start, end, club_id=club_id)
                club_data = build_club_weekly_data(events, start, end)
                club_percentages = self.compute_club_percentages(club_data, date_range, now=now)
            except Exception as exc:
                logger.warning(
                    "[%s] Failed to build club data for club %s: %s",
                    datetime.now(timezone.utc).isoformat(),
                    club_id,
                    exc,
                    exc_info=True,
                )
                failed.append(club_id)
                continue
            raw.append(club_data)
            percentage.append(club_percentages)

        return ClubReport(
            raw=sorted(raw, key=_club_sort_key),
            percentage=sorted(percentage, key=_club_sort_key),
            failed_clubs=tuple(failed),
        )

    def compute_employee_metrics(self, records: Sequence[EmployeeRecord]) -> List[EmployeeRecord]:
        return [compute_employee_metrics(record) for record in records]

    def build_employee_report(
        self,
        repository: ClubDataRepository,
        date_range: DateRange,
        club_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> EmployeeReport:
        start, end = date_range.resolve(self.default_range_start, now or self.clock(), club_level=False)
        records = repository.load_employees(start, end, club_id=club_id)
        return self.employee_report(records)

    def employee_report(self, records: Sequence[EmployeeRecord]) -> EmployeeReport:
        return EmployeeReport(
            raw=group_by_club(records),
            percentage=group_by_club(self.compute_employee_metrics(records)),
        )

    def build_monthly_checks(
        self,
        repository: ClubDataRepository,
        today: Optional[date] = None,
    ) -> List[EmployeeRecord]:
        """Washroom and pool check rates for the current month's competition."""

        first, last = month_bounds(today or self.clock())
        records = repository.load_monthly_checks(
            datetime.combine(first, time.min),
            datetime.combine(last, time.max),
        )
        return [compute_monthly_check_metrics(record) for record in records]

    def fit_trend(self, data: ClubWeeklyData, metric: str) -> Optional[TrendFit]:
        return fit_trend(data.series(metric))

    def fit_trend_points(self, points: Sequence[SeriesPoint]) -> Optional[TrendFit]:
        return fit_trend(points)

    def rank_best(self, cohort: Sequence[Any], metric: str, per_hour: bool = False) -> Optional[Any]:
        try:
            return best_performer(cohort, metric, per_hour)
        except InvalidMetricError:
            logger.warning("Ranking requested for unclassified metric %s", metric)
            raise

    def table(
        self,
        cohort: Sequence[Any],
        metrics: Sequence[str] = TABLE_METRICS,
        per_hour: bool = False,
    ) -> List[TableRow]:
        return highlight_table(cohort, metrics, per_hour)


def _club_sort_key(data: ClubWeeklyData):
    return (data.club_id is None, data.club_id or 0)
