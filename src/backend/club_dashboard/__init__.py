"""
Club compliance dashboard helpers.

This package turns already-fetched check and shift rows into the weekly
series, percentages, trend lines and table highlights shown on the manager
and director dashboards.
"""

from .aggregation import (  # noqa: F401
    build_club_weekly_data,
    count_by_week,
    merge_and_sum,
    trim_zero_weeks,
    weekly_hours_series,
)
from .errors import InvalidMetricError  # noqa: F401
from .hours import elapsed_weekly_hours  # noqa: F401
from .models import (  # noqa: F401
    ClubEventSet,
    ClubOperatingHours,
    ClubReport,
    ClubWeeklyData,
    DatedEvent,
    DateRange,
    Department,
    EmployeeRecord,
    EmployeeReport,
    Highlight,
    MetricFamily,
    SeriesPoint,
    SeriesUnit,
    TableRow,
    TrendFit,
    WeeklyHoursRow,
    WeeklySeries,
    serialize,
)
from .normalization import (  # noqa: F401
    compute_employee_metrics,
    compute_monthly_check_metrics,
    format_percentage,
    normalize_club_data,
    to_percentage,
)
from .ranking import best_performer, filter_department, highlight, highlight_table  # noqa: F401
from .repository import (  # noqa: F401
    ClubDataRepository,
    RepositoryConfig,
    SQLClubRepository,
    build_repository_from_env,
    build_tenant_repositories,
)
from .service import ClubDashboardService  # noqa: F401
from .trend import fit_trend, partial_week_flags  # noqa: F401
from .weeks import monday_of, weeks_in_range  # noqa: F401
