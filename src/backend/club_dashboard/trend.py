from __future__ import annotations

import math
from datetime import date, datetime
from statistics import mean
from typing import Optional, Sequence, Tuple, Union

from .models import SeriesPoint, TrendFit, WeeklySeries
from .weeks import sunday_of, to_utc_date, utc_now


def sequential_points(series: Union[WeeklySeries, Sequence[SeriesPoint]]) -> Tuple[SeriesPoint, ...]:
    """Re-key points as 1, 2, 3, ... keeping each point's week key."""

    points = series.points if isinstance(series, WeeklySeries) else series
    return tuple(
        SeriesPoint(x=index, y=float(point.y), week=point.week or _week_of(point.x))
        for index, point in enumerate(points, start=1)
    )


def _week_of(x) -> Optional[date]:
    if isinstance(x, (date, str)):
        return to_utc_date(x)
    return None


def linear_regression(points: Sequence[SeriesPoint]) -> Tuple[float, float]:
    """Ordinary least squares fit ``y = m*x + b``."""

    n = len(points)
    sum_x = sum(point.x for point in points)
    sum_y = sum(point.y for point in points)
    sum_xy = sum(point.x * point.y for point in points)
    sum_x2 = sum(point.x * point.x for point in points)

    denominator = n * sum_x2 - sum_x * sum_x
    if denominator == 0:
        return math.nan, math.nan
    m = (n * sum_xy - sum_x * sum_y) / denominator
    b = (sum_y - m * sum_x) / n
    return m, b


def r_squared(points: Sequence[SeriesPoint], m: float, b: float) -> float:
    """
    Share of the variance explained by the line; ``nan`` for a constant series.
    """

    y_mean = mean(point.y for point in points)
    total = sum((point.y - y_mean) ** 2 for point in points)
    if total == 0:
        return math.nan
    residual = sum((point.y - (m * point.x + b)) ** 2 for point in points)
    return 1 - residual / total


def fit_trend(series: Union[WeeklySeries, Sequence[SeriesPoint]]) -> Optional[TrendFit]:
    """
    Fit a straight line through a weekly series.

    Returns ``None`` when there are fewer than two points, in which case no
    line is drawn.
    """

    points = sequential_points(series)
    n = len(points)
    if n < 2:
        return None

    m, b = linear_regression(points)
    first, last = points[0].y, points[-1].y
    total_change = last - first
    total_percent_change = total_change / first * 100 if first != 0 else math.nan
    x_min = min(point.x for point in points)
    x_max = max(point.x for point in points)

    return TrendFit(
        slope=m,
        intercept=b,
        r_squared=r_squared(points, m, b),
        total_change=total_change,
        total_percent_change=total_percent_change,
        rate_per_step=total_change / (n - 1),
        percent_rate_per_step=total_percent_change / (n - 1),
        best_fit_line=(
            SeriesPoint(x=x_min, y=m * x_min + b),
            SeriesPoint(x=x_max, y=m * x_max + b),
        ),
        points=points,
    )


def partial_week_flags(
    series: WeeklySeries,
    range_end: Optional[Union[date, datetime]] = None,
    now: Optional[datetime] = None,
) -> Tuple[bool, bool]:
    """
    ``(first_is_partial, last_is_partial)`` for labelling chart boundaries.
    """

    if not series.points:
        return False, False
    first = to_utc_date(series.points[0].x)
    last = to_utc_date(series.points[-1].x)
    if range_end is not None:
        reference = range_end.date() if isinstance(range_end, datetime) else range_end
    else:
        reference = (now or utc_now()).date()
    return first.weekday() != 0, reference < sunday_of(last)
