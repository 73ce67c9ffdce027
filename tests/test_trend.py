"""
Tests for the least-squares trend line and chart boundary flags.
"""

import math
from datetime import date, datetime

import pytest

from backend.club_dashboard.models import SeriesPoint, WeeklySeries
from backend.club_dashboard.trend import fit_trend, linear_regression, partial_week_flags, sequential_points


def _weekly(*values, start=date(2025, 1, 6)):
    from datetime import timedelta

    return WeeklySeries(
        name="washroom_check_count",
        points=tuple(SeriesPoint(x=start + timedelta(days=7 * index), y=value) for index, value in enumerate(values)),
    )


class TestFitTrend:
    def test_perfect_line(self):
        fit = fit_trend(_weekly(5, 8, 11, 14, 17))
        assert fit.slope == pytest.approx(3)
        assert fit.intercept == pytest.approx(2)
        assert fit.r_squared == pytest.approx(1.0)

    def test_change_statistics(self):
        fit = fit_trend(_weekly(5, 8, 11, 14, 17))
        assert fit.total_change == 12
        assert fit.total_percent_change == pytest.approx(240)
        assert fit.rate_per_step == pytest.approx(3)
        assert fit.percent_rate_per_step == pytest.approx(60)

    def test_best_fit_line_endpoints(self):
        fit = fit_trend(_weekly(5, 8, 11, 14, 17))
        start, end = fit.best_fit_line
        assert (start.x, end.x) == (1, 5)
        assert start.y == pytest.approx(5)
        assert end.y == pytest.approx(17)

    def test_points_keep_their_week(self):
        fit = fit_trend(_weekly(1, 2))
        assert [point.x for point in fit.points] == [1, 2]
        assert [point.week for point in fit.points] == [date(2025, 1, 6), date(2025, 1, 13)]

    def test_fewer_than_two_points_draws_nothing(self):
        assert fit_trend(_weekly(4)) is None
        assert fit_trend(_weekly()) is None

    def test_constant_series_has_undefined_r_squared(self):
        fit = fit_trend(_weekly(4, 4, 4))
        assert fit.slope == 0
        assert fit.intercept == pytest.approx(4)
        assert math.isnan(fit.r_squared)

    def test_zero_first_value_has_undefined_percent_change(self):
        fit = fit_trend(_weekly(0, 2, 4))
        assert fit.total_change == 4
        assert math.isnan(fit.total_percent_change)
        assert math.isnan(fit.percent_rate_per_step)

    def test_noisy_series_r_squared_between_zero_and_one(self):
        fit = fit_trend(_weekly(2, 5, 3, 8, 6))
        assert 0 < fit.r_squared < 1
        assert fit.slope > 0

    def test_accepts_point_sequences(self):
        fit = fit_trend([SeriesPoint(x=1, y=1), SeriesPoint(x=2, y=3)])
        assert fit.slope == pytest.approx(2)
        assert fit.points[0].week is None


class TestHelpers:
    def test_sequential_points_are_one_based(self):
        points = sequential_points(_weekly(9, 7))
        assert [(point.x, point.y) for point in points] == [(1, 9.0), (2, 7.0)]

    def test_zero_variance_x_returns_nan(self):
        m, b = linear_regression([SeriesPoint(x=1, y=1), SeriesPoint(x=1, y=2)])
        assert math.isnan(m) and math.isnan(b)


class TestPartialWeekFlags:
    def test_partial_start_and_in_progress_end(self):
        series = WeeklySeries(
            name="pool_check_count",
            points=(SeriesPoint(x=date(2025, 1, 1), y=3), SeriesPoint(x=date(2025, 1, 13), y=4)),
        )
        assert partial_week_flags(series, range_end=date(2025, 1, 15)) == (True, True)
        assert partial_week_flags(series, range_end=date(2025, 1, 19)) == (True, False)

    def test_without_range_end_uses_now(self):
        series = _weekly(1, 2)
        assert partial_week_flags(series, now=datetime(2025, 1, 15, 9, 0)) == (False, True)
        assert partial_week_flags(series, now=datetime(2025, 2, 1, 9, 0)) == (False, False)

    def test_empty_series(self):
        assert partial_week_flags(WeeklySeries(name="x")) == (False, False)
