"""
Tests for the dashboard service: the director loop, employee reports,
monthly checks and ranking.
"""

import logging
from datetime import date, datetime, time

import pytest

from backend.club_dashboard.errors import InvalidMetricError
from backend.club_dashboard.models import ClubEventSet, DatedEvent, DateRange, EmployeeRecord, MetricFamily
from backend.club_dashboard.repository import ClubDataRepository
from backend.club_dashboard.service import ClubDashboardService
from backend.club_dashboard.weeks import utc_now


class FakeRepository(ClubDataRepository):
    def __init__(self, events=None, employees=(), checkers=(), error=None):
        self.events = events
        self.employees = employees
        self.checkers = checkers
        self.error = error
        self.calls = []

    def load_club_events(self, start, end, club_id=None):
        self.calls.append(("club", start, end, club_id))
        if self.error is not None:
            raise self.error
        return self.events or ClubEventSet(club_id=club_id)

    def load_employees(self, start, end, club_id=None):
        self.calls.append(("employees", start, end, club_id))
        return self.employees

    def load_monthly_checks(self, start, end):
        self.calls.append(("monthly", start, end))
        return self.checkers


def _washroom_club(club_id, *days):
    return ClubEventSet(club_id=club_id, one_washroom_checks=tuple(DatedEvent(date=day) for day in days))


JANUARY_WEEK = DateRange(start=date(2025, 1, 6), end=date(2025, 1, 12))


class TestClubReport:
    def test_failing_club_is_skipped(self, service, caplog):
        repositories = {
            3: FakeRepository(events=_washroom_club(3, datetime(2025, 1, 8, 9, 0))),
            1: FakeRepository(error=RuntimeError("connection refused")),
            2: FakeRepository(events=_washroom_club(2, datetime(2025, 1, 7, 9, 0), datetime(2025, 1, 7, 12, 0))),
        }
        with caplog.at_level(logging.WARNING, logger="backend.club_dashboard.service"):
            report = service.build_club_report(repositories, JANUARY_WEEK)

        assert [club.club_id for club in report.raw] == [2, 3]
        assert [club.club_id for club in report.percentage] == [2, 3]
        assert list(report.failed_clubs) == [1]
        assert "club 1" in caplog.text
        assert "connection refused" in caplog.text
        failure = next(record for record in caplog.records if "club 1" in record.getMessage())
        assert failure.exc_info is not None
        assert failure.exc_info[0] is RuntimeError

    def test_raw_and_percentage_values(self, service):
        repositories = {2: FakeRepository(events=_washroom_club(2, datetime(2025, 1, 7, 9, 0), datetime(2025, 1, 7, 12, 0)))}
        report = service.build_club_report(repositories, JANUARY_WEEK)

        raw = report.raw[0].metrics[MetricFamily.WASHROOM_CHECK]
        percentage = report.percentage[0].metrics[MetricFamily.WASHROOM_CHECK]
        assert [(point.x, point.y) for point in raw.points] == [(date(2025, 1, 6), 2)]
        # 65 weekly hours, doubled for 30-minute checks and again for two observers
        assert [point.y for point in percentage.points] == [0.8]

    def test_repositories_receive_resolved_range(self, service):
        repository = FakeRepository()
        service.build_club_report({5: repository}, JANUARY_WEEK)
        assert repository.calls == [
            ("club", datetime(2025, 1, 6), datetime.combine(date(2025, 1, 12), time.max), 5)
        ]

    def test_every_club_failing(self, service):
        report = service.build_club_report({1: FakeRepository(error=ValueError("bad row"))}, JANUARY_WEEK)
        assert list(report.raw) == []
        assert list(report.failed_clubs) == [1]


class TestDefaultRanges:
    def test_club_range_ends_last_sunday(self, service):
        repository = FakeRepository()
        service.build_club_report({1: repository}, DateRange())
        _, start, end, _ = repository.calls[0]
        assert start == datetime(2024, 9, 1)
        assert end == datetime.combine(date(2025, 1, 12), time.max)

    def test_employee_range_ends_today(self, service):
        repository = FakeRepository()
        service.build_employee_report(repository, DateRange())
        _, start, end, _ = repository.calls[0]
        assert start == datetime(2024, 9, 1)
        assert end == datetime.combine(date(2025, 1, 15), time.max)

    def test_weekly_series_uses_default_range(self, service):
        events = _washroom_club(4, datetime(2025, 1, 7, 9, 0), datetime(2025, 1, 14, 9, 0))
        data = service.compute_club_weekly_series(events, DateRange())
        # the week of 01-13 lies past last Sunday
        assert [point.x for point in data.metrics[MetricFamily.WASHROOM_CHECK].points] == [date(2025, 1, 6)]


class TestEmployeeReport:
    def test_grouped_per_club(self, service):
        records = [
            EmployeeRecord(employee_id=1, name="A", department_id=2, club_id=1, posted_shift_count=1, shift_count=4),
            EmployeeRecord(employee_id=2, name="B", department_id=2, club_id=2),
            EmployeeRecord(employee_id=3, name="C", department_id=3, club_id=1),
        ]
        report = service.employee_report(records)
        assert [[row.name for row in club] for club in report.raw] == [["A", "C"], ["B"]]
        assert [[row.name for row in club] for club in report.percentage] == [["A", "C"], ["B"]]
        assert report.percentage[0][0].posted_shift_count == 25.0
        assert report.raw[0][0].posted_shift_count == 1

    def test_repository_records_are_converted(self, service):
        repository = FakeRepository(
            employees=(EmployeeRecord(employee_id=1, name="A", department_id=2, sick_shift_count=1, schedulings_count=4),)
        )
        report = service.build_employee_report(repository, JANUARY_WEEK, club_id=9)
        assert report.percentage[0][0].sick_shift_count == 25.0
        assert repository.calls[0][3] == 9


class TestMonthlyChecks:
    def test_current_month_bounds(self, service):
        repository = FakeRepository(
            checkers=(
                EmployeeRecord(
                    employee_id=1,
                    name="A",
                    department_id=3,
                    total_hour_count=40,
                    pool_check_count=10,
                    washroom_check_count=20,
                ),
            )
        )
        records = service.build_monthly_checks(repository)

        assert repository.calls == [
            ("monthly", datetime(2025, 1, 1), datetime.combine(date(2025, 1, 31), time.max))
        ]
        assert records[0].pool_check_count == 25.0
        assert records[0].washroom_check_count == 25.0

    def test_explicit_day(self, service):
        repository = FakeRepository()
        service.build_monthly_checks(repository, today=date(2024, 2, 10))
        assert repository.calls[0][2] == datetime.combine(date(2024, 2, 29), time.max)


class TestTrendAndRanking:
    def test_fit_trend_for_metric(self, service):
        events = _washroom_club(1, datetime(2025, 1, 7), datetime(2025, 1, 14), datetime(2025, 1, 15))
        data = service.compute_club_weekly_series(events, DateRange(start=date(2025, 1, 6), end=date(2025, 1, 19)))
        fit = service.fit_trend(data, "washroom_check_count")
        assert fit.slope == pytest.approx(1)
        assert fit.total_change == 1

    def test_fit_trend_too_short(self, service):
        events = _washroom_club(1, datetime(2025, 1, 7))
        data = service.compute_club_weekly_series(events, JANUARY_WEEK)
        assert service.fit_trend(data, "washroom_check_count") is None

    def test_rank_best(self, service):
        cohort = [{"name": "A", "sick_shift_count": 2}, {"name": "B", "sick_shift_count": 0}]
        assert service.rank_best(cohort, "sick_shift_count")["name"] == "B"

    def test_rank_best_unclassified_metric(self, service, caplog):
        with caplog.at_level(logging.WARNING, logger="backend.club_dashboard.service"):
            with pytest.raises(InvalidMetricError):
                service.rank_best([{"shift_count": 1}], "shift_count")
        assert "shift_count" in caplog.text

    def test_table_uses_default_metrics(self, service):
        rows = service.table([{"name": "A"}, {"name": "B", "take_count": 2}])
        assert set(rows[0].highlights) == {
            "posted_shift_count",
            "offered_shift_count",
            "sick_shift_count",
            "off_shift_count",
            "washroom_check_count",
            "pool_check_count",
            "take_count",
            "trade_count",
        }
        assert rows[1].highlights["take_count"].value == "leading"


class TestDefaultClock:
    def test_defaults_to_utc_clock(self, operating_hours):
        assert ClubDashboardService(operating_hours=operating_hours).clock is utc_now
