"""
Tests for the Monday-anchored calendar helpers.
"""

from datetime import date, datetime, timedelta, timezone

from backend.club_dashboard.weeks import (
    day_index,
    last_sunday,
    monday_of,
    month_bounds,
    sunday_of,
    utc_now,
    weeks_in_range,
)


class TestMondayOf:
    def test_thursday_maps_to_previous_monday(self):
        assert monday_of(date(2025, 1, 2)) == date(2024, 12, 30)

    def test_sunday_shifts_back_six_days(self):
        assert monday_of(date(2025, 1, 5)) == date(2024, 12, 30)

    def test_monday_is_its_own_week(self):
        assert monday_of(date(2025, 1, 6)) == date(2025, 1, 6)

    def test_time_of_day_is_ignored(self):
        assert monday_of(datetime(2025, 1, 6, 23, 59)) == date(2025, 1, 6)

    def test_aware_datetime_is_normalized_to_utc(self):
        # 01:00 Monday at UTC+5 is still Sunday evening in UTC
        instant = datetime(2025, 1, 6, 1, 0, tzinfo=timezone(timedelta(hours=5)))
        assert monday_of(instant) == date(2024, 12, 30)

    def test_iso_string_input(self):
        assert monday_of("2025-01-10") == date(2025, 1, 6)
        assert monday_of("2025-01-10T12:00:00Z") == date(2025, 1, 6)


class TestWeeksInRange:
    def test_monday_start_enumerates_mondays_before_end(self):
        assert weeks_in_range(date(2024, 12, 30), date(2025, 1, 13)) == [
            date(2024, 12, 30),
            date(2025, 1, 6),
        ]

    def test_end_of_day_includes_the_final_monday(self):
        weeks = weeks_in_range(date(2024, 12, 30), datetime(2025, 1, 13, 23, 59, 59))
        assert weeks[-1] == date(2025, 1, 13)

    def test_mid_week_start_keeps_partial_leading_entry(self):
        weeks = weeks_in_range(date(2025, 1, 1), datetime(2025, 1, 20, 23, 59, 59))
        assert weeks == [
            date(2025, 1, 1),
            date(2025, 1, 6),
            date(2025, 1, 13),
            date(2025, 1, 20),
        ]
        assert all(week.weekday() == 0 for week in weeks[1:])

    def test_output_is_strictly_ascending(self):
        weeks = weeks_in_range(date(2024, 9, 4), date(2025, 3, 1))
        assert all(earlier < later for earlier, later in zip(weeks, weeks[1:]))
        assert len(weeks) == len(set(weeks))

    def test_empty_when_start_equals_end(self):
        assert weeks_in_range(date(2025, 1, 6), date(2025, 1, 6)) == []

    def test_empty_when_end_before_start(self):
        assert weeks_in_range(date(2025, 1, 8), date(2025, 1, 1)) == []


class TestCalendarHelpers:
    def test_day_index_uses_sunday_zero(self):
        assert day_index(date(2025, 1, 5)) == 0
        assert day_index(date(2025, 1, 6)) == 1
        assert day_index(date(2025, 1, 11)) == 6

    def test_sunday_of(self):
        assert sunday_of(date(2025, 1, 6)) == date(2025, 1, 12)

    def test_last_sunday_mid_week(self):
        assert last_sunday(datetime(2025, 1, 8, 10, 0)) == date(2025, 1, 5)

    def test_last_sunday_on_a_sunday(self):
        assert last_sunday(date(2025, 1, 5)) == date(2025, 1, 5)

    def test_month_bounds_leap_february(self):
        assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_utc_now_is_naive_utc(self):
        before = datetime.now(timezone.utc).replace(tzinfo=None)
        now = utc_now()
        after = datetime.now(timezone.utc).replace(tzinfo=None)
        assert now.tzinfo is None
        assert before <= now <= after
