"""
Shared fixtures for the club dashboard test suite.

``src/`` is put on ``sys.path`` so ``backend.club_dashboard`` imports work
without installing the package first.
"""

import os
import sys
from datetime import date, datetime

import pytest

_SRC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if _SRC_DIR not in sys.path:
    sys.path.insert(0, _SRC_DIR)

from backend.club_dashboard.models import ClubOperatingHours  # noqa: E402
from backend.club_dashboard.service import ClubDashboardService  # noqa: E402


@pytest.fixture
def operating_hours():
    """
    Weekdays 09:00-18:00 (9h), weekends 10:00-20:00 (10h); 65 hours a week.
    """
    return ClubOperatingHours(
        weekday_open_index=54,
        weekday_close_index=108,
        weekend_open_index=60,
        weekend_close_index=120,
    )


@pytest.fixture
def wednesday_afternoon():
    return datetime(2025, 1, 15, 14, 0)


@pytest.fixture
def service(operating_hours, wednesday_afternoon):
    return ClubDashboardService(
        operating_hours=operating_hours,
        default_range_start=date(2024, 9, 1),
        clock=lambda: wednesday_afternoon,
    )
