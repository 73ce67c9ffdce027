"""
Club dashboard configuration.

Every section has code defaults; environment variables override them.
"""

from __future__ import annotations

import json
import os
from datetime import date
from typing import Dict, Optional

from pydantic import BaseModel, Field, validator

from .models import ClubOperatingHours

MAX_DAY_INDEX = 143


class OperatingHoursConfig(BaseModel):
    weekday_open_index: int = 30
    """Weekday opening time in 10-minute steps from midnight (30 = 05:00)"""

    weekday_close_index: int = 138
    """Weekday closing time (138 = 23:00)"""

    weekend_open_index: int = 48
    """Weekend opening time (48 = 08:00)"""

    weekend_close_index: int = 138
    """Weekend closing time"""

    @validator("weekday_open_index", "weekday_close_index", "weekend_open_index", "weekend_close_index")
    def _validate_index(cls, value: int) -> int:
        if not 0 <= value <= MAX_DAY_INDEX:
            raise ValueError(f"operating hour index must be between 0 and {MAX_DAY_INDEX}")
        return value

    @validator("weekday_close_index")
    def _validate_weekday_close(cls, value: int, values: Dict[str, int]) -> int:
        opening = values.get("weekday_open_index")
        if opening is not None and value < opening:
            raise ValueError("weekday close must not be before weekday open")
        return value

    @validator("weekend_close_index")
    def _validate_weekend_close(cls, value: int, values: Dict[str, int]) -> int:
        opening = values.get("weekend_open_index")
        if opening is not None and value < opening:
            raise ValueError("weekend close must not be before weekend open")
        return value

    def to_operating_hours(self) -> ClubOperatingHours:
        return ClubOperatingHours(
            weekday_open_index=self.weekday_open_index,
            weekday_close_index=self.weekday_close_index,
            weekend_open_index=self.weekend_open_index,
            weekend_close_index=self.weekend_close_index,
        )


class DatabaseConfig(BaseModel):
    url: Optional[str] = None
    """Single-club database; unused when ``tenants`` is set"""

    tenants: Dict[int, str] = Field(default_factory=dict)
    """Director view: club id -> database URL"""


class DashboardConfig(BaseModel):
    operating_hours: OperatingHoursConfig = OperatingHoursConfig()
    database: DatabaseConfig = DatabaseConfig()
    default_range_start: date = date(2024, 9, 1)
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_date(name: str, default: date) -> date:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return default


def _env_tenants(name: str, default: Dict[int, str]) -> Dict[int, str]:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return default
    return {int(club_id): str(url) for club_id, url in parsed.items()}


def load_dashboard_config(overrides: Optional[Dict] = None) -> DashboardConfig:
    cfg = DashboardConfig()
    overrides = overrides or {}

    hours_cfg = overrides.get("operating_hours", {})
    cfg.operating_hours = OperatingHoursConfig(
        weekday_open_index=_env_int(
            "CLUB_WEEKDAY_OPEN_INDEX", hours_cfg.get("weekday_open_index", cfg.operating_hours.weekday_open_index)
        ),
        weekday_close_index=_env_int(
            "CLUB_WEEKDAY_CLOSE_INDEX", hours_cfg.get("weekday_close_index", cfg.operating_hours.weekday_close_index)
        ),
        weekend_open_index=_env_int(
            "CLUB_WEEKEND_OPEN_INDEX", hours_cfg.get("weekend_open_index", cfg.operating_hours.weekend_open_index)
        ),
        weekend_close_index=_env_int(
            "CLUB_WEEKEND_CLOSE_INDEX", hours_cfg.get("weekend_close_index", cfg.operating_hours.weekend_close_index)
        ),
    )

    db_cfg = overrides.get("database", {})
    cfg.database = DatabaseConfig(
        url=os.getenv("CLUB_DASHBOARD_DATABASE_URL", db_cfg.get("url", cfg.database.url)),
        tenants=_env_tenants("CLUB_DASHBOARD_TENANTS", db_cfg.get("tenants", cfg.database.tenants)),
    )

    cfg.default_range_start = _env_date(
        "CLUB_DASHBOARD_DEFAULT_START", overrides.get("default_range_start", cfg.default_range_start)
    )
    cfg.log_level = os.getenv("CLUB_DASHBOARD_LOG_LEVEL", overrides.get("log_level", cfg.log_level))
    return cfg
