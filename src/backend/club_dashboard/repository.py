from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, Row

from .config import load_dashboard_config
from .models import DAY_COLUMNS, ClubEventSet, DatedEvent, Department, EmployeeRecord, WeeklyHoursRow
from .weeks import monday_of

_RANGE = "date >= (:start AT TIME ZONE 'UTC') AND date <= (:end AT TIME ZONE 'UTC')"
_SHIFT_RANGE = "s.date >= (:start AT TIME ZONE 'UTC') AND s.date <= (:end AT TIME ZONE 'UTC')"

CLUB_EVENT_QUERIES: Dict[str, str] = {
    "one_washroom_checks": f"""
        SELECT date FROM washroom_checks
        WHERE ((mens_initials IS NOT NULL AND womens_initials IS NULL)
            OR (womens_initials IS NOT NULL AND mens_initials IS NULL))
        AND {_RANGE}
    """,
    "two_washroom_checks": f"""
        SELECT date FROM washroom_checks
        WHERE mens_initials IS NOT NULL AND womens_initials IS NOT NULL
        AND {_RANGE}
    """,
    "golden_washroom_checks": f"""
        SELECT date FROM washroom_checks
        WHERE {_RANGE}
        GROUP BY date
        HAVING COUNT(*) = COUNT(mens_initials) AND COUNT(*) = COUNT(womens_initials)
    """,
    "one_pool_checks": f"""
        SELECT date FROM pool_checks
        WHERE ((mens_initials IS NOT NULL AND womens_initials IS NULL)
            OR (womens_initials IS NOT NULL AND mens_initials IS NULL))
        AND {_RANGE}
    """,
    "two_pool_checks": f"""
        SELECT date FROM pool_checks
        WHERE mens_initials IS NOT NULL AND womens_initials IS NOT NULL
        AND {_RANGE}
    """,
    "golden_pool_checks": f"""
        SELECT date FROM pool_checks
        WHERE {_RANGE}
        GROUP BY date
        HAVING COUNT(*) = COUNT(mens_initials) AND COUNT(*) = COUNT(womens_initials)
    """,
    "posted_shifts": """
        SELECT s.date FROM posted_shifts p
        LEFT JOIN shift_reference s USING (shift_id)
        WHERE p.offered = false AND s.date >= :start AND s.date <= :end
    """,
    "offered_shifts": """
        SELECT s.date FROM posted_shifts p
        LEFT JOIN shift_reference s USING (shift_id)
        WHERE p.offered = true AND s.date >= :start AND s.date <= :end
    """,
    "sick_shifts": f"SELECT date FROM shift_reference WHERE shift = 'SICK' AND {_RANGE}",
    "off_shifts": f"SELECT date FROM shift_reference WHERE shift = 'OFF' AND {_RANGE}",
    "shifts": f"""
        SELECT date FROM shift_reference
        WHERE active = true AND shift NOT IN ('OFF', 'SICK') AND {_RANGE}
    """,
    "schedulings": f"SELECT date FROM shift_reference WHERE active = true AND {_RANGE}",
}

HOURS_TABLES = {"schedule_hours": "schedule_hours", "experience_hours": "experience_schedule_hours"}

EMPLOYEE_COUNT_QUERIES: Dict[str, str] = {
    "posted_shift_count": f"""
        SELECT COUNT(*) FROM posted_shifts p
        LEFT JOIN shift_reference s USING (shift_id)
        WHERE p.employee_id = :employee_id AND p.offered = false AND {_SHIFT_RANGE}
    """,
    "offered_shift_count": f"""
        SELECT COUNT(*) FROM posted_shifts p
        LEFT JOIN shift_reference s USING (shift_id)
        WHERE p.employee_id = :employee_id AND p.offered = true AND {_SHIFT_RANGE}
    """,
    "take_count": f"""
        SELECT COUNT(*) FROM offers o
        LEFT JOIN shift_reference s ON o.take_id = s.shift_id
        WHERE o.employee_id = :employee_id AND o.give_id IS NULL AND {_SHIFT_RANGE}
    """,
    "trade_count": f"""
        SELECT COUNT(*) FROM offers o
        LEFT JOIN shift_reference s ON o.take_id = s.shift_id
        WHERE o.employee_id = :employee_id AND o.give_id IS NOT NULL AND {_SHIFT_RANGE}
    """,
    "sick_shift_count": f"""
        SELECT COUNT(*) FROM shift_reference s
        LEFT JOIN posted_schedules p USING (week_of)
        WHERE s.employee_id = :employee_id AND s.shift = 'SICK'
        AND (p.experience OR p.facilities) AND s.active = true AND {_SHIFT_RANGE}
    """,
    "off_shift_count": f"""
        SELECT COUNT(*) FROM shift_reference s
        LEFT JOIN posted_schedules p USING (week_of)
        WHERE s.employee_id = :employee_id AND s.shift = 'OFF'
        AND (p.experience OR p.facilities) AND s.active = true AND {_SHIFT_RANGE}
    """,
    "shift_count": f"""
        SELECT COUNT(*) FROM shift_reference
        WHERE employee_id = :employee_id AND active = true
        AND shift NOT IN ('OFF', 'SICK') AND {_RANGE}
    """,
    "schedulings_count": f"""
        SELECT COUNT(*) FROM shift_reference
        WHERE employee_id = :employee_id AND active = true AND {_RANGE}
    """,
    "total_hour_count": f"""
        SELECT COALESCE(SUM(length), 0) FROM shift_reference
        WHERE employee_id = :employee_id AND active = true AND {_RANGE}
    """,
}

_GOLDEN_BY_INITIALS = """
    SELECT COUNT(*) FROM (
        SELECT date FROM {table}
        WHERE {range}
        GROUP BY date
        HAVING COUNT(*) = COUNT(mens_initials)
        AND COUNT(*) = COUNT(womens_initials)
        AND (SUM(CASE WHEN mens_initials = :initials THEN 1 ELSE 0 END) >= 1
            OR SUM(CASE WHEN womens_initials = :initials THEN 1 ELSE 0 END) >= 1)
    ) golden_days
"""

CHECK_COUNT_QUERIES: Dict[str, str] = {
    "washroom_check_count": f"""
        SELECT COUNT(*) FROM washroom_checks
        WHERE (mens_initials = :initials OR womens_initials = :initials) AND {_RANGE}
    """,
    "golden_washroom_check_count": _GOLDEN_BY_INITIALS.format(table="washroom_checks", range=_RANGE),
    "one_pool_check_count": f"""
        SELECT COUNT(*) FROM pool_checks
        WHERE ((mens_initials = :initials AND (womens_initials != :initials OR womens_initials IS NULL))
            OR (womens_initials = :initials AND (mens_initials != :initials OR mens_initials IS NULL)))
        AND {_RANGE}
    """,
    "two_pool_check_count": f"""
        SELECT COUNT(*) FROM pool_checks
        WHERE mens_initials = :initials AND womens_initials = :initials AND {_RANGE}
    """,
    "golden_pool_check_count": _GOLDEN_BY_INITIALS.format(table="pool_checks", range=_RANGE),
}

EMPLOYEES_QUERY = """
    SELECT name, employee_id, department_id, initials, club_id
    FROM employees
    WHERE active = true
    AND (department_id IN (1, 2, 4) OR (department_id = 3 AND initials IS NOT NULL))
    ORDER BY name
"""

CHECKERS_QUERY = """
    SELECT name, employee_id, department_id, initials, club_id
    FROM employees
    WHERE active = true AND department_id = 3 AND initials IS NOT NULL
    ORDER BY name
"""


class ClubDataRepository:
    """
    Interface for loading one club's rows.

    Implementations hand back plain records; all weekly bucketing and
    percentage maths happens in the service layer.
    """

    def load_club_events(self, start: datetime, end: datetime, club_id: Optional[int] = None) -> ClubEventSet:
        raise NotImplementedError

    def load_employees(self, start: datetime, end: datetime, club_id: Optional[int] = None) -> Sequence[EmployeeRecord]:
        raise NotImplementedError

    def load_monthly_checks(self, start: datetime, end: datetime) -> Sequence[EmployeeRecord]:
        raise NotImplementedError


class SQLClubRepository(ClubDataRepository):
    """
    Load club data from the scheduling schema.

    Expected tables:
      - washroom_checks / pool_checks(date, mens_initials, womens_initials)
      - shift_reference(shift_id, employee_id, date, shift, length, active, week_of)
      - posted_shifts(shift_id, employee_id, offered), offers(employee_id, take_id, give_id)
      - schedule_hours / experience_schedule_hours(week_of, monday .. sunday)
      - employees(employee_id, name, department_id, initials, club_id, active)
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def load_club_events(self, start: datetime, end: datetime, club_id: Optional[int] = None) -> ClubEventSet:
        params = {"start": start, "end": end}
        with self.engine.connect() as connection:
            events = {
                name: tuple(self._row_to_event(row) for row in connection.execute(text(query), params))
                for name, query in CLUB_EVENT_QUERIES.items()
            }
            hours = {
                name: self._load_hours(connection, table, start, end) for name, table in HOURS_TABLES.items()
            }
        return ClubEventSet(club_id=club_id, **events, **hours)

    def _load_hours(self, connection: Connection, table: str, start: datetime, end: datetime) -> Sequence[WeeklyHoursRow]:
        query = text(
            f"""
            SELECT week_of, {", ".join(DAY_COLUMNS)} FROM {table}
            WHERE week_of >= :start_week AND week_of <= :end_week
            ORDER BY week_of
            """
        )
        params = {"start_week": monday_of(start), "end_week": monday_of(end)}
        return tuple(self._row_to_hours(row) for row in connection.execute(query, params))

    def load_employees(self, start: datetime, end: datetime, club_id: Optional[int] = None) -> Sequence[EmployeeRecord]:
        params = {"start": start, "end": end}
        records = []
        with self.engine.connect() as connection:
            for row in connection.execute(text(EMPLOYEES_QUERY)).fetchall():
                employee_params = dict(params, employee_id=row.employee_id, initials=row.initials)
                counts = {
                    name: self._scalar(connection, query, employee_params)
                    for name, query in EMPLOYEE_COUNT_QUERIES.items()
                }
                if row.department_id == Department.EXPERIENCE:
                    counts.update(self._check_counts(connection, employee_params))
                records.append(self._row_to_employee(row, club_id, counts))
        return tuple(records)

    def load_monthly_checks(self, start: datetime, end: datetime) -> Sequence[EmployeeRecord]:
        params = {"start": start, "end": end}
        records = []
        with self.engine.connect() as connection:
            for row in connection.execute(text(CHECKERS_QUERY)).fetchall():
                employee_params = dict(params, employee_id=row.employee_id, initials=row.initials)
                counts = self._check_counts(connection, employee_params)
                counts["total_hour_count"] = self._scalar(
                    connection, EMPLOYEE_COUNT_QUERIES["total_hour_count"], employee_params
                )
                records.append(self._row_to_employee(row, None, counts))
        return tuple(records)

    def _check_counts(self, connection: Connection, params: Dict[str, Any]) -> Dict[str, float]:
        raw = {name: self._scalar(connection, query, params) for name, query in CHECK_COUNT_QUERIES.items()}
        return {
            "washroom_check_count": raw["washroom_check_count"],
            "golden_washroom_check_count": raw["golden_washroom_check_count"],
            "pool_check_count": raw["one_pool_check_count"] + raw["two_pool_check_count"] * 2,
            "golden_pool_check_count": raw["golden_pool_check_count"],
        }

    @staticmethod
    def _scalar(connection: Connection, query: str, params: Dict[str, Any]) -> float:
        value = connection.execute(text(query), params).scalar()
        return float(value or 0)

    @staticmethod
    def _row_to_event(row: Row) -> DatedEvent:
        return DatedEvent(date=row.date)

    @staticmethod
    def _row_to_hours(row: Row) -> WeeklyHoursRow:
        week_of = row.week_of.date() if isinstance(row.week_of, datetime) else row.week_of
        mapping = row._mapping
        return WeeklyHoursRow(
            week_of=week_of,
            hours={day: float(mapping[day] or 0) for day in DAY_COLUMNS},
        )

    @staticmethod
    def _row_to_employee(row: Row, club_id: Optional[int], counts: Dict[str, float]) -> EmployeeRecord:
        return EmployeeRecord(
            employee_id=int(row.employee_id),
            name=str(row.name),
            department_id=int(row.department_id),
            initials=row.initials,
            club_id=club_id if club_id is not None else getattr(row, "club_id", None),
            **counts,
        )


@dataclass(frozen=True)
class RepositoryConfig:
    database_url: Optional[str] = None
    tenants: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        database = load_dashboard_config().database
        return cls(database_url=database.url, tenants=dict(database.tenants))


def build_repository_from_env(config: Optional[RepositoryConfig] = None) -> Optional[ClubDataRepository]:
    cfg = config or RepositoryConfig.from_env()
    if cfg.database_url:
        return SQLClubRepository(create_engine(cfg.database_url))
    return None


def build_tenant_repositories(config: Optional[RepositoryConfig] = None) -> Dict[int, ClubDataRepository]:
    """One repository per club database for the director view."""

    cfg = config or RepositoryConfig.from_env()
    return {club_id: SQLClubRepository(create_engine(url)) for club_id, url in sorted(cfg.tenants.items())}
