from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import load_dashboard_config
from .errors import InvalidMetricError
from .models import ClubEventSet, DatedEvent, DateRange, EmployeeRecord, SeriesPoint, WeeklyHoursRow, serialize
from .repository import (
    ClubDataRepository,
    RepositoryConfig,
    build_repository_from_env,
    build_tenant_repositories,
)
from .service import ClubDashboardService

config = load_dashboard_config()
logging.getLogger(__package__).setLevel(config.log_level.upper())

app = FastAPI(title="Club Compliance Dashboard API", version="0.1.0")
repository_config = RepositoryConfig(database_url=config.database.url, tenants=dict(config.database.tenants))
repository: Optional[ClubDataRepository] = build_repository_from_env(repository_config)
tenant_repositories: Dict[int, ClubDataRepository] = build_tenant_repositories(repository_config)
service = ClubDashboardService(
    operating_hours=config.operating_hours.to_operating_hours(),
    default_range_start=config.default_range_start,
)


class HoursRowPayload(BaseModel):
    week_of: date
    monday: float = 0
    tuesday: float = 0
    wednesday: float = 0
    thursday: float = 0
    friday: float = 0
    saturday: float = 0
    sunday: float = 0


class ClubEventsPayload(BaseModel):
    club_id: Optional[int] = None
    one_washroom_checks: List[datetime] = Field(default_factory=list)
    two_washroom_checks: List[datetime] = Field(default_factory=list)
    golden_washroom_checks: List[datetime] = Field(default_factory=list)
    one_pool_checks: List[datetime] = Field(default_factory=list)
    two_pool_checks: List[datetime] = Field(default_factory=list)
    golden_pool_checks: List[datetime] = Field(default_factory=list)
    posted_shifts: List[datetime] = Field(default_factory=list)
    offered_shifts: List[datetime] = Field(default_factory=list)
    sick_shifts: List[datetime] = Field(default_factory=list)
    off_shifts: List[datetime] = Field(default_factory=list)
    shifts: List[datetime] = Field(default_factory=list)
    schedulings: List[datetime] = Field(default_factory=list)
    schedule_hours: List[HoursRowPayload] = Field(default_factory=list)
    experience_hours: List[HoursRowPayload] = Field(default_factory=list)


class EmployeePayload(BaseModel):
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


class RangeRequest(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None

    def date_range(self) -> DateRange:
        return DateRange(start=self.start, end=self.end)


class ClubDataRequest(RangeRequest):
    clubs: Optional[List[ClubEventsPayload]] = None


class EmployeeDataRequest(RangeRequest):
    employees: Optional[List[EmployeePayload]] = None


class PointPayload(BaseModel):
    x: Union[date, int]
    y: float


class TrendRequest(BaseModel):
    points: List[PointPayload] = Field(default_factory=list)


class RankRequest(BaseModel):
    cohort: List[Dict[str, Any]]
    metric: str
    per_hour: bool = False


class DashboardResponse(BaseModel):
    data: Any
    source: str


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/club-data", response_model=DashboardResponse)
async def club_data_endpoint(request: ClubDataRequest) -> DashboardResponse:
    date_range = request.date_range()
    repositories = _club_repositories()
    if repositories:
        report = service.build_club_report(repositories, date_range)
        return DashboardResponse(data=serialize(report), source="database")

    if request.clubs is None:
        raise HTTPException(
            status_code=500,
            detail=(
                "CLUB_DASHBOARD_DATABASE_URL is not configured; "
                "supply club events in the request body for ad-hoc queries."
            ),
        )

    inline = {payload.club_id: _InlineRepository(_convert_club_payload(payload)) for payload in request.clubs}
    report = service.build_club_report(inline, date_range)
    return DashboardResponse(data=serialize(report), source="inline")


@app.post("/employee-data", response_model=DashboardResponse)
async def employee_data_endpoint(request: EmployeeDataRequest) -> DashboardResponse:
    if request.employees is not None:
        records = [_convert_employee_payload(payload) for payload in request.employees]
        return DashboardResponse(data=serialize(service.employee_report(records)), source="inline")
    if repository is None:
        raise HTTPException(status_code=500, detail="No employee data source configured.")
    report = service.build_employee_report(repository, request.date_range())
    return DashboardResponse(data=serialize(report), source="database")


@app.get("/monthly-check-data", response_model=DashboardResponse)
async def monthly_check_endpoint() -> DashboardResponse:
    if repository is None:
        raise HTTPException(status_code=500, detail="No employee data source configured.")
    return DashboardResponse(data=serialize(service.build_monthly_checks(repository)), source="database")


@app.post("/trend", response_model=DashboardResponse)
async def trend_endpoint(request: TrendRequest) -> DashboardResponse:
    fit = service.fit_trend_points([SeriesPoint(x=point.x, y=point.y) for point in request.points])
    if fit is None:
        raise HTTPException(status_code=400, detail="At least two points are needed to fit a trend.")
    return DashboardResponse(data=serialize(fit), source="inline")


@app.post("/rank", response_model=DashboardResponse)
async def rank_endpoint(request: RankRequest) -> DashboardResponse:
    try:
        best = service.rank_best(request.cohort, request.metric, request.per_hour)
    except InvalidMetricError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return DashboardResponse(data=best, source="inline")


class _InlineRepository(ClubDataRepository):
    def __init__(self, events: ClubEventSet):
        self.events = events

    def load_club_events(self, start: datetime, end: datetime, club_id: Optional[int] = None) -> ClubEventSet:
        return self.events


def _club_repositories() -> Dict[Optional[int], ClubDataRepository]:
    if tenant_repositories:
        return dict(tenant_repositories)
    if repository is not None:
        return {None: repository}
    return {}


def _convert_club_payload(payload: ClubEventsPayload) -> ClubEventSet:
    def events(values: List[datetime]):
        return tuple(DatedEvent(date=value) for value in values)

    def hours(rows: List[HoursRowPayload]):
        return tuple(
            WeeklyHoursRow(week_of=row.week_of, hours=row.model_dump(exclude={"week_of"})) for row in rows
        )

    return ClubEventSet(
        club_id=payload.club_id,
        one_washroom_checks=events(payload.one_washroom_checks),
        two_washroom_checks=events(payload.two_washroom_checks),
        golden_washroom_checks=events(payload.golden_washroom_checks),
        one_pool_checks=events(payload.one_pool_checks),
        two_pool_checks=events(payload.two_pool_checks),
        golden_pool_checks=events(payload.golden_pool_checks),
        posted_shifts=events(payload.posted_shifts),
        offered_shifts=events(payload.offered_shifts),
        sick_shifts=events(payload.sick_shifts),
        off_shifts=events(payload.off_shifts),
        shifts=events(payload.shifts),
        schedulings=events(payload.schedulings),
        schedule_hours=hours(payload.schedule_hours),
        experience_hours=hours(payload.experience_hours),
    )


def _convert_employee_payload(payload: EmployeePayload) -> EmployeeRecord:
    return EmployeeRecord(**payload.model_dump())
