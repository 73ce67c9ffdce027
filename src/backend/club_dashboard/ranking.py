from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .errors import InvalidMetricError
from .models import Department, Highlight, TableRow

HIGHER_IS_BETTER = frozenset(
    {
        "offered_shift_count",
        "washroom_check_count",
        "pool_check_count",
        "take_count",
        "trade_count",
    }
)
LOWER_IS_BETTER = frozenset(
    {
        "posted_shift_count",
        "sick_shift_count",
        "off_shift_count",
    }
)

HOURS_FIELD = "total_hour_count"


def _field(entity: Any, name: str) -> Any:
    if isinstance(entity, Mapping):
        return entity.get(name)
    return getattr(entity, name, None)


def _as_number(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    return float(value)


def metric_value(entity: Any, metric: str, per_hour: bool = False) -> float:
    """
    The entity's value for ``metric``; per hour worked when ``per_hour`` is set.

    Entities without positive hours rate as zero.
    """

    value = _as_number(_field(entity, metric))
    if not per_hour:
        return value
    hours = _as_number(_field(entity, HOURS_FIELD))
    return value / hours if hours > 0 else 0.0


def higher_is_better(metric: str) -> bool:
    if metric in HIGHER_IS_BETTER:
        return True
    if metric in LOWER_IS_BETTER:
        return False
    raise InvalidMetricError(metric)


def best_performer(cohort: Sequence[Any], metric: str, per_hour: bool = False) -> Optional[Any]:
    """
    Best entity in ``cohort`` for ``metric``.

    Ties go to whichever entity appears first. Returns ``None`` for an empty
    cohort and raises :class:`InvalidMetricError` for metrics without a
    ranking direction.
    """

    higher = higher_is_better(metric)
    if not cohort:
        return None

    best = cohort[0]
    best_value = metric_value(best, metric, per_hour)
    for entity in cohort[1:]:
        value = metric_value(entity, metric, per_hour)
        if (value > best_value) if higher else (value < best_value):
            best, best_value = entity, value
    return best


def highlight(entity: Any, cohort: Sequence[Any], metric: str, per_hour: bool = False) -> Highlight:
    best = best_performer(cohort, metric, per_hour)
    if best is None:
        return Highlight.NONE
    value = metric_value(entity, metric, per_hour)
    if value == metric_value(best, metric, per_hour):
        return Highlight.LEADING
    if value == 0 or not _field(entity, metric):
        return Highlight.MUTED
    return Highlight.NONE


def highlight_table(cohort: Sequence[Any], metrics: Sequence[str], per_hour: bool = False) -> List[TableRow]:
    bests = {metric: best_performer(cohort, metric, per_hour) for metric in metrics}
    rows: List[TableRow] = []
    for entity in cohort:
        flags: Dict[str, Highlight] = {}
        for metric, best in bests.items():
            value = metric_value(entity, metric, per_hour)
            if value == metric_value(best, metric, per_hour):
                flags[metric] = Highlight.LEADING
            elif value == 0 or not _field(entity, metric):
                flags[metric] = Highlight.MUTED
            else:
                flags[metric] = Highlight.NONE
        rows.append(TableRow(entity=entity, highlights=flags))
    return rows


def filter_department(cohort: Sequence[Any], department: Union[str, int, Department]) -> List[Any]:
    if isinstance(department, str):
        try:
            department = Department[department.upper()]
        except KeyError:
            raise ValueError(f"Invalid department {department!r}") from None
    else:
        department = Department(department)
    return [entity for entity in cohort if _field(entity, "department_id") == department.value]
