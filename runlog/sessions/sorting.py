"""Multi-column sort configuration for the session list.

A sort configuration is an ordered list of (column, direction) pairs,
serialized in query strings as "date:desc,distance:asc". Every column sorts
with NULLS LAST. Planned sessions sort on their targets (target duration,
distance, pace, heart rate, RPE) so mixed lists stay meaningful. Pace is
inverted: "desc" puts the fastest (lowest seconds per km) first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from sqlalchemy import func
from sqlalchemy.sql import ColumnElement

from runlog.utils.dates import ensure_utc
from runlog.utils.heart_rate import parse_hr_value
from runlog.utils.pace import leading_pace_seconds

SortDirection = Literal["asc", "desc"]

SORTABLE_COLUMNS = (
    "session_number",
    "week",
    "date",
    "session_type",
    "duration",
    "distance",
    "avg_pace",
    "avg_heart_rate",
    "perceived_exertion",
)

INVERTED_COLUMNS = frozenset({"avg_pace"})


@dataclass(frozen=True)
class SortItem:
    column: str
    direction: SortDirection = "desc"


def parse_sort_param(value: str | None) -> list[SortItem]:
    """Parse "col:dir,col2" into sort items.

    The direction defaults to desc. Unknown columns, invalid directions and
    repeated columns are skipped.
    """
    if not value:
        return []

    items: list[SortItem] = []
    seen: set[str] = set()
    for part in value.split(","):
        column, _, direction = part.strip().partition(":")
        column = column.strip()
        direction = direction.strip().lower() or "desc"
        if column not in SORTABLE_COLUMNS or direction not in ("asc", "desc") or column in seen:
            continue
        seen.add(column)
        items.append(SortItem(column, direction))
    return items


def serialize_sort_config(items: list[SortItem]) -> str | None:
    if not items:
        return None
    return ",".join(f"{item.column}:{item.direction}" for item in items)


def toggle_column_sort(items: list[SortItem], column: str, multi: bool = False) -> list[SortItem]:
    """Cycle a column through desc -> asc -> unsorted.

    Without multi, the column replaces the current configuration. With
    multi, it is appended (or updated in place) and other columns stay.
    """
    if column not in SORTABLE_COLUMNS:
        return list(items)

    existing = next((item for item in items if item.column == column), None)
    if existing is None:
        nxt = SortItem(column, "desc")
    elif existing.direction == "desc":
        nxt = SortItem(column, "asc")
    else:
        nxt = None

    if not multi:
        return [nxt] if nxt else []

    if existing is None:
        return [*items, nxt]
    if nxt is None:
        return [item for item in items if item.column != column]
    return [nxt if item.column == column else item for item in items]


def column_sort_info(items: list[SortItem], column: str) -> tuple[SortDirection | None, int | None]:
    """Direction and 1-based priority of a column in the configuration."""
    for index, item in enumerate(items):
        if item.column == column:
            return item.direction, index + 1
    return None, None


def build_order_by(
    columns,
    items: list[SortItem],
    include_planned_date_as_date: bool = False,
) -> list[ColumnElement]:
    """ORDER BY clauses over the session union.

    Args:
        columns: Column collection of the union subquery; it must expose the
            sort keys (session_number, week, date, planned_date, session_type,
            duration_key, distance_key, pace_key, heart_rate_key, rpe_key)
            plus status and id
        items: Sort configuration
        include_planned_date_as_date: Sort planned sessions on planned_date
            when sorting by date
    """
    if not items:
        return [
            columns.status.desc().nulls_last(),
            columns.session_number.desc().nulls_last(),
            columns.id.asc(),
        ]

    date_expr = func.coalesce(columns.date, columns.planned_date) if include_planned_date_as_date else columns.date
    expressions = {
        "session_number": columns.session_number,
        "week": columns.week,
        "date": date_expr,
        "session_type": func.lower(columns.session_type),
        "duration": columns.duration_key,
        "distance": columns.distance_key,
        "avg_pace": columns.pace_key,
        "avg_heart_rate": columns.heart_rate_key,
        "perceived_exertion": columns.rpe_key,
    }

    clauses = []
    for item in items:
        ascending = item.direction == "asc"
        if item.column in INVERTED_COLUMNS:
            ascending = not ascending
        expr = expressions[item.column]
        clauses.append(expr.asc().nulls_last() if ascending else expr.desc().nulls_last())
    clauses.append(columns.id.asc())
    return clauses


def session_sort_value(session, column: str, include_planned_date_as_date: bool = False):
    """In-memory sort key of a TrainingSession, mirroring build_order_by."""
    planned = session.status == "planned"
    if column == "date":
        value = session.date
        if value is None and include_planned_date_as_date:
            value = session.planned_date
        return ensure_utc(value)
    if column == "session_type":
        return session.session_type.lower() if session.session_type else None
    if column == "duration":
        if planned:
            return session.target_duration * 60 if session.target_duration is not None else None
        return session.effective_duration_minutes() * 60 if session.duration else None
    if column == "distance":
        return session.target_distance if planned else session.distance
    if column == "avg_pace":
        return leading_pace_seconds(session.target_pace if planned else session.avg_pace)
    if column == "avg_heart_rate":
        return parse_hr_value(session.target_heart_rate_bpm) if planned else session.avg_heart_rate
    if column == "perceived_exertion":
        return session.target_rpe if planned else session.perceived_exertion
    return getattr(session, column, None)


def sort_sessions(sessions: list, items: list[SortItem], include_planned_date_as_date: bool = False) -> list:
    """Sort TrainingSessions in memory with the same rules as the SQL ordering."""
    ordered = sorted(sessions, key=lambda s: s.id)
    if items:
        return _stable_sort(ordered, items, include_planned_date_as_date)

    ordered = _stable_sort(ordered, [SortItem("session_number", "desc")], include_planned_date_as_date)
    # status DESC puts "planned" before "completed"
    return sorted(ordered, key=lambda s: s.status != "planned")


def _stable_sort(sessions: list, items: list[SortItem], include_planned_date_as_date: bool) -> list:
    # Python's sort is stable: apply keys from the least to the most significant
    ordered = list(sessions)
    for item in reversed(items):
        descending = item.direction == "desc"
        if item.column in INVERTED_COLUMNS:
            descending = not descending
        present = [s for s in ordered if session_sort_value(s, item.column, include_planned_date_as_date) is not None]
        missing = [s for s in ordered if session_sort_value(s, item.column, include_planned_date_as_date) is None]
        present.sort(key=lambda s: session_sort_value(s, item.column, include_planned_date_as_date), reverse=descending)
        ordered = present + missing
    return ordered
