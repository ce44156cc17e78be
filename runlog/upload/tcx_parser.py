"""TCX (Garmin Training Center) parsing.

Only lap summaries are read; trackpoints are ignored. Element lookups use
the `{*}` namespace wildcard so files exported with or without the
TrainingCenterDatabase namespace both parse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from loguru import logger
from lxml import etree

from runlog.intervals.types import Lap
from runlog.utils.duration import format_duration_hhmmss
from runlog.utils.pace import format_pace


@dataclass
class TcxActivity:
    id: str | None
    sport: str
    laps: list[Lap] = field(default_factory=list)
    total_time_seconds: float = 0.0
    total_distance_meters: float = 0.0
    average_heart_rate: int | None = None


def _child_text(element, path: str) -> str | None:
    child = element.find(path)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _float_or_default(text: str | None, default: float = 0.0) -> float:
    if text is None:
        return default
    try:
        return float(text)
    except ValueError:
        return default


def _int_or_none(text: str | None) -> int | None:
    if text is None:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None


def _parse_lap(lap_elem) -> Lap:
    return Lap(
        start_time=lap_elem.get("StartTime"),
        total_time_seconds=_float_or_default(_child_text(lap_elem, "{*}TotalTimeSeconds")),
        distance_meters=_float_or_default(_child_text(lap_elem, "{*}DistanceMeters")),
        average_heart_rate=_int_or_none(_child_text(lap_elem, "{*}AverageHeartRateBpm/{*}Value")),
        maximum_heart_rate=_int_or_none(_child_text(lap_elem, "{*}MaximumHeartRateBpm/{*}Value")),
        intensity=_child_text(lap_elem, "{*}Intensity") or "Active",
    )


def parse_tcx_file(content: bytes | str) -> TcxActivity:
    """Parse a TCX document into its laps and totals.

    Missing or malformed lap fields fall back to defaults (0 for time and
    distance, None for heart rate).

    Raises:
        ValueError: If the document is not XML or has no Activity element
    """
    if isinstance(content, str):
        content = content.encode("utf-8")

    try:
        root = etree.fromstring(content)
    except etree.XMLSyntaxError as e:
        raise ValueError(f"Failed to parse TCX file: {e}") from e

    activity_elem = root.find(".//{*}Activity")
    if activity_elem is None:
        raise ValueError("TCX file missing Activity element")

    laps = [_parse_lap(lap_elem) for lap_elem in activity_elem.iterfind("{*}Lap")]

    hr_values = [lap.average_heart_rate for lap in laps if lap.average_heart_rate]
    activity = TcxActivity(
        id=_child_text(activity_elem, "{*}Id"),
        sport=activity_elem.get("Sport") or "Running",
        laps=laps,
        total_time_seconds=sum(lap.total_time_seconds for lap in laps),
        total_distance_meters=sum(lap.distance_meters for lap in laps),
        average_heart_rate=round(sum(hr_values) / len(hr_values)) if hr_values else None,
    )
    logger.info(
        f"[TCX] Parsed activity id={activity.id} sport={activity.sport} laps={len(laps)} "
        f"distance={activity.total_distance_meters:.0f}m time={activity.total_time_seconds:.0f}s"
    )
    return activity


def tcx_activity_to_session_fields(activity: TcxActivity) -> dict:
    """Form-ready values for a completed session built from a TCX activity."""
    session_date = datetime.now(timezone.utc).date()
    if activity.id:
        try:
            session_date = date.fromisoformat(activity.id.split("T")[0])
        except ValueError:
            logger.warning(f"[TCX] Activity id '{activity.id}' is not a timestamp, using today's date")

    distance_km = activity.total_distance_meters / 1000
    return {
        "date": session_date,
        "duration": format_duration_hhmmss(activity.total_time_seconds),
        "distance": round(distance_km, 2),
        "avg_pace": format_pace(distance_km, activity.total_time_seconds),
        "avg_heart_rate": activity.average_heart_rate or 0,
    }
