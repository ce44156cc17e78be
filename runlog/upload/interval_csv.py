"""Garmin Connect lap export (CSV) parsing.

Garmin exports one row per recorded step plus a trailing summary row. Headers
are localized; French and English exports are supported:

    Intervalle,Type d'étape,Durée,Distance,Allure moyenne,Fréquence cardiaque moyenne
    1,Échauffement,10:00,1.8,5:33,132
    2,Course,3:00,0.75,4:00,168
    ...
    Récapitulatif,--,45:00,9.1,4:56,151
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field

from loguru import logger

from runlog.intervals.detector import build_interval_details
from runlog.intervals.types import IntervalDetails, IntervalStep, StepType
from runlog.utils.duration import duration_to_minutes, format_minutes_seconds, normalize_duration_to_mmss, parse_duration
from runlog.utils.pace import format_pace, normalize_pace

SUMMARY_MARKERS = ("récapitulatif", "summary")
RECOVERY_MARKERS = ("repos", "rest", "récupération", "recovery")
WARMUP_MARKERS = ("échauffement", "warmup", "warm-up", "warm up")
COOLDOWN_MARKERS = ("retour au calme", "cooldown", "cool-down", "cool down")


@dataclass
class IntervalCsvResult:
    steps: list[IntervalStep] = field(default_factory=list)
    repetition_count: int = 0
    total_duration: str = "00:00"
    total_distance: float = 0.0
    avg_pace: str = "00:00"
    avg_heart_rate: int = 0

    def to_interval_details(self) -> IntervalDetails:
        return build_interval_details(self.steps)


@dataclass
class _Columns:
    step_type: int
    duration: int
    distance: int = -1
    pace: int = -1
    heart_rate: int = -1


def _find_column(headers: list[str], predicate) -> int:
    return next((i for i, header in enumerate(headers) if predicate(header)), -1)


def _detect_columns(headers: list[str]) -> _Columns | None:
    lowered = [h.strip().lower() for h in headers]
    step_type = _find_column(lowered, lambda h: "type" in h and ("étape" in h or "step" in h))
    duration = _find_column(lowered, lambda h: h in ("durée", "duration", "time"))
    if step_type < 0 or duration < 0:
        return None
    return _Columns(
        step_type=step_type,
        duration=duration,
        distance=_find_column(lowered, lambda h: h == "distance"),
        pace=_find_column(lowered, lambda h: "allure moyenne" in h or "avg pace" in h),
        heart_rate=_find_column(
            lowered,
            lambda h: "fréquence cardiaque moyenne" in h or "avg hr" in h or "avg heart rate" in h,
        ),
    )


def _cell(row: list[str], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    value = row[index].strip()
    return "" if value == "--" else value


def _parse_float(text: str) -> float | None:
    if not text:
        return None
    try:
        return float(text.replace(",", "."))
    except ValueError:
        return None


def _parse_int(text: str) -> int | None:
    value = _parse_float(text)
    return int(value) if value is not None else None


def _parse_pace(text: str) -> str | None:
    if not text:
        return None
    return normalize_pace(text.split(".")[0].strip())


def _is_summary(row: list[str]) -> bool:
    return any(marker in cell.lower() for cell in row for marker in SUMMARY_MARKERS)


def _base_type(garmin_type: str) -> StepType:
    lowered = garmin_type.lower()
    if any(marker in lowered for marker in RECOVERY_MARKERS):
        return StepType.RECOVERY
    return StepType.EFFORT


def _resolve_step_type(garmin_type: str, index: int, count: int, duration: str) -> StepType:
    """Refine effort/recovery into warmup or cooldown for the first and last rows."""
    lowered = garmin_type.lower()
    base = _base_type(garmin_type)
    minutes = duration_to_minutes(duration)

    if any(marker in lowered for marker in COOLDOWN_MARKERS):
        return StepType.COOLDOWN

    if index == 0 and count > 1:
        short_enough = (base == StepType.EFFORT and minutes < 15) or (base == StepType.RECOVERY and minutes < 10)
        if short_enough and any(marker in lowered for marker in WARMUP_MARKERS):
            return StepType.WARMUP

    if index == count - 1 and base == StepType.RECOVERY:
        if (
            minutes > 5
            or "récupération finale" in lowered
            or ("récupération" in lowered and "repos" not in lowered)
        ):
            return StepType.COOLDOWN

    return base


def _totals_from_steps(steps: list[IntervalStep]) -> tuple[str, float, str, int]:
    seconds = sum(parse_duration(step.duration) or 0 for step in steps)
    distance = round(sum(step.distance or 0 for step in steps), 2)
    hr_steps = [(step.hr, parse_duration(step.duration) or 0) for step in steps if step.hr]
    hr_seconds = sum(s for _, s in hr_steps)
    avg_hr = round(sum(hr * s for hr, s in hr_steps) / hr_seconds) if hr_seconds else 0
    return format_minutes_seconds(seconds), distance, format_pace(distance, seconds), avg_hr


def parse_interval_csv(content: str | bytes) -> IntervalCsvResult:
    """Parse a Garmin lap CSV into typed interval steps and session totals.

    Raises:
        ValueError: If the file has no header and data, lacks the step type
            or duration columns, or holds no step rows
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")

    lines = [line for line in content.strip().splitlines() if line.strip()]
    if len(lines) < 2:
        raise ValueError("Interval CSV must contain a header and at least one row")

    rows = list(csv.reader(io.StringIO("\n".join(lines))))
    headers, body = rows[0], rows[1:]

    columns = _detect_columns(headers)
    if columns is None:
        raise ValueError("Interval CSV is missing the step type or duration column")

    summary_row = next((row for row in body if _is_summary(row)), None)
    data_rows = [
        row
        for row in body
        if _cell(row, columns.step_type)
        and not any(marker in _cell(row, columns.step_type).lower() for marker in SUMMARY_MARKERS)
    ]
    if not data_rows:
        raise ValueError("Interval CSV contains no step rows")

    steps = []
    for index, row in enumerate(data_rows):
        garmin_type = _cell(row, columns.step_type)
        raw_duration = _cell(row, columns.duration)
        step_type = _resolve_step_type(garmin_type, index, len(data_rows), raw_duration)
        steps.append(
            IntervalStep(
                step_number=index + 1,
                step_type=step_type,
                duration=normalize_duration_to_mmss(raw_duration, convert_hours_to_minutes=True),
                distance=_parse_float(_cell(row, columns.distance)),
                pace=_parse_pace(_cell(row, columns.pace)),
                hr=_parse_int(_cell(row, columns.heart_rate)),
            )
        )

    repetitions = sum(1 for step in steps if step.step_type == StepType.EFFORT)

    if summary_row is not None:
        total_duration = normalize_duration_to_mmss(_cell(summary_row, columns.duration), convert_hours_to_minutes=True) or "00:00"
        total_distance = _parse_float(_cell(summary_row, columns.distance)) or 0.0
        avg_pace = _parse_pace(_cell(summary_row, columns.pace)) or "00:00"
        avg_hr = _parse_int(_cell(summary_row, columns.heart_rate)) or 0
    else:
        total_duration, total_distance, avg_pace, avg_hr = _totals_from_steps(steps)

    logger.info(f"[INTERVAL_CSV] Parsed {len(steps)} steps, {repetitions} efforts, summary_row={summary_row is not None}")
    return IntervalCsvResult(
        steps=steps,
        repetition_count=repetitions,
        total_duration=total_duration,
        total_distance=total_distance,
        avg_pace=avg_pace,
        avg_heart_rate=avg_hr,
    )
