"""Bulk training-log import from CSV or JSON files.

CSV headers are matched by keyword (French or English), so spreadsheets
exported from other tools import without column mapping. JSON files hold a
list of session objects (or a single object).
"""

from __future__ import annotations

import csv
import datetime as dt
import io
import json
import re

from loguru import logger
from pydantic import BaseModel, ValidationError

from runlog.intervals.types import IntervalDetails
from runlog.sessions.schemas import CompletedSessionCreate
from runlog.utils.duration import normalize_clock_duration

_DATE_PATTERNS = (
    (re.compile(r"^(\d{2})/(\d{2})/(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{2})-(\d{2})-(\d{4})$"), "dmy"),
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), "ymd"),
)
_PACE_PATTERN = re.compile(r"(\d{1,2}):(\d{2})")
_INTERVAL_IN_PACE_PATTERN = re.compile(r"([A-Z]*:?\s*\d+x[\d'/]+)", re.IGNORECASE)


class ParsedSession(BaseModel):
    """One completed session read from an import file."""

    date: dt.date
    session_type: str
    duration: str = "00:00:00"
    distance: float = 0.0
    avg_pace: str = "00:00"
    avg_heart_rate: int = 0
    perceived_exertion: int | None = None
    comments: str = ""
    interval_details: IntervalDetails | None = None

    def to_session_create(self) -> CompletedSessionCreate:
        """Completed-session payload, dated at midnight UTC; zero or out-of-range values become unset."""
        return CompletedSessionCreate(
            date=dt.datetime.combine(self.date, dt.time(0), tzinfo=dt.timezone.utc),
            session_type=self.session_type,
            duration=self.duration,
            distance=self.distance,
            avg_pace=None if self.avg_pace == "00:00" else self.avg_pace,
            avg_heart_rate=self.avg_heart_rate or None,
            perceived_exertion=self.perceived_exertion if self.perceived_exertion in range(1, 11) else None,
            comments=self.comments,
            interval_details=self.interval_details,
        )


def parse_date(value: str | None) -> dt.date | None:
    """Read dd/mm/yyyy, dd-mm-yyyy or yyyy-mm-dd; None otherwise."""
    text = (value or "").strip()
    for pattern, order in _DATE_PATTERNS:
        match = pattern.match(text)
        if not match:
            continue
        first, second, third = (int(g) for g in match.groups())
        try:
            if order == "ymd":
                return dt.date(first, second, third)
            return dt.date(third, second, first)
        except ValueError:
            return None
    return None


def parse_pace(value: str | None) -> str:
    """First "M:SS" found in the text, zero-padded; "00:00" when none or invalid."""
    match = _PACE_PATTERN.search(value or "")
    if not match or int(match.group(2)) >= 60:
        return "00:00"
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def parse_number(value: str | int | float | None) -> float:
    """Parse a number that may use a decimal comma; 0 when unreadable."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip().replace(",", ".")
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError:
        return 0.0


def extract_interval_structure(pace_cell: str | None) -> str:
    """Interval label embedded in a pace cell, e.g. "VMA: 10x400" -> "VMA: 10x400"."""
    if not pace_cell or "x" not in pace_cell.lower():
        return ""
    match = _INTERVAL_IN_PACE_PATTERN.search(pace_cell)
    return match.group(1).strip() if match else ""


def detect_columns(headers: list[str]) -> dict[str, str]:
    """Map logical fields to the header that holds them."""
    columns: dict[str, str] = {}
    for header in headers:
        h = header.lower().strip()
        if not h:
            continue
        if "date" in h:
            columns["date"] = header
        elif "séance" in h or "seance" in h or h == "type":
            columns["session_type"] = header
        elif "durée" in h or "duree" in h or "duration" in h:
            columns["duration"] = header
        elif "distance" in h:
            columns["distance"] = header
        elif "allure" in h or "pace" in h:
            columns["avg_pace"] = header
        elif "fc" in h or "heart" in h:
            columns["avg_heart_rate"] = header
        elif "rpe" in h or h == "effort":
            columns["perceived_exertion"] = header
        elif any(k in h for k in ("intervalle", "interval", "structure", "fractionné", "fractionne")):
            columns["interval_structure"] = header
        elif "commentaire" in h or "comment" in h:
            columns["comments"] = header
    return columns


def parse_interval_cell(value) -> IntervalDetails | None:
    """Interval structure from an import cell: IntervalDetails JSON or a plain label."""
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        data = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return IntervalDetails(workout_type=text)
        if not isinstance(data, dict):
            return IntervalDetails(workout_type=text)
    try:
        return IntervalDetails.model_validate(data)
    except ValidationError as e:
        logger.warning(f"[IMPORT] Ignoring invalid interval details: {e.error_count()} errors")
        return None


def _build_session(
    raw_date: str,
    session_type: str,
    duration: str,
    distance,
    pace: str,
    heart_rate,
    rpe,
    comments: str,
    interval_value,
) -> ParsedSession | None:
    parsed_date = parse_date(raw_date)
    session_type = (session_type or "").strip()
    if parsed_date is None or not session_type:
        return None

    exertion = round(parse_number(rpe)) if rpe not in (None, "") else None
    return ParsedSession(
        date=parsed_date,
        session_type=session_type,
        duration=normalize_clock_duration(duration),
        distance=parse_number(distance),
        avg_pace=parse_pace(pace),
        avg_heart_rate=round(parse_number(heart_rate)),
        perceived_exertion=exertion if exertion else None,
        comments=(comments or "").strip(),
        interval_details=parse_interval_cell(interval_value),
    )


def parse_csv_sessions(content: str) -> list[ParsedSession]:
    first_line = content.splitlines()[0] if content else ""
    delimiter = ";" if first_line.count(";") > first_line.count(",") else ","
    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)
    columns = detect_columns(reader.fieldnames or [])
    logger.debug(f"[IMPORT] Detected columns: {columns}")

    def cell(row: dict, key: str, default: str = "") -> str:
        header = columns.get(key)
        if header is None:
            return default
        return (row.get(header) or default).strip()

    sessions = []
    for row in reader:
        session_type = cell(row, "session_type")
        pace_cell = cell(row, "avg_pace", "00:00")
        interval_value = cell(row, "interval_structure")
        if not interval_value and "interval_structure" not in columns and session_type == "Fractionné":
            interval_value = extract_interval_structure(pace_cell)

        session = _build_session(
            raw_date=cell(row, "date"),
            session_type=session_type,
            duration=cell(row, "duration", "00:00:00"),
            distance=cell(row, "distance", "0"),
            pace=pace_cell,
            heart_rate=cell(row, "avg_heart_rate", "0"),
            rpe=cell(row, "perceived_exertion"),
            comments=cell(row, "comments"),
            interval_value=interval_value,
        )
        if session is not None:
            sessions.append(session)
    return sessions


def _first(row: dict, *keys):
    for key in keys:
        value = row.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_json_sessions(content: str) -> list[ParsedSession]:
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ValueError(f"Failed to parse JSON file: {e}") from e

    rows = data if isinstance(data, list) else [data]
    sessions = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        session = _build_session(
            raw_date=str(_first(row, "date", "Date") or ""),
            session_type=str(_first(row, "session_type", "sessionType", "type", "Type de séance") or ""),
            duration=str(_first(row, "duration", "duree", "Durée") or "00:00:00"),
            distance=_first(row, "distance", "distance_km", "Distance (km)"),
            pace=str(_first(row, "avg_pace", "avgPace", "allure_min_km", "Allure (mn/km)") or "00:00"),
            heart_rate=_first(row, "avg_heart_rate", "avgHeartRate", "fc_moyenne_bpm", "FC moyenne (bpm)"),
            rpe=_first(row, "perceived_exertion", "perceivedExertion", "rpe"),
            comments=str(_first(row, "comments", "commentaires") or ""),
            interval_value=_first(row, "interval_details", "intervalDetails", "details_intervalle", "structure_intervalle"),
        )
        if session is not None:
            sessions.append(session)
    return sessions


def parse_training_file(content: bytes | str, filename: str) -> list[ParsedSession]:
    """Parse a training-log export, picking the format from the file extension.

    Raises:
        ValueError: If the format is unsupported or no row has a date and a session type
    """
    if isinstance(content, bytes):
        content = content.decode("utf-8-sig")

    name = filename.lower()
    if name.endswith(".json"):
        sessions = parse_json_sessions(content)
    elif name.endswith(".csv"):
        sessions = parse_csv_sessions(content)
    else:
        raise ValueError(f"Unsupported file type: {filename}. Allowed: .csv, .json")

    if not sessions:
        raise ValueError("No valid session found in file. Check that date and session type columns are present.")

    logger.info(f"[IMPORT] Parsed {len(sessions)} sessions from {filename}")
    return sessions
