"""File import endpoints.

These endpoints only parse: they return form-ready values and the detected
interval structure. Saving goes through the /sessions endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.encoders import jsonable_encoder
from loguru import logger

from runlog.api.dependencies.auth import get_current_user_id
from runlog.api.errors import http_error
from runlog.intervals.detector import detect_interval_structure
from runlog.upload.interval_csv import parse_interval_csv
from runlog.upload.session_file_parser import parse_training_file
from runlog.upload.tcx_parser import parse_tcx_file, tcx_activity_to_session_fields

router = APIRouter(prefix="/import", tags=["import"])

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB


def _read_upload(file: UploadFile, allowed_extensions: set[str]) -> bytes:
    """Bytes of an uploaded file after name, size and emptiness checks."""
    if not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No filename provided")

    if not any(file.filename.lower().endswith(ext) for ext in allowed_extensions):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(allowed_extensions))}",
        )

    content = file.file.read()
    if len(content) > MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {MAX_FILE_SIZE / (1024 * 1024):.0f}MB",
        )
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")
    return content


@router.post("/tcx")
def import_tcx(file: UploadFile = File(...), user_id: str = Depends(get_current_user_id)):
    """Parse a TCX export into session fields and its lap-based interval structure."""
    logger.info(f"[API] TCX import for user_id={user_id}, filename={file.filename}")
    content = _read_upload(file, {".tcx"})

    try:
        activity = parse_tcx_file(content)
    except ValueError as e:
        raise http_error(e) from e

    structure = detect_interval_structure(activity.laps)
    return {
        "session": jsonable_encoder(tcx_activity_to_session_fields(activity)),
        "is_interval": structure.is_interval,
        "interval_details": structure.to_interval_details().model_dump(mode="json") if structure.is_interval else None,
        "lap_count": len(activity.laps),
    }


@router.post("/interval-csv")
def import_interval_csv(file: UploadFile = File(...), user_id: str = Depends(get_current_user_id)):
    """Parse a Garmin interval CSV export into interval details and totals."""
    logger.info(f"[API] Interval CSV import for user_id={user_id}, filename={file.filename}")
    content = _read_upload(file, {".csv"})

    try:
        result = parse_interval_csv(content)
    except ValueError as e:
        raise http_error(e) from e

    return {
        "interval_details": result.to_interval_details().model_dump(mode="json"),
        "repetition_count": result.repetition_count,
        "total_duration": result.total_duration,
        "total_distance": result.total_distance,
        "avg_pace": result.avg_pace,
        "avg_heart_rate": result.avg_heart_rate,
    }


@router.post("/sessions")
def import_training_log(file: UploadFile = File(...), user_id: str = Depends(get_current_user_id)):
    """Preview a CSV or JSON training log before bulk creation."""
    logger.info(f"[API] Training log import for user_id={user_id}, filename={file.filename}")
    content = _read_upload(file, {".csv", ".json"})

    try:
        sessions = parse_training_file(content, file.filename)
    except ValueError as e:
        raise http_error(e) from e

    return {"sessions": [s.model_dump(mode="json") for s in sessions], "count": len(sessions)}
