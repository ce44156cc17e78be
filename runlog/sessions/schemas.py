"""Session request and response models.

`TrainingSession` is the unified read shape: a completed workout or a
planned session, discriminated on `status`.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from runlog.intervals.types import IntervalDetails
from runlog.utils.duration import parse_duration
from runlog.utils.pace import normalize_pace, normalize_pace_or_range


class SessionView(str, Enum):
    """How much of each session to load.

    - table: list columns only
    - export: adds weather
    - full: adds weather and the raw external activity payload
    """

    TABLE = "table"
    EXPORT = "export"
    FULL = "full"


class WeatherData(BaseModel):
    observed_at: datetime | None = None
    temperature: float | None = None
    apparent_temperature: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    precipitation: float | None = None
    condition_code: int | None = None
    payload: dict | None = None


class ExternalSource(BaseModel):
    """Origin of an imported workout."""

    source: str
    external_id: str
    started_at: datetime | None = None
    payload: dict | None = None


def _validate_session_duration(value: str | None) -> str | None:
    if value is None:
        return None
    if parse_duration(value) is None:
        raise ValueError(f"Invalid duration '{value}', expected HH:MM:SS or MM:SS")
    return value


def _validate_single_pace(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    normalized = normalize_pace(value)
    if normalized is None:
        raise ValueError(f"Invalid pace '{value}', expected MM:SS")
    return normalized


def _validate_target_pace(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    normalized = normalize_pace_or_range(value)
    if normalized is None:
        raise ValueError(f"Invalid target pace '{value}'")
    return normalized


class _MetricsInput(BaseModel):
    @field_validator("duration", check_fields=False)
    @classmethod
    def validate_duration(cls, value: str | None) -> str | None:
        return _validate_session_duration(value)

    @field_validator("avg_pace", check_fields=False)
    @classmethod
    def validate_avg_pace(cls, value: str | None) -> str | None:
        return _validate_single_pace(value)


class PlannedSessionCreate(BaseModel):
    session_type: str = Field(min_length=1)
    planned_date: datetime | None = None
    target_duration: float | None = Field(default=None, ge=0, description="Minutes")
    target_distance: float | None = Field(default=None, ge=0, description="Kilometers")
    target_pace: str | None = None
    target_heart_rate_bpm: str | None = None
    target_rpe: int | None = Field(default=None, ge=1, le=10)
    interval_details: IntervalDetails | None = None
    recommendation_id: str | None = None
    comments: str = ""

    @field_validator("target_pace")
    @classmethod
    def validate_target_pace(cls, value: str | None) -> str | None:
        return _validate_target_pace(value)


class CompletedSessionCreate(_MetricsInput):
    date: datetime
    session_type: str = Field(min_length=1)
    duration: str = Field(description="HH:MM:SS or MM:SS")
    distance: float = Field(ge=0, description="Kilometers")
    avg_pace: str | None = None
    avg_heart_rate: int | None = Field(default=None, ge=0)
    perceived_exertion: int | None = Field(default=None, ge=1, le=10)
    comments: str = ""
    interval_details: IntervalDetails | None = None
    elevation_gain: float | None = None
    average_cadence: float | None = None
    calories: int | None = None
    external: ExternalSource | None = None
    weather: WeatherData | None = None


class CompleteSessionRequest(_MetricsInput):
    """Metrics recorded when a planned session is done."""

    date: datetime
    duration: str
    distance: float = Field(ge=0)
    avg_pace: str | None = None
    avg_heart_rate: int | None = Field(default=None, ge=0)
    perceived_exertion: int | None = Field(default=None, ge=1, le=10)
    comments: str | None = None
    elevation_gain: float | None = None
    average_cadence: float | None = None
    calories: int | None = None
    weather: WeatherData | None = None


class SessionUpdate(_MetricsInput):
    """Partial update; only fields present in the request are applied."""

    date: datetime | None = None
    planned_date: datetime | None = None
    session_type: str | None = None
    duration: str | None = None
    distance: float | None = Field(default=None, ge=0)
    avg_pace: str | None = None
    avg_heart_rate: int | None = Field(default=None, ge=0)
    perceived_exertion: int | None = Field(default=None, ge=1, le=10)
    comments: str | None = None
    target_duration: float | None = Field(default=None, ge=0)
    target_distance: float | None = Field(default=None, ge=0)
    target_pace: str | None = None
    target_heart_rate_bpm: str | None = None
    target_rpe: int | None = Field(default=None, ge=1, le=10)
    interval_details: IntervalDetails | None = None

    @field_validator("target_pace")
    @classmethod
    def validate_target_pace(cls, value: str | None) -> str | None:
        return _validate_target_pace(value)


class _SessionBase(BaseModel):
    id: str
    user_id: str
    session_number: int = 0
    week: int | None = None
    session_type: str | None = None
    comments: str = ""
    interval_details: IntervalDetails | None = None
    planned_date: datetime | None = None
    target_duration: float | None = None
    target_distance: float | None = None
    target_pace: str | None = None
    target_heart_rate_bpm: str | None = None
    target_rpe: int | None = None
    recommendation_id: str | None = None


class CompletedSession(_SessionBase):
    status: Literal["completed"] = "completed"
    date: datetime
    duration: str | None = None
    distance: float | None = None
    avg_pace: str | None = None
    avg_heart_rate: int | None = None
    perceived_exertion: int | None = None
    elevation_gain: float | None = None
    average_cadence: float | None = None
    calories: int | None = None
    external_id: str | None = None
    source: str | None = None
    external_payload: dict | None = None
    weather: WeatherData | None = None

    def effective_distance_km(self) -> float:
        return self.distance or 0.0

    def effective_duration_minutes(self) -> float:
        return (parse_duration(self.duration) or 0) / 60


class PlannedSession(_SessionBase):
    status: Literal["planned"] = "planned"
    date: datetime | None = None

    def effective_distance_km(self) -> float:
        return self.target_distance or 0.0

    def effective_duration_minutes(self) -> float:
        return self.target_duration or 0.0


TrainingSession = Annotated[Union[CompletedSession, PlannedSession], Field(discriminator="status")]

training_session_adapter = TypeAdapter(TrainingSession)
