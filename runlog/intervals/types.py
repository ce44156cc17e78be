"""Interval workout types shared by parsers, detector and sessions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from runlog.utils.duration import parse_duration
from runlog.utils.pace import normalize_pace_or_range


class StepType(str, Enum):
    WARMUP = "warmup"
    EFFORT = "effort"
    RECOVERY = "recovery"
    COOLDOWN = "cooldown"


@dataclass
class Lap:
    """One recorded lap (TCX lap, Strava lap)."""

    start_time: str | None
    total_time_seconds: float
    distance_meters: float
    average_heart_rate: int | None = None
    maximum_heart_rate: int | None = None
    intensity: str = "Active"


class IntervalStep(BaseModel):
    """One step of an interval workout.

    Attributes:
        step_number: 1-based position in the workout
        step_type: warmup, effort, recovery or cooldown
        duration: "MM:SS" or "HH:MM:SS"
        distance: Kilometers
        pace: "MM:SS" per km, or a range like "5:30-5:40"
        hr: Average heart rate in bpm
        hr_range: Target heart-rate range, e.g. "160-170"
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    step_number: int | None = Field(default=None, ge=1)
    step_type: StepType
    duration: str | None = None
    distance: float | None = Field(default=None, ge=0)
    pace: str | None = None
    hr: int | None = Field(default=None, ge=0)
    hr_range: str | None = None

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        if parse_duration(value) is None:
            raise ValueError(f"Invalid duration '{value}', expected MM:SS or HH:MM:SS")
        return value

    @field_validator("pace")
    @classmethod
    def validate_pace(cls, value: str | None) -> str | None:
        if value is None or value == "":
            return None
        normalized = normalize_pace_or_range(value)
        if normalized is None:
            raise ValueError(f"Invalid pace '{value}', expected MM:SS")
        return normalized


class IntervalDetails(BaseModel):
    """Structure of an interval workout: aggregates plus ordered steps."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    workout_type: str | None = None
    repetition_count: int | None = Field(default=None, ge=1)
    effort_duration: str | None = None
    recovery_duration: str | None = None
    effort_distance: float | None = None
    recovery_distance: float | None = None
    target_effort_pace: str | None = None
    target_effort_hr: int | None = None
    target_recovery_pace: str | None = None
    actual_effort_pace: str | None = None
    actual_effort_hr: int | None = None
    actual_recovery_pace: str | None = None
    steps: list[IntervalStep] = Field(default_factory=list)
