"""Totals and averages over interval steps."""

from __future__ import annotations

from dataclasses import dataclass

from runlog.intervals.steps import clean_interval_steps, filter_steps_with_property, filter_work_steps
from runlog.intervals.types import IntervalDetails, IntervalStep, StepType
from runlog.utils.duration import format_minutes_seconds, parse_duration
from runlog.utils.heart_rate import step_heart_rate
from runlog.utils.pace import pace_to_seconds, seconds_to_pace

ABSOLUTE_TOLERANCE_KM = 0.025
RELATIVE_TOLERANCE = 0.1


@dataclass
class DistanceEstimate:
    distance: float
    is_estimated: bool
    was_adjusted: bool


@dataclass
class IntervalTotals:
    total_duration_min: float = 0.0
    total_distance_km: float = 0.0
    avg_pace_sec: float | None = None
    avg_pace_formatted: str | None = None
    avg_bpm: int | None = None
    is_estimated: bool = False


def is_within_tolerance(first_km: float, second_km: float) -> bool:
    difference = abs(first_km - second_km)
    if difference < ABSOLUTE_TOLERANCE_KM:
        return True
    reference = max(first_km, second_km)
    if reference == 0:
        return False
    return difference / reference <= RELATIVE_TOLERANCE


def estimate_effective_distance(
    duration_sec: float,
    pace_sec: float | None,
    recorded_km: float | None,
    precision: int = 2,
) -> DistanceEstimate:
    """Distance of a step, reconciling the recorded value with duration / pace.

    - no usable pace: the recorded distance (or 0)
    - no recorded distance: the theoretical distance
    - both agree within tolerance: the recorded distance
    - otherwise: the theoretical distance, flagged as adjusted
    """
    if not pace_sec or pace_sec <= 0 or duration_sec <= 0:
        distance = recorded_km if recorded_km and recorded_km > 0 else 0.0
        return DistanceEstimate(round(distance, precision), False, False)

    theoretical = duration_sec / pace_sec
    if not recorded_km:
        return DistanceEstimate(round(theoretical, precision), True, False)

    if is_within_tolerance(recorded_km, theoretical):
        return DistanceEstimate(round(recorded_km, precision), False, False)

    return DistanceEstimate(round(theoretical, precision), True, True)


def calculate_average_duration(steps: list[IntervalStep]) -> float:
    """Mean duration in seconds of the work steps that have one."""
    timed = filter_steps_with_property(filter_work_steps(steps), "duration")
    if not timed:
        return 0.0
    return sum(parse_duration(step.duration) or 0 for step in timed) / len(timed)


def effort_pace(details: IntervalDetails | None) -> str | None:
    """Mean pace of the effort steps, "MM:SS"."""
    if details is None or not details.steps:
        return None
    seconds = [
        pace_to_seconds(step.pace)
        for step in details.steps
        if step.step_type == StepType.EFFORT and step.pace
    ]
    seconds = [s for s in seconds if s]
    if not seconds:
        return None
    return format_minutes_seconds(sum(seconds) / len(seconds))


def calculate_interval_totals(steps: list[IntervalStep] | None) -> IntervalTotals:
    """Whole-session totals from interval steps.

    Trailing recoveries are ignored. Pace is weighted by distance and heart
    rate by time.
    """
    cleaned = clean_interval_steps(steps or [])
    if not cleaned:
        return IntervalTotals()

    total_seconds = 0.0
    total_km = 0.0
    weighted_pace = 0.0
    pace_km = 0.0
    weighted_hr = 0.0
    hr_seconds = 0.0
    estimated = False

    for step in cleaned:
        duration_sec = parse_duration(step.duration) or 0
        if duration_sec <= 0:
            continue
        step_pace = pace_to_seconds(step.pace)
        estimate = estimate_effective_distance(duration_sec, step_pace, step.distance)
        estimated = estimated or estimate.is_estimated

        total_seconds += duration_sec
        total_km += estimate.distance

        pace_weight = step_pace or (duration_sec / estimate.distance if estimate.distance > 0 else None)
        if pace_weight and estimate.distance > 0:
            weighted_pace += pace_weight * estimate.distance
            pace_km += estimate.distance

        hr = step_heart_rate(step.hr, step.hr_range)
        if hr:
            weighted_hr += hr * duration_sec
            hr_seconds += duration_sec

    avg_pace = weighted_pace / pace_km if pace_km > 0 else None
    return IntervalTotals(
        total_duration_min=total_seconds / 60,
        total_distance_km=round(total_km, 2),
        avg_pace_sec=avg_pace,
        avg_pace_formatted=seconds_to_pace(avg_pace),
        avg_bpm=round(weighted_hr / hr_seconds) if hr_seconds > 0 else None,
        is_estimated=estimated,
    )
