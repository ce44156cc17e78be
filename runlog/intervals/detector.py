"""Interval-structure detection.

Two entry points produce the same IntervalDetails shape:
- detect_interval_structure() works on raw laps (TCX, Strava)
- build_interval_details() works on already-typed steps (Garmin CSV)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from loguru import logger

from runlog.intervals.laps import classify_blocks, lap_pace, merge_lap_blocks
from runlog.intervals.types import IntervalDetails, IntervalStep, Lap, StepType
from runlog.utils.duration import format_duration, parse_duration
from runlog.utils.pace import format_pace


@dataclass
class IntervalStructure:
    """Result of lap-based interval detection."""

    is_interval: bool = False
    workout_type: str | None = None
    repetition_count: int | None = None
    effort_duration: str | None = None
    recovery_duration: str | None = None
    effort_distance: float | None = None
    actual_effort_pace: str | None = None
    actual_recovery_pace: str | None = None
    actual_effort_hr: int | None = None
    steps: list[IntervalStep] = field(default_factory=list)

    def to_interval_details(self) -> IntervalDetails:
        return IntervalDetails(
            workout_type=self.workout_type,
            repetition_count=self.repetition_count or None,
            effort_duration=self.effort_duration,
            recovery_duration=self.recovery_duration,
            effort_distance=self.effort_distance,
            actual_effort_pace=self.actual_effort_pace,
            actual_recovery_pace=self.actual_recovery_pace,
            actual_effort_hr=self.actual_effort_hr,
            steps=list(self.steps),
        )


def lap_to_step(lap: Lap, step_number: int, step_type: StepType) -> IntervalStep:
    distance_km = lap.distance_meters / 1000
    return IntervalStep(
        step_number=step_number,
        step_type=step_type,
        duration=format_duration(lap.total_time_seconds),
        distance=round(distance_km, 2),
        pace=format_pace(distance_km, lap.total_time_seconds) if lap_pace(lap) > 0 else None,
        hr=lap.average_heart_rate,
    )


def count_repetitions(steps: list[IntervalStep]) -> int:
    """Number of effort/recovery cycles, one per effort step."""
    return sum(1 for step in steps if step.step_type == StepType.EFFORT)


def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


def detect_interval_structure(laps: list[Lap]) -> IntervalStructure:
    """Reconstruct warmup/effort/recovery/cooldown steps from recorded laps."""
    if len(laps) < 2:
        return IntervalStructure()

    blocks = merge_lap_blocks(laps)
    logger.debug(f"[INTERVALS] Merged {len(laps)} laps into {len(blocks)} blocks")

    if len(blocks) < 2:
        return IntervalStructure(steps=[lap_to_step(block, i, StepType.EFFORT) for i, block in enumerate(blocks, start=1)])

    types = classify_blocks(blocks)
    steps = [lap_to_step(block, i, step_type) for i, (block, step_type) in enumerate(zip(blocks, types), start=1)]

    efforts = [block for block, step_type in zip(blocks, types) if step_type == StepType.EFFORT]
    recoveries = [block for block, step_type in zip(blocks, types) if step_type == StepType.RECOVERY]

    effort_time = sum(b.total_time_seconds for b in efforts)
    effort_km = sum(b.distance_meters for b in efforts) / 1000
    recovery_time = sum(b.total_time_seconds for b in recoveries)
    recovery_km = sum(b.distance_meters for b in recoveries) / 1000

    hr_blocks = [b for b in efforts if b.average_heart_rate]
    hr_time = sum(b.total_time_seconds for b in hr_blocks)
    effort_hr = round(sum(b.average_heart_rate * b.total_time_seconds for b in hr_blocks) / hr_time) if hr_time > 0 else None

    avg_effort_seconds = _mean([b.total_time_seconds for b in efforts])
    avg_recovery_seconds = _mean([b.total_time_seconds for b in recoveries])
    avg_effort_km = _mean([b.distance_meters / 1000 for b in efforts])

    structure = IntervalStructure(
        is_interval=len(efforts) >= 1,
        repetition_count=len(efforts) or None,
        effort_duration=format_duration(avg_effort_seconds) if avg_effort_seconds else None,
        recovery_duration=format_duration(avg_recovery_seconds) if avg_recovery_seconds else None,
        effort_distance=round(avg_effort_km, 2) if avg_effort_km else None,
        actual_effort_pace=format_pace(effort_km, effort_time) if effort_km > 0 else None,
        actual_recovery_pace=format_pace(recovery_km, recovery_time) if recovery_km > 0 else None,
        actual_effort_hr=effort_hr,
        steps=steps,
    )
    logger.info(f"[INTERVALS] Detected {len(efforts)} efforts, {len(recoveries)} recoveries from {len(laps)} laps")
    return structure


def _most_common(values: list) -> object | None:
    """Most frequent value; ties go to the value seen first."""
    present = [v for v in values if v is not None]
    if not present:
        return None
    counts = Counter(present)
    best = max(counts.values())
    return next(v for v in present if counts[v] == best)


def build_interval_details(steps: list[IntervalStep], workout_type: str | None = None) -> IntervalDetails:
    """Aggregate typed steps into IntervalDetails.

    Effort and recovery durations and distances are the most frequent step
    values, which is what a structured workout was programmed with.
    """
    numbered = [
        step if step.step_number is not None else step.model_copy(update={"step_number": i})
        for i, step in enumerate(steps, start=1)
    ]
    efforts = [s for s in numbered if s.step_type == StepType.EFFORT]
    recoveries = [s for s in numbered if s.step_type == StepType.RECOVERY]

    effort_paces = [s.pace for s in efforts if s.pace]
    effort_hrs = [s.hr for s in efforts if s.hr]

    effort_seconds = sum(parse_duration(s.duration) or 0 for s in efforts)
    effort_km = sum(s.distance or 0 for s in efforts)
    recovery_seconds = sum(parse_duration(s.duration) or 0 for s in recoveries)
    recovery_km = sum(s.distance or 0 for s in recoveries)

    repetitions = count_repetitions(numbered)
    return IntervalDetails(
        workout_type=workout_type,
        repetition_count=repetitions or None,
        effort_duration=_most_common([s.duration for s in efforts]),
        recovery_duration=_most_common([s.duration for s in recoveries]),
        effort_distance=_most_common([s.distance for s in efforts]),
        recovery_distance=_most_common([s.distance for s in recoveries]),
        target_effort_pace=_most_common(effort_paces),
        actual_effort_pace=format_pace(effort_km, effort_seconds) if effort_km > 0 and effort_seconds > 0 else None,
        actual_effort_hr=round(sum(effort_hrs) / len(effort_hrs)) if effort_hrs else None,
        actual_recovery_pace=format_pace(recovery_km, recovery_seconds) if recovery_km > 0 and recovery_seconds > 0 else None,
        steps=numbered,
    )
