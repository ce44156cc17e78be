"""Lap classifier.

Recorded laps are noisy: watches split every kilometer (autolap), the
user presses the lap button a few seconds late, and the last split of a
repetition is often a short remainder. Laps are first merged into blocks
of homogeneous effort, then each block gets a step type from its pace
relative to the other blocks.
"""

from __future__ import annotations

from runlog.intervals.types import Lap, StepType

AUTOLAP_DISTANCES = (1000.0, 1609.0)
AUTOLAP_TOLERANCE_M = 50.0
SHORT_REMAINDER_SECONDS = 120.0
SHORT_REMAINDER_METERS = 300.0
SIMILAR_PACE_RATIO = 0.15
DISTINCT_PACE_RATIO = 0.25
MIN_PACE_DISTANCE_M = 10.0


def lap_pace(lap: Lap) -> float:
    """Seconds per km, 0 when the lap covers too little distance to tell."""
    if lap.distance_meters < MIN_PACE_DISTANCE_M:
        return 0.0
    return lap.total_time_seconds / (lap.distance_meters / 1000)


def _is_autolap(lap: Lap) -> bool:
    return any(abs(lap.distance_meters - d) < AUTOLAP_TOLERANCE_M for d in AUTOLAP_DISTANCES)


def _is_short_remainder(lap: Lap) -> bool:
    return lap.total_time_seconds < SHORT_REMAINDER_SECONDS or lap.distance_meters < SHORT_REMAINDER_METERS


def _pace_difference(previous: Lap, current: Lap) -> float:
    prev_pace, curr_pace = lap_pace(previous), lap_pace(current)
    if prev_pace <= 0 or curr_pace <= 0:
        return 0.0
    return abs(prev_pace - curr_pace) / max(prev_pace, curr_pace)


def _is_round_duration(seconds: float) -> bool:
    return seconds % 30 < 2 or seconds % 60 < 2


def should_merge(block: list[Lap], current: Lap) -> bool:
    """Whether current continues the block whose last lap is block[-1]."""
    previous = block[-1]
    pace_diff = _pace_difference(previous, current)

    if pace_diff > DISTINCT_PACE_RATIO and current.distance_meters > 50:
        return False

    autolap = _is_autolap(previous)
    short = _is_short_remainder(current)
    similar = pace_diff < SIMILAR_PACE_RATIO
    combined_seconds = sum(lap.total_time_seconds for lap in block) + current.total_time_seconds

    return (
        (autolap and (short or similar))
        or (similar and not short)
        or (short and autolap and _is_round_duration(combined_seconds))
    )


def merge_laps(laps: list[Lap]) -> Lap:
    """Combine laps into one: summed time and distance, time-weighted HR."""
    if len(laps) == 1:
        return laps[0]

    total_time = sum(lap.total_time_seconds for lap in laps)
    total_distance = sum(lap.distance_meters for lap in laps)

    hr_laps = [lap for lap in laps if lap.average_heart_rate]
    hr_time = sum(lap.total_time_seconds for lap in hr_laps)
    average_hr = None
    if hr_time > 0:
        average_hr = round(sum(lap.average_heart_rate * lap.total_time_seconds for lap in hr_laps) / hr_time)

    max_values = [lap.maximum_heart_rate for lap in laps if lap.maximum_heart_rate]

    return Lap(
        start_time=laps[0].start_time,
        total_time_seconds=total_time,
        distance_meters=total_distance,
        average_heart_rate=average_hr,
        maximum_heart_rate=max(max_values) if max_values else None,
        intensity=laps[0].intensity,
    )


def merge_lap_blocks(laps: list[Lap]) -> list[Lap]:
    """Merge consecutive laps that belong to the same effort."""
    if not laps:
        return []

    blocks: list[list[Lap]] = [[laps[0]]]
    for lap in laps[1:]:
        if should_merge(blocks[-1], lap):
            blocks[-1].append(lap)
        else:
            blocks.append([lap])

    return [merge_laps(block) for block in blocks]


def classify_blocks(blocks: list[Lap]) -> list[StepType]:
    """Step type of each merged block.

    The first block is the warmup and, with more than two blocks, the last
    one is the cooldown. Middle blocks faster than their mean pace are
    efforts, the others recoveries. Blocks without measurable pace
    (standing rest) are recoveries.
    """
    if not blocks:
        return []
    if len(blocks) == 1:
        return [StepType.EFFORT]

    has_cooldown = len(blocks) > 2
    middle = blocks[1:-1] if has_cooldown else blocks[1:]

    paced = [lap_pace(block) for block in middle if lap_pace(block) > 0]
    mean_pace = sum(paced) / len(paced) if paced else 0.0

    types = [StepType.WARMUP]
    for block in middle:
        pace = lap_pace(block)
        if pace > 0 and pace < mean_pace:
            types.append(StepType.EFFORT)
        else:
            types.append(StepType.RECOVERY)
    if has_cooldown:
        types.append(StepType.COOLDOWN)
    return types
