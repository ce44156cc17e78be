"""Filtering, grouping and labeling of interval steps."""

from __future__ import annotations

from runlog.intervals.types import IntervalStep, StepType

_LABELS = {
    "fr": {StepType.WARMUP: "Échauf.", StepType.COOLDOWN: "Retour", StepType.EFFORT: "E", StepType.RECOVERY: "R"},
    "en": {StepType.WARMUP: "Warmup", StepType.COOLDOWN: "Cooldown", StepType.EFFORT: "E", StepType.RECOVERY: "R"},
}


def filter_steps_by_type(steps: list[IntervalStep], step_type: StepType | str) -> list[IntervalStep]:
    """Steps of one type; "all" returns every step."""
    if step_type == "all":
        return list(steps)
    return [step for step in steps if step.step_type == step_type]


def filter_steps_with_property(steps: list[IntervalStep], prop: str) -> list[IntervalStep]:
    """Steps whose property holds a usable value (positive number, non-empty string)."""
    kept = []
    for step in steps:
        value = getattr(step, prop)
        if value is None:
            continue
        if isinstance(value, (int, float)) and value <= 0:
            continue
        if isinstance(value, str) and not value:
            continue
        kept.append(step)
    return kept


def filter_work_steps(steps: list[IntervalStep]) -> list[IntervalStep]:
    return [step for step in steps if step.step_type not in (StepType.WARMUP, StepType.COOLDOWN)]


def group_steps_by_type(steps: list[IntervalStep]) -> dict[StepType, list[IntervalStep]]:
    groups: dict[StepType, list[IntervalStep]] = {step_type: [] for step_type in StepType}
    for step in steps:
        groups[step.step_type].append(step)
    return groups


def count_steps_by_type(steps: list[IntervalStep]) -> dict[StepType, int]:
    return {step_type: len(group) for step_type, group in group_steps_by_type(steps).items()}


def step_label(step: IntervalStep, steps: list[IntervalStep], locale: str = "fr") -> str:
    """Display label: warmup/cooldown names, "E3" for the third effort, "R2"..."""
    labels = _LABELS.get(locale, _LABELS["fr"])
    if step.step_type in (StepType.WARMUP, StepType.COOLDOWN):
        return labels[step.step_type]

    same_type = filter_steps_by_type(steps, step.step_type)
    index = next((i for i, s in enumerate(same_type) if s is step), None)
    if index is None:
        index = same_type.index(step) if step in same_type else 0
    return f"{labels[step.step_type]}{index + 1}"


def clean_interval_steps(steps: list[IntervalStep]) -> list[IntervalStep]:
    """Drop trailing recoveries: the last step, or one right before the cooldown."""
    cleaned = []
    for i, step in enumerate(steps):
        if step.step_type == StepType.RECOVERY:
            is_last = i == len(steps) - 1
            before_cooldown = not is_last and steps[i + 1].step_type == StepType.COOLDOWN
            if is_last or before_cooldown:
                continue
        cleaned.append(step)
    return cleaned
