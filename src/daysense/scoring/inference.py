"""Passive energy inference from behavioral signals.

Deterministic additive scoring with no learned parameters: each signal
adds fixed points to one or more of five per-level accumulators, and the
level with the highest total wins.
"""

from daysense.models import (
    BehavioralSignals,
    CompletionSpeed,
    EnergyInference,
    TimeOfDay,
)
from daysense.scoring.flow import round_half_up

LEVELS = (1, 2, 3, 4, 5)

TIME_OF_DAY_POINTS: dict[TimeOfDay, dict[int, int]] = {
    TimeOfDay.MORNING: {4: 15, 5: 10, 1: 5},
    TimeOfDay.AFTERNOON: {3: 20, 2: 15},
    TimeOfDay.EVENING: {2: 15, 3: 10},
    TimeOfDay.LATE_NIGHT: {1: 20, 2: 10},
}

HIGH_SWITCHING = 10
LOW_SWITCHING = 3
LONG_IDLE = 15
SHORT_IDLE = 5

ENERGY_DESCRIPTORS = {
    1: "very low",
    2: "low",
    3: "moderate",
    4: "high",
    5: "very high",
}


def _add(scores: dict[int, int], points: dict[int, int]) -> None:
    for level, value in points.items():
        scores[level] += value


def score_levels(signals: BehavioralSignals) -> dict[int, int]:
    """Accumulate points per energy level for the given signals."""
    scores = {level: 0 for level in LEVELS}

    _add(scores, TIME_OF_DAY_POINTS[signals.time_of_day])

    if signals.task_switching_freq > HIGH_SWITCHING:
        _add(scores, {1: 15, 2: 10})
    elif signals.task_switching_freq < LOW_SWITCHING:
        _add(scores, {4: 10, 5: 5})

    if signals.idle_time > LONG_IDLE:
        _add(scores, {1: 10, 2: 15})
    elif signals.idle_time < SHORT_IDLE:
        _add(scores, {4: 10, 5: 5})

    if signals.task_completion_speed == CompletionSpeed.SLOWER:
        _add(scores, {1: 15, 2: 10})
    elif signals.task_completion_speed == CompletionSpeed.FASTER:
        _add(scores, {4: 15, 5: 10})

    if signals.late_night_usage:
        _add(scores, {1: 10, 2: 5})

    return scores


def pick_level(scores: dict[int, int]) -> int:
    """First maximum scanning upward from level 1, so ties go to the lower level."""
    best = LEVELS[0]
    for level in LEVELS[1:]:
        if scores[level] > scores[best]:
            best = level
    return best


def confidence(scores: dict[int, int]) -> int:
    """Normalized gap between the top two accumulators."""
    ordered = sorted(scores.values(), reverse=True)
    top, second = ordered[0], ordered[1]
    if top == 0:
        return 0
    value = min(100, round_half_up((top - second) / top * 100))
    return max(0, value)


def summarize_signals(signals: BehavioralSignals) -> str:
    parts = []
    if signals.task_switching_freq > HIGH_SWITCHING:
        parts.append("high task switching")
    if signals.idle_time > LONG_IDLE:
        parts.append("long idle periods")
    if signals.task_completion_speed == CompletionSpeed.SLOWER:
        parts.append("slower completion")
    if signals.late_night_usage:
        parts.append("late-night usage")

    if not parts:
        return "Based on general usage patterns"
    return f"Based on {', '.join(parts)}"


def infer_energy(signals: BehavioralSignals) -> EnergyInference:
    """Estimate the user's energy level from indirect signals."""
    scores = score_levels(signals)
    level = pick_level(scores)

    return EnergyInference(
        inferred_energy_level=level,
        confidence_score=confidence(scores),
        signal_summary=summarize_signals(signals),
        user_message=(
            f"AI thinks your energy is {ENERGY_DESCRIPTORS[level]} ({level}/5) "
            "based on your recent activity patterns."
        ),
    )
