"""Flow score engine.

The flow score is a weighted composite of three sub-scores, each in 0-100:

- Energy-task alignment (40%): did completed tasks match the energy levels
  logged during the day?
- Completion efficiency (30%): priority-weighted share of tasks completed.
- Focus consistency (30%): penalties for task switching, idle time and
  late-night usage.

All functions here are pure. Neutral values of 50 are returned wherever
there is not yet enough data to judge.
"""

import math
from collections.abc import Sequence
from datetime import date, timedelta

from daysense.models import (
    BehavioralSignals,
    DailyTrackingData,
    EnergyEntry,
    FlowScoreRecord,
    Priority,
    Task,
)

NEUTRAL_SCORE = 50

ALIGNMENT_WEIGHT = 0.4
EFFICIENCY_WEIGHT = 0.3
FOCUS_WEIGHT = 0.3

PRIORITY_WEIGHTS: dict[Priority, float] = {
    Priority.HIGH: 1.5,
    Priority.MEDIUM: 1.2,
    Priority.LOW: 1.0,
}

SWITCHING_THRESHOLD = 10
SWITCHING_PENALTY = 5
IDLE_THRESHOLD_MINUTES = 15
IDLE_PENALTY = 2
IDLE_PENALTY_CAP = 30
LATE_NIGHT_PENALTY = 10

WEEK_WINDOW = 7


class ScoringError(Exception):
    """Raised when a flow score cannot be calculated."""


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up."""
    return math.floor(value + 0.5)


def _clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def energy_task_alignment(
    timeline: Sequence[EnergyEntry], completed_tasks: Sequence[Task]
) -> int:
    """Score how well completed tasks matched the logged energy levels."""
    if not timeline or not completed_tasks:
        return NEUTRAL_SCORE

    credits = []
    for task in completed_tasks:
        distances = [abs(entry.level - task.energy_cost) for entry in timeline]
        closest = min(distances)
        if closest <= 1:
            credits.append(1.0)
        else:
            credits.append(max(0.0, 1 - closest / 3))

    return round_half_up(sum(credits) / len(credits) * 100)


def completion_efficiency(
    completed_tasks: Sequence[Task], pending_tasks: Sequence[Task]
) -> int:
    """Priority-weighted completion ratio."""
    if not completed_tasks and not pending_tasks:
        return NEUTRAL_SCORE

    weighted_completed = sum(PRIORITY_WEIGHTS[t.priority] for t in completed_tasks)
    weighted_pending = sum(PRIORITY_WEIGHTS[t.priority] for t in pending_tasks)

    return round_half_up(weighted_completed / (weighted_completed + weighted_pending) * 100)


def focus_consistency(signals: BehavioralSignals | None) -> int:
    """Start from 100 and subtract penalties for distracted behavior."""
    if signals is None:
        return NEUTRAL_SCORE

    score = 100.0

    if signals.task_switching_freq > SWITCHING_THRESHOLD:
        score -= (signals.task_switching_freq - SWITCHING_THRESHOLD) * SWITCHING_PENALTY

    if signals.idle_time > IDLE_THRESHOLD_MINUTES:
        score -= min((signals.idle_time - IDLE_THRESHOLD_MINUTES) * IDLE_PENALTY, IDLE_PENALTY_CAP)

    if signals.late_night_usage:
        score -= LATE_NIGHT_PENALTY

    return round_half_up(_clamp(score))


def composite_score(alignment: int, efficiency: int, focus: int) -> int:
    """Weighted composite of the three sub-scores."""
    value = (
        ALIGNMENT_WEIGHT * alignment
        + EFFICIENCY_WEIGHT * efficiency
        + FOCUS_WEIGHT * focus
    )
    return round_half_up(_clamp(value))


def calculate_flow_score(data: DailyTrackingData, on: date | None = None) -> FlowScoreRecord:
    """Compute all sub-scores and the composite for the given day.

    Raises:
        ScoringError: If any input cannot be scored.
    """
    try:
        alignment = energy_task_alignment(data.energy_timeline, data.completed_tasks)
        efficiency = completion_efficiency(data.completed_tasks, data.pending_tasks)
        focus = focus_consistency(data.passive_signals)

        return FlowScoreRecord(
            date=on or date.today(),
            score=composite_score(alignment, efficiency, focus),
            energy_alignment=alignment,
            completion_efficiency=efficiency,
            focus_consistency=focus,
        )
    except Exception as e:
        raise ScoringError(f"Failed to calculate flow score: {e}") from e


def weekly_average(records: Sequence[FlowScoreRecord]) -> int | None:
    """Rounded mean of the last seven daily scores."""
    recent = list(records)[-WEEK_WINDOW:]
    if not recent:
        return None
    return round_half_up(sum(r.score for r in recent) / len(recent))


def weekly_trend(records: Sequence[FlowScoreRecord], today: date | None = None) -> list[int]:
    """Scores recorded within the last seven days, oldest first."""
    cutoff = (today or date.today()) - timedelta(days=WEEK_WINDOW)
    return [r.score for r in records if r.date >= cutoff]
