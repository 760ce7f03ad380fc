"""Daily tracking aggregate: energy timeline, task snapshots and scores."""

from collections.abc import Callable, Iterable
from datetime import date, datetime

import structlog

from daysense.models import (
    BehavioralSignals,
    DailyTrackingData,
    EnergyEntry,
    EnergyInference,
    EnergySource,
    FlowScoreRecord,
    Task,
    utcnow,
)
from daysense.scoring.energy import EnergyState, get_energy_state
from daysense.scoring.flow import ScoringError, calculate_flow_score
from daysense.tracking.history import FlowScoreHistory

logger = structlog.get_logger()

CALCULATION_ERROR = "Failed to calculate flow score"


class DailyTracker:
    """Holds one day's tracking data and keeps its flow score current.

    Every mutator recalculates the scores. Today's score is written to
    the history only once at least one task has been completed, so empty
    mornings do not drag the weekly average down.
    """

    def __init__(
        self,
        energy_level: int = 3,
        history: FlowScoreHistory | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.energy_level = energy_level
        self.north_star = ""
        self.history = history or FlowScoreHistory()
        self.clock = clock
        self.data = DailyTrackingData()
        self.error: str | None = None
        self.last_calculated: datetime | None = None

    @property
    def energy_state(self) -> EnergyState:
        return get_energy_state(self.energy_level)

    @property
    def timeline(self) -> list[EnergyEntry]:
        return list(self.data.energy_timeline)

    # ── Mutators ─────────────────────────────────────────────────────

    def set_energy(self, level: int) -> EnergyEntry | None:
        """Record a manual energy level. Unchanged levels are not logged."""
        if not 1 <= level <= 5:
            raise ValueError(f"Energy level must be between 1 and 5, got {level}")
        if level == self.energy_level:
            return None

        entry = EnergyEntry(timestamp=self.clock(), level=level, source=EnergySource.MANUAL)
        self.energy_level = level
        self._append(entry)
        return entry

    def add_inference(self, inference: EnergyInference) -> EnergyEntry | None:
        """Append an inferred entry unless it repeats the previous level."""
        timeline = self.data.energy_timeline
        if timeline and timeline[-1].level == inference.inferred_energy_level:
            return None

        entry = EnergyEntry(
            timestamp=self.clock(),
            level=inference.inferred_energy_level,
            source=EnergySource.INFERRED,
            confidence=inference.confidence_score,
        )
        self._append(entry)
        return entry

    def update_tasks(self, tasks: Iterable[Task]) -> None:
        """Replace the completed/pending snapshots from the full task list."""
        tasks = list(tasks)
        completed = [t for t in tasks if t.completed]
        pending = [t for t in tasks if not t.completed]
        if completed == self.data.completed_tasks and pending == self.data.pending_tasks:
            return

        self.data = self.data.model_copy(
            update={"completed_tasks": completed, "pending_tasks": pending}
        )
        self.recalculate()

    def update_signals(self, signals: BehavioralSignals) -> None:
        self.data = self.data.model_copy(update={"passive_signals": signals})
        self.recalculate()

    def reset(self) -> None:
        """Start a fresh tracking day, keeping the current energy level."""
        self.data = DailyTrackingData()
        self.error = None
        self.last_calculated = None
        logger.info("Daily tracking reset", energy_level=self.energy_level)

    # ── Scoring ──────────────────────────────────────────────────────

    def recalculate(self, on: date | None = None) -> FlowScoreRecord | None:
        """Recompute all scores. On failure the previous scores are kept."""
        self.error = None
        try:
            result = calculate_flow_score(self.data, on or self.clock().date())
        except ScoringError as e:
            logger.error("Flow score calculation failed", error=str(e))
            self.error = CALCULATION_ERROR
            return None

        self.data = self.data.model_copy(
            update={
                "flow_score": result.score,
                "energy_task_alignment_score": result.energy_alignment,
                "completion_efficiency_score": result.completion_efficiency,
                "focus_consistency_score": result.focus_consistency,
            }
        )
        self.last_calculated = self.clock()

        if self.data.completed_tasks:
            self.history.record(result)
        return result

    def _append(self, entry: EnergyEntry) -> None:
        self.data = self.data.model_copy(
            update={"energy_timeline": [*self.data.energy_timeline, entry]}
        )
        self.recalculate()
