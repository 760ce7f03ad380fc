"""End-of-day reflection journal."""

from collections.abc import Callable, Iterable
from datetime import date

import structlog

from daysense.models import (
    DailyReflection,
    EnergyInsights,
    Reflection,
    TaskStats,
)
from daysense.narration.service import NarrationService
from daysense.scoring.flow import round_half_up
from daysense.tracking.daily import DailyTracker

logger = structlog.get_logger()

RECENT_LIMIT = 7


class InsufficientDataError(Exception):
    """Raised when there is nothing to reflect on yet."""

    def __init__(self, message: str = "Not enough data to generate reflection") -> None:
        self.message = message
        super().__init__(message)


def energy_insights(levels: list[int]) -> EnergyInsights | None:
    if not levels:
        return None
    return EnergyInsights(
        avg=f"{sum(levels) / len(levels):.1f}",
        peak=max(levels),
        low=min(levels),
    )


def task_stats(completed: int, pending: int) -> TaskStats:
    total = completed + pending
    efficiency = round_half_up(completed / total * 100) if total else 0
    return TaskStats(completed=completed, pending=pending, efficiency=efficiency)


class ReflectionJournal:
    """Saved daily reflections, one per calendar day.

    ``persist`` is called with every saved reflection and ``on_clear``
    when the journal is wiped.
    """

    def __init__(
        self,
        narration: NarrationService,
        reflections: Iterable[DailyReflection] = (),
        persist: Callable[[DailyReflection], None] | None = None,
        on_clear: Callable[[], None] | None = None,
    ) -> None:
        self.narration = narration
        self._reflections: list[DailyReflection] = list(reflections)
        self._persist = persist
        self._on_clear = on_clear
        self.current: DailyReflection | None = None
        self.last_narrative: Reflection | None = None
        self.error: str | None = None

    @property
    def reflections(self) -> list[DailyReflection]:
        return list(self._reflections)

    async def generate(self, tracker: DailyTracker, today: date) -> DailyReflection:
        """Narrate the tracked day and save the result under ``today``.

        Raises:
            InsufficientDataError: If no task has been completed yet.
        """
        self.error = None
        data = tracker.data
        if not data.completed_tasks:
            self.error = InsufficientDataError().message
            raise InsufficientDataError()

        flow_score = tracker.history.current_score
        narrative = await self.narration.end_of_day_reflection(
            data.energy_timeline,
            data.completed_tasks,
            data.pending_tasks,
            data.passive_signals,
            flow_score,
            tracker.north_star or None,
        )

        reflection = DailyReflection(
            date=today,
            daily_summary=narrative.daily_summary,
            reflective_question=narrative.reflective_question,
            flow_score=flow_score,
            energy_insights=energy_insights([e.level for e in data.energy_timeline]),
            task_stats=task_stats(len(data.completed_tasks), len(data.pending_tasks)),
        )
        self.last_narrative = narrative
        self.save(reflection)
        logger.info("Reflection generated", date=today.isoformat(), source=narrative.source)
        return reflection

    def save(self, reflection: DailyReflection) -> None:
        self._reflections = [r for r in self._reflections if r.date != reflection.date]
        self._reflections.append(reflection)
        self.current = reflection
        if self._persist is not None:
            self._persist(reflection)

    def get_by_date(self, day: date) -> DailyReflection | None:
        return next((r for r in self._reflections if r.date == day), None)

    def get_recent(self, limit: int = RECENT_LIMIT) -> list[DailyReflection]:
        """Newest first."""
        return sorted(self._reflections, key=lambda r: r.date, reverse=True)[:limit]

    def clear(self) -> None:
        self._reflections = []
        self.current = None
        if self._on_clear is not None:
            self._on_clear()
