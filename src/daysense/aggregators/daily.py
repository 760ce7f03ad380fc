"""Daily aggregator wiring tracking, tasks, signals and narration together."""

from datetime import date, datetime
from functools import partial
from typing import Any

import structlog

from daysense import db
from daysense.adapters.base import AdapterError
from daysense.adapters.firestore import FirestoreAdapter
from daysense.aggregators.analytics import AnalyticsSummary, daily_analytics, summarize
from daysense.aggregators.reflection import ReflectionJournal
from daysense.config.settings import settings
from daysense.models import (
    BehavioralSignals,
    BioOrbInsight,
    DailyReflection,
    EnergyInference,
    Insight,
    TaskRecommendation,
    UserProfile,
)
from daysense.narration.service import NarrationService, create_backend
from daysense.scoring.energy import ENERGY_STATE_LABELS
from daysense.scoring.inference import infer_energy
from daysense.signals.collector import SignalCollector
from daysense.signals.sources import (
    BehaviorTracker,
    SignalSource,
    SyntheticSignalSource,
    local_now,
)
from daysense.tasks.store import TaskStore
from daysense.tracking.daily import DailyTracker
from daysense.tracking.history import FlowScoreHistory

logger = structlog.get_logger()


def create_signal_source(kind: str | None = None) -> SignalSource:
    kind = kind or settings.tracking.signal_source
    if kind == "tracker":
        return BehaviorTracker()
    return SyntheticSignalSource()


class DailyAggregator:
    """One user's tracking day.

    Combines:
    - Energy timeline and flow score (DailyTracker)
    - Task list synced with the document store (TaskStore)
    - Behavioral signal sampling and passive energy inference
    - Coaching narration and the reflection journal

    Task changes and signal samples flow into the tracker, which
    recalculates the flow score on every change.
    """

    def __init__(
        self,
        user_id: str | None = None,
        store: FirestoreAdapter | None = None,
        narration: NarrationService | None = None,
        source: SignalSource | None = None,
        profile: UserProfile | None = None,
        persist: bool = True,
    ) -> None:
        self.user_id = user_id or settings.user_id
        self.store = store or FirestoreAdapter()
        self.narration = narration or NarrationService(create_backend())
        self.profile = profile
        self.persist = persist

        self.tracker = DailyTracker(
            energy_level=profile.energy_level if profile else 3, clock=local_now
        )
        if profile and profile.north_star:
            self.tracker.north_star = profile.north_star

        source = source or create_signal_source()
        self.behavior = source if isinstance(source, BehaviorTracker) else None
        self.tasks = TaskStore(
            self.store,
            self.user_id,
            on_change=self.tracker.update_tasks,
            behavior=self.behavior,
        )
        self.collector = SignalCollector(
            source,
            interval_seconds=settings.tracking.signal_interval_seconds,
            on_sample=self.tracker.update_signals,
        )
        self.journal = ReflectionJournal(self.narration)

    async def __aenter__(self) -> "DailyAggregator":
        """Connect the store, load local history and fetch tasks."""
        await self.store.connect()
        if self.persist:
            await self.load_history()
        await self.tasks.fetch()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.store.disconnect()
        backend = self.narration.backend
        if backend is not None and hasattr(backend, "disconnect"):
            await backend.disconnect()

    async def load_history(self) -> None:
        """Back the score history and reflection journal with the local database."""
        await db.init_db()
        self.tracker.history = FlowScoreHistory(
            db.load_flow_scores(self.user_id),
            persist=partial(db.save_flow_score, self.user_id),
        )
        self.journal = ReflectionJournal(
            self.narration,
            db.load_reflections(self.user_id),
            persist=partial(db.save_reflection, self.user_id),
            on_clear=partial(db.clear_reflections, self.user_id),
        )

    async def use_profile(self, profile: UserProfile) -> None:
        """Switch the day to a signed-in user's profile and reload their tasks."""
        switched = profile.id != self.user_id
        self.profile = profile
        self.user_id = profile.id
        self.tasks.user_id = profile.id
        self.tracker.energy_level = profile.energy_level
        if profile.north_star:
            self.tracker.north_star = profile.north_star

        if switched and self.persist:
            await self.load_history()
        await self.tasks.fetch()

    # ── User input ───────────────────────────────────────────────────

    def record_activity(self) -> None:
        """Count a user interaction when real behavior tracking is on."""
        if self.behavior is not None:
            self.behavior.record_activity()

    def set_energy(self, level: int) -> None:
        self.record_activity()
        self.tracker.set_energy(level)

    def set_north_star(self, text: str) -> None:
        self.record_activity()
        self.tracker.north_star = text.strip()

    # ── Periodic jobs ────────────────────────────────────────────────

    def sample_signals(self, now: datetime | None = None) -> BehavioralSignals:
        if self.behavior is not None:
            self.behavior.check_inactivity(now)
        return self.collector.collect(now)

    def infer_energy(self) -> EnergyInference | None:
        """Run passive inference on the latest signals, if any."""
        signals = self.tracker.data.passive_signals
        if signals is None:
            return None

        inference = infer_energy(signals)
        entry = self.tracker.add_inference(inference)
        logger.info(
            "Energy inferred",
            level=inference.inferred_energy_level,
            confidence=inference.confidence_score,
            recorded=entry is not None,
        )
        return inference

    async def refresh_tasks(self) -> None:
        await self.tasks.refresh()

    async def maybe_reflect(self, now: datetime | None = None) -> DailyReflection | None:
        """Generate today's reflection once, after the reflection hour."""
        now = now or local_now()
        if now.hour < settings.tracking.reflection_hour:
            return None
        if self.journal.get_by_date(now.date()) is not None:
            return None
        if not self.tracker.data.completed_tasks:
            return None
        return await self.evening_reflection(now)

    # ── Narration ────────────────────────────────────────────────────

    async def get_insights(self, question: str | None = None) -> Insight:
        return await self.narration.generate_insights(
            self.tasks.tasks,
            self.tracker.energy_level,
            self.tracker.north_star or None,
            question,
            self.tracker.data.flow_score,
        )

    async def get_recommendations(self) -> list[TaskRecommendation]:
        signals = self.tracker.data.passive_signals
        return await self.narration.recommend_tasks(
            self.tasks.tasks,
            self.tracker.energy_level,
            signals.time_of_day.value if signals else None,
            signals,
        )

    async def get_bio_orb(self) -> BioOrbInsight:
        data = self.tracker.data
        return await self.narration.bio_orb_insight(
            self.tracker.energy_level,
            data.flow_score if data.flow_score is not None else 50,
            self.tasks.get_pending(),
            data.passive_signals,
        )

    async def evening_reflection(self, now: datetime | None = None) -> DailyReflection:
        """Reflect on the day, record its analytics and start a new day.

        Raises:
            InsufficientDataError: If no task was completed today.
        """
        now = now or local_now()
        today = now.date()
        reflection = await self.journal.generate(self.tracker, today)

        analytics = daily_analytics(
            self.user_id,
            today,
            self.tracker.timeline,
            len(self.tracker.data.completed_tasks),
            until=now,
            current_energy=self.tracker.energy_level,
        )
        try:
            await self.store.upsert_daily_analytics(analytics)
        except AdapterError as e:
            logger.warning("Failed to save daily analytics", error=str(e))

        self.tracker.reset()
        if self.behavior is not None:
            self.behavior.reset(now)
        return reflection

    # ── Summaries ────────────────────────────────────────────────────

    def get_status(self) -> dict[str, Any]:
        data = self.tracker.data
        history = self.tracker.history
        signals = data.passive_signals
        return {
            "user_id": self.user_id,
            "energy_level": self.tracker.energy_level,
            "energy_state": self.tracker.energy_state.value,
            "energy_label": ENERGY_STATE_LABELS[self.tracker.energy_state],
            "north_star": self.tracker.north_star,
            "flow_score": data.flow_score,
            "energy_task_alignment": data.energy_task_alignment_score,
            "completion_efficiency": data.completion_efficiency_score,
            "focus_consistency": data.focus_consistency_score,
            "weekly_average": history.weekly_average,
            "weekly_trend": history.weekly_trend(local_now().date()),
            "tasks": {
                "completed": len(data.completed_tasks),
                "pending": len(data.pending_tasks),
            },
            "timeline_entries": len(data.energy_timeline),
            "signals": signals.model_dump(mode="json", by_alias=True) if signals else None,
            "error": self.tracker.error or self.tasks.error,
        }

    async def get_analytics(self, today: date | None = None) -> AnalyticsSummary:
        try:
            records = await self.store.get_user_analytics(self.user_id)
        except AdapterError as e:
            logger.warning("Failed to fetch analytics", error=str(e))
            records = []
        return summarize(self.tasks.tasks, records, self.profile, today or local_now().date())


async def get_status(user_id: str | None = None) -> dict[str, Any]:
    """Convenience function to load a user's day and summarize it."""
    async with DailyAggregator(user_id=user_id) as aggregator:
        return aggregator.get_status()
