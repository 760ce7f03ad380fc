"""Tests for the reflection journal, analytics rollups and the daily aggregator."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from daysense import db
from daysense.aggregators.analytics import daily_analytics, summarize, time_by_state
from daysense.aggregators.daily import DailyAggregator
from daysense.aggregators.reflection import (
    InsufficientDataError,
    ReflectionJournal,
    energy_insights,
    task_stats,
)
from daysense.models import (
    CompletionSpeed,
    DailyAnalytics,
    DailyReflection,
    EnergyEntry,
    FlowScoreRecord,
    Reflection,
    TaskCreate,
    UserProfile,
)
from daysense.narration.service import NarrationService
from daysense.scoring.energy import EnergyState
from daysense.signals.sources import BehaviorTracker, SyntheticSignalSource
from daysense.tracking.daily import DailyTracker
from daysense.tracking.history import FlowScoreHistory

DAY = date(2026, 1, 19)
EVENING = datetime(2026, 1, 19, 21, 30, tzinfo=timezone.utc)
START = datetime(2026, 1, 19, 9, 0, tzinfo=timezone.utc)
FIXED_START = datetime(2026, 1, 19, 14, 30, tzinfo=timezone.utc)


def _reflection(day: date) -> DailyReflection:
    return DailyReflection(date=day, daily_summary=f"Day {day}", reflective_question="?")


class TestReflectionHelpers:
    """Test the energy and task summaries stored with a reflection."""

    def test_energy_insights(self):
        insights = energy_insights([2, 4, 5])
        assert insights.avg == "3.7"
        assert (insights.peak, insights.low) == (5, 2)

    def test_energy_insights_empty(self):
        assert energy_insights([]) is None

    def test_task_stats(self):
        assert task_stats(1, 2).efficiency == 33
        assert task_stats(0, 0).efficiency == 0


class TestReflectionJournal:
    """Test generating, saving and reading reflections."""

    async def test_requires_completed_tasks(self):
        journal = ReflectionJournal(NarrationService(None))

        with pytest.raises(InsufficientDataError) as exc_info:
            await journal.generate(DailyTracker(), DAY)

        assert exc_info.value.message == "Not enough data to generate reflection"
        assert journal.error == "Not enough data to generate reflection"
        assert journal.reflections == []

    async def test_generate(self, sample_tasks):
        saved = []
        journal = ReflectionJournal(NarrationService(None), persist=saved.append)
        tracker = DailyTracker(clock=lambda: EVENING)
        tracker.set_energy(4)
        tracker.update_tasks(sample_tasks)

        reflection = await journal.generate(tracker, DAY)

        assert reflection.date == DAY
        assert reflection.flow_score == tracker.history.current_score
        assert reflection.task_stats.completed == 1
        assert reflection.task_stats.pending == 2
        assert reflection.energy_insights.peak == 4
        assert journal.current == reflection
        assert journal.last_narrative.source == "fallback"
        assert saved == [reflection]

    def test_one_reflection_per_day(self):
        journal = ReflectionJournal(NarrationService(None))
        journal.save(_reflection(DAY))
        replacement = _reflection(DAY).model_copy(update={"daily_summary": "Redo"})
        journal.save(replacement)

        assert journal.reflections == [replacement]
        assert journal.get_by_date(DAY) == replacement

    def test_recent_newest_first(self):
        journal = ReflectionJournal(
            NarrationService(None),
            [_reflection(DAY - timedelta(days=i)) for i in range(10)],
        )
        recent = journal.get_recent()
        assert len(recent) == 7
        assert recent[0].date == DAY
        assert journal.get_recent(2)[-1].date == DAY - timedelta(days=1)

    def test_clear(self):
        cleared = []
        journal = ReflectionJournal(
            NarrationService(None), [_reflection(DAY)], on_clear=lambda: cleared.append(True)
        )
        journal.clear()
        assert journal.reflections == []
        assert journal.current is None
        assert cleared == [True]


class TestAnalytics:
    """Test per-day rollups and the summary."""

    def test_time_by_state(self):
        timeline = [
            EnergyEntry(timestamp=START, level=5),
            EnergyEntry(timestamp=START + timedelta(minutes=60), level=3),
            EnergyEntry(timestamp=START + timedelta(minutes=90), level=1),
        ]
        spent = time_by_state(timeline, START + timedelta(minutes=100))
        assert spent == {
            EnergyState.FOCUS: 60.0,
            EnergyState.FLOW: 30.0,
            EnergyState.RECHARGE: 10.0,
        }

    def test_daily_analytics(self):
        timeline = [
            EnergyEntry(timestamp=START, level=4),
            EnergyEntry(timestamp=START + timedelta(minutes=30), level=2),
        ]
        record = daily_analytics("u1", DAY, timeline, 3, until=START + timedelta(minutes=45))
        assert record.energy_level == 3.0
        assert record.tasks_completed == 3
        assert record.focus_time == 30.0
        assert record.recharge_time == 15.0

    def test_daily_analytics_without_timeline(self):
        record = daily_analytics("u1", DAY, [], 0, until=START, current_energy=4)
        assert record.energy_level == 4

    def test_summary(self, sample_tasks):
        records = [
            DailyAnalytics(user_id="u1", date=DAY, energy_level=4, tasks_completed=2,
                           focus_time=30),
            DailyAnalytics(user_id="u1", date=DAY - timedelta(days=2), energy_level=2,
                           tasks_completed=1, focus_time=15),
        ]
        profile = UserProfile(id="u1", streak_days=4)

        summary = summarize(sample_tasks, records, profile, DAY)

        assert summary.completed_tasks == 1
        assert summary.avg_energy == 3.0
        assert summary.productivity_score == 33
        assert summary.streak == 4
        assert summary.focus_time == 45
        assert len(summary.weekly) == 7
        assert summary.weekly[-1].date == DAY
        assert summary.weekly[-1].tasks == 2
        assert summary.weekly[-2].tasks == 0
        assert summary.weekly[-2].energy is None
        assert summary.weekly[-1].day == "Mon"

    def test_summary_without_records(self):
        summary = summarize([], [], UserProfile(id="u1", energy_level=5), DAY)
        assert summary.avg_energy == 5.0
        assert summary.productivity_score == 0


class TestDailyAggregator:
    """Test the wiring between tasks, signals, tracking and narration."""

    async def test_enter_fetches_tasks(self, aggregator, fake_store):
        async with aggregator as day:
            assert fake_store.connected
            assert len(day.tasks.tasks) == 3
            assert len(day.tracker.data.completed_tasks) == 1
            assert day.tracker.data.flow_score is not None
        assert not fake_store.connected

    async def test_task_changes_update_tracker(self, aggregator):
        async with aggregator as day:
            await day.tasks.toggle_task("t1")
            assert {t.id for t in day.tracker.data.completed_tasks} == {"t1", "t3"}

    async def test_infer_energy_needs_signals(self, aggregator):
        async with aggregator as day:
            assert day.infer_energy() is None

            day.sample_signals(START)
            inference = day.infer_energy()

            assert inference is not None
            assert day.tracker.timeline[-1].level == inference.inferred_energy_level
            assert day.tracker.energy_level == 3

    async def test_north_star_is_trimmed(self, aggregator):
        aggregator.set_north_star("  Ship v1  ")
        assert aggregator.tracker.north_star == "Ship v1"

    async def test_narration_uses_current_state(self, aggregator):
        async with aggregator as day:
            day.set_energy(2)
            insight = await day.get_insights("break?")
            orb = await day.get_bio_orb()
            recs = await day.get_recommendations()

        assert insight.insight.startswith("Your energy level is quite low.")
        assert orb.visual_cue == "red"
        assert [r.task["id"] for r in recs] == ["t2"]

    async def test_evening_reflection_resets_day(self, aggregator, fake_store):
        async with aggregator as day:
            day.set_energy(4)
            reflection = await day.evening_reflection(EVENING)

            assert reflection.date == DAY
            assert day.journal.get_by_date(DAY) == reflection
            assert day.tracker.timeline == []
            assert day.tracker.energy_level == 4
            assert fake_store.analytics[0].tasks_completed == 1

    async def test_analytics_failure_does_not_block_reflection(self, aggregator, fake_store):
        async with aggregator as day:
            fake_store.fail_writes = True
            reflection = await day.evening_reflection(EVENING)
        assert reflection.date == DAY

    async def test_maybe_reflect_waits_for_evening(self, aggregator):
        async with aggregator as day:
            assert await day.maybe_reflect(START) is None
            first = await day.maybe_reflect(EVENING)
            assert first is not None
            assert await day.maybe_reflect(EVENING + timedelta(minutes=5)) is None

    async def test_maybe_reflect_needs_completed_tasks(self, aggregator, fake_store):
        fake_store.tasks.pop("t3")
        async with aggregator as day:
            assert await day.maybe_reflect(EVENING) is None

    async def test_get_analytics(self, aggregator, fake_store):
        fake_store.analytics.append(
            DailyAnalytics(user_id="user-1", date=DAY, energy_level=4, tasks_completed=2)
        )
        async with aggregator as day:
            summary = await day.get_analytics(DAY)
        assert summary.weekly[-1].tasks == 2
        assert summary.completed_tasks == 1

    async def test_status(self, aggregator):
        async with aggregator as day:
            status = day.get_status()
        assert status["user_id"] == "user-1"
        assert status["energy_label"] == "Flow State"
        assert status["tasks"] == {"completed": 1, "pending": 2}
        assert status["error"] is None

    async def test_history_persisted_locally(self, memory_db, fake_store):
        day = DailyAggregator(
            user_id="user-1",
            store=fake_store,
            narration=NarrationService(None),
            source=SyntheticSignalSource(seed=7),
        )
        async with day:
            await day.evening_reflection(EVENING)

        assert len(db.load_flow_scores("user-1")) == 1
        assert [r.date for r in db.load_reflections("user-1")] == [DAY]

    async def test_closes_backend(self, fake_store):
        backend = AsyncMock()
        async with DailyAggregator(
            user_id="user-1",
            store=fake_store,
            narration=NarrationService(backend),
            persist=False,
        ):
            pass
        backend.disconnect.assert_awaited_once()


class TestBehaviorTracking:
    """Test that user actions feed the real behavior tracker."""

    @pytest.fixture
    def clock(self):
        class Clock:
            now = FIXED_START

            def __call__(self):
                return self.now

            def advance(self, minutes):
                self.now += timedelta(minutes=minutes)

        return Clock()

    @pytest.fixture
    def tracked_day(self, fake_store, clock):
        return DailyAggregator(
            user_id="user-1",
            store=fake_store,
            narration=NarrationService(None),
            source=BehaviorTracker(FIXED_START, clock=clock),
            persist=False,
        )

    async def test_actions_are_counted(self, tracked_day, clock):
        async with tracked_day as day:
            day.set_energy(4)
            clock.advance(5)
            await day.tasks.toggle_task("t1")
            clock.advance(5)
            await day.tasks.add_task(TaskCreate(title="Stretch"))
            clock.advance(5)
            await day.tasks.toggle_task("t2")
            clock.advance(5)

            signals = day.sample_signals(clock.now)

        assert signals.task_switching_freq == 3.0
        assert signals.idle_time == 0
        assert signals.task_completion_speed == CompletionSpeed.FASTER
        assert day.tracker.data.focus_consistency_score == 100

    async def test_slow_completion(self, tracked_day, clock):
        async with tracked_day as day:
            clock.advance(50)
            await day.tasks.toggle_task("t1")
            signals = day.sample_signals(clock.now)

        assert signals.task_completion_speed == CompletionSpeed.SLOWER
        assert signals.task_switching_freq == 0

    async def test_same_task_is_not_a_switch(self, tracked_day, clock):
        async with tracked_day as day:
            await day.tasks.toggle_task("t1")
            clock.advance(2)
            await day.tasks.toggle_task("t1")
            assert day.behavior.task_switch_count == 0

    async def test_quiet_period_counts_as_idle(self, tracked_day, clock):
        async with tracked_day as day:
            day.set_energy(4)
            clock.advance(20)
            signals = day.sample_signals(clock.now)

        assert signals.idle_time == 20.0

    async def test_synthetic_source_has_no_tracker(self, aggregator):
        assert aggregator.behavior is None
        aggregator.record_activity()


class TestReflectionFlowScore:
    """Test that a missing score and a zero score stay distinct."""

    def _tracker(self, sample_tasks, history):
        tracker = DailyTracker(clock=lambda: EVENING)
        tracker.update_tasks(sample_tasks)
        tracker.history = history
        return tracker

    async def test_missing_score_stays_none(self, sample_tasks):
        backend = AsyncMock()
        backend.end_of_day_reflection.return_value = Reflection(
            full_reflection="x", daily_summary="x", reflective_question="?"
        )
        journal = ReflectionJournal(NarrationService(backend))

        reflection = await journal.generate(
            self._tracker(sample_tasks, FlowScoreHistory()), DAY
        )

        assert reflection.flow_score is None
        assert backend.end_of_day_reflection.await_args.args[4] is None

    async def test_zero_score_is_kept(self, sample_tasks):
        history = FlowScoreHistory(
            [
                FlowScoreRecord(
                    date=DAY,
                    score=0,
                    energy_alignment=0,
                    completion_efficiency=0,
                    focus_consistency=0,
                )
            ]
        )
        journal = ReflectionJournal(NarrationService(None))

        reflection = await journal.generate(self._tracker(sample_tasks, history), DAY)

        assert reflection.flow_score == 0
