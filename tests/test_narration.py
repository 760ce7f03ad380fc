"""Tests for local coaching text, the narration service and timeline pruning."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from pydantic import SecretStr
from pydantic_ai.models.test import TestModel

from daysense.adapters.base import FetchError
from daysense.config.settings import settings
from daysense.models import EnergyEntry, EnergySource, Insight
from daysense.narration import fallback
from daysense.narration.agent import CoachAgent, prune_timeline
from daysense.narration.service import NarrationService, create_backend

START = datetime(2026, 1, 19, 8, 0, tzinfo=timezone.utc)


class TestFallbackInsight:
    """Test the deterministic insight templates."""

    def test_break_question_low_energy(self, sample_tasks):
        text = fallback.insight_text(sample_tasks, 2, user_question="Should I take a BREAK?")
        assert text.startswith("Your energy level is quite low.")

    def test_break_question_high_energy(self, sample_tasks):
        text = fallback.insight_text(sample_tasks, 5, user_question="break?")
        assert text.startswith("Your energy is high!")

    def test_focus_question(self, sample_tasks):
        text = fallback.insight_text(sample_tasks, 4, user_question="How do I concentrate?")
        assert "current energy level of 4/5" in text

    def test_north_star_question(self, sample_tasks):
        text = fallback.insight_text(
            sample_tasks, 3, north_star="Ship v1", user_question="my north star?"
        )
        assert 'Your North Star goal is: "Ship v1".' in text

        unset = fallback.insight_text(sample_tasks, 3, user_question="north star")
        assert unset.startswith("You haven't set a North Star goal yet.")

    def test_nothing_completed(self, make_task):
        text = fallback.insight_text([make_task(), make_task()], 3)
        assert text.startswith("You have 2 tasks waiting.")

    def test_some_completed_with_optimal_tasks(self, sample_tasks):
        text = fallback.insight_text(sample_tasks, 3)
        assert text == (
            "You've completed 1 tasks so far. Your energy level is at 3/5. "
            "You have 1 tasks that match your current energy level."
        )

    def test_no_tasks(self):
        assert fallback.insight_text([], 3).startswith("You're off to a good start!")

    def test_insight_fields(self, sample_tasks):
        result = fallback.insight(sample_tasks, 3, flow_score=64)
        assert result.optimal_tasks == 1
        assert result.completion_rate == 33
        assert result.flow_score == 64
        assert result.recommendation == "Focus on manageable wins."
        assert result.source == "fallback"

    @pytest.mark.parametrize(
        "optimal,level,text",
        [
            (0, 5, "Take a break to recharge."),
            (2, 4, "Tackle your biggest challenge!"),
            (2, 3, "Focus on manageable wins."),
        ],
    )
    def test_recommendation_text(self, optimal, level, text):
        assert fallback.recommendation_text(optimal, level) == text


class TestFallbackRecommendationsAndOrb:
    """Test local recommendations and bio-orb cues."""

    def test_recommendations_limited_to_three(self, make_task):
        tasks = [make_task(energy_cost=1) for _ in range(5)]
        recs = fallback.recommendations(tasks, 2)
        assert len(recs) == 3
        assert all(r.confidence == 0.7 for r in recs)
        assert recs[0].factors == ["energy_alignment"]
        assert recs[0].task["id"] == tasks[0].id

    def test_recommendations_skip_completed_and_heavy(self, sample_tasks):
        recs = fallback.recommendations(sample_tasks, 2)
        assert [r.task["id"] for r in recs] == ["t2"]

    def test_low_energy_overrides_flow(self):
        orb = fallback.bio_orb(1, 95)
        assert (orb.visual_cue, orb.pulse_speed, orb.glow_intensity) == ("red", "slow", "low")

    def test_high_energy_overrides_flow(self):
        orb = fallback.bio_orb(4, 10)
        assert (orb.visual_cue, orb.pulse_speed, orb.glow_intensity) == ("green", "fast", "high")

    @pytest.mark.parametrize(
        "score,cue",
        [(85, "green"), (60, "yellow"), (59, "red"), (None, "red")],
    )
    def test_moderate_energy_uses_flow_score(self, score, cue):
        assert fallback.bio_orb(3, score).visual_cue == cue

    def test_reflection(self, sample_tasks):
        completed = [t for t in sample_tasks if t.completed]
        pending = [t for t in sample_tasks if not t.completed]
        result = fallback.reflection(completed, pending, 72)
        assert result.daily_summary == (
            "Great work today! You completed 1 tasks with a 33% completion rate. "
            "Your Flow Score of 72% shows solid progress."
        )
        assert result.full_reflection.startswith(result.daily_summary)
        assert result.source == "fallback"


class TestNarrationService:
    """Test remote-first narration with local fallback."""

    async def test_without_backend_uses_fallback(self, sample_tasks):
        result = await NarrationService(None).generate_insights(sample_tasks, 3)
        assert result.source == "fallback"

    async def test_backend_result_returned(self, sample_tasks):
        backend = AsyncMock()
        backend.generate_insights.return_value = Insight(
            insight="Remote", recommendation="Go", optimal_tasks=1
        )

        result = await NarrationService(backend).generate_insights(
            sample_tasks, 3, flow_score=70
        )

        assert result.insight == "Remote"
        assert result.flow_score == 70
        backend.generate_insights.assert_awaited_once_with(sample_tasks, 3, None, None)

    async def test_backend_errors_fall_back(self, sample_tasks):
        backend = AsyncMock()
        backend.generate_insights.side_effect = FetchError("inference", "503")
        backend.recommend_tasks.side_effect = FetchError("inference", "503")
        backend.bio_orb_insight.side_effect = KeyError("bio_orb")
        backend.end_of_day_reflection.side_effect = FetchError("inference", "timeout")
        service = NarrationService(backend)
        completed = [t for t in sample_tasks if t.completed]

        insight = await service.generate_insights(sample_tasks, 3)
        recs = await service.recommend_tasks(sample_tasks, 3)
        orb = await service.bio_orb_insight(3, 85, sample_tasks)
        reflection = await service.end_of_day_reflection([], completed, [], None, 80)

        assert insight.source == "fallback"
        assert [r.task["id"] for r in recs] == ["t2"]
        assert orb.visual_cue == "green"
        assert reflection.source == "fallback"

    def test_create_backend(self):
        from daysense.adapters.inference import InferenceAdapter

        assert isinstance(create_backend("backend"), InferenceAdapter)
        assert create_backend("local") is None

    def test_agent_backend_needs_key(self, monkeypatch):
        monkeypatch.setattr(settings.ai, "api_key", SecretStr(""))
        assert create_backend("agent") is None


class TestCoachAgent:
    """Test agent configuration and prompt helpers."""

    def test_configured_flag(self, monkeypatch):
        monkeypatch.setattr(settings.ai, "api_key", SecretStr(""))
        assert CoachAgent(api_key="key").configured
        assert not CoachAgent().configured

    def test_short_timeline_untouched(self):
        timeline = [EnergyEntry(timestamp=START + timedelta(hours=i), level=3) for i in range(20)]
        assert prune_timeline(timeline) == timeline

    def test_long_timeline_keeps_recent_and_peaks(self):
        timeline = [
            EnergyEntry(timestamp=START + timedelta(minutes=10 * i), level=5 if i < 3 else 2)
            for i in range(30)
        ]

        pruned = prune_timeline(timeline)

        assert len(pruned) == 15
        assert pruned[:10] == timeline[-10:]
        assert pruned[10:13] == timeline[:3]
        assert pruned[13:] == timeline[3:5]

    def test_pruned_timeline_capped(self):
        timeline = [
            EnergyEntry(timestamp=START + timedelta(minutes=i), level=1 + i % 5)
            for i in range(40)
        ]
        pruned = prune_timeline(timeline)
        assert len(pruned) <= 15
        assert len(set(pruned)) == len(pruned)


def _coach(monkeypatch, **output) -> CoachAgent:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return CoachAgent(model=TestModel(custom_output_args=output), api_key="test-key")


class TestCoachAgentRuns:
    """Test the agent operations against a scripted model."""

    async def test_generate_insights(self, monkeypatch, sample_tasks):
        coach = _coach(monkeypatch, insight="Nice pace.", recommendation="Do the email next.")

        result = await coach.generate_insights(sample_tasks, 3, "Ship v1", "What next?")

        assert result.insight == "Nice pace."
        assert result.recommendation == "Do the email next."
        assert result.optimal_tasks == 1
        assert result.completion_rate == 33
        assert result.source == "agent"

    async def test_recommendation_matches_pending_title(self, monkeypatch, sample_tasks):
        coach = _coach(monkeypatch, title="Answer email", explanation="Low effort warm-up.")

        [pick] = await coach.recommend_tasks(sample_tasks, 2, "morning")

        assert pick.task["id"] == "t2"
        assert pick.explanation == "Low effort warm-up."
        assert pick.confidence == 0.85
        assert pick.factors == ["energy_match", "timing"]

    async def test_recommendation_with_unknown_title(self, monkeypatch, sample_tasks):
        coach = _coach(monkeypatch, title="Plan sprint", explanation="Already done.")
        assert await coach.recommend_tasks(sample_tasks, 2) == []

    async def test_recommendation_without_pending_tasks(self, monkeypatch, make_task):
        coach = _coach(monkeypatch, title="x", explanation="y")
        assert await coach.recommend_tasks([make_task(completed=True)], 3) == []

    async def test_bio_orb(self, monkeypatch, sample_tasks):
        coach = _coach(
            monkeypatch,
            insight_message="Steady going.",
            visual_cue="yellow",
            pulse_speed="slow",
            glow_intensity="low",
        )

        orb = await coach.bio_orb_insight(3, 62, sample_tasks[:2])

        assert orb.insight_message == "Steady going."
        assert (orb.visual_cue, orb.pulse_speed, orb.glow_intensity) == ("yellow", "slow", "low")

    async def test_reflection_is_assembled(self, monkeypatch, sample_tasks):
        coach = _coach(
            monkeypatch,
            daily_summary="A focused day.",
            energy_drains="Meetings",
            energy_boosts="Morning walk",
            reflective_question="What made the morning work?",
            tomorrow_focus="Start with deep work",
        )
        timeline = [
            EnergyEntry(timestamp=START, level=4, source=EnergySource.MANUAL),
            EnergyEntry(timestamp=START + timedelta(hours=3), level=2),
        ]

        reflection = await coach.end_of_day_reflection(
            timeline, sample_tasks[2:], sample_tasks[:2], flow_score=71
        )

        assert reflection.source == "agent"
        assert reflection.daily_summary == "A focused day."
        assert reflection.reflective_question == "What made the morning work?"
        assert reflection.full_reflection == (
            "A focused day.\n\n"
            "What energized you: Morning walk\n"
            "What drained you: Meetings\n\n"
            "What made the morning work?\n\n"
            "Tomorrow's focus: Start with deep work"
        )

    async def test_agent_reused_per_output_type(self, monkeypatch, sample_tasks):
        coach = _coach(monkeypatch, insight="a", recommendation="b")
        await coach.generate_insights(sample_tasks, 3)
        await coach.generate_insights(sample_tasks, 4)
        assert len(coach._agents) == 1
