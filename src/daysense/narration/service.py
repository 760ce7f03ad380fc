"""Coaching narration with a remote backend and local fallbacks."""

from collections.abc import Sequence
from typing import Protocol

import structlog

from daysense.config.settings import settings
from daysense.models import (
    BehavioralSignals,
    BioOrbInsight,
    EnergyEntry,
    Insight,
    Reflection,
    Task,
    TaskRecommendation,
)
from daysense.narration import fallback

logger = structlog.get_logger()


class NarrationBackend(Protocol):
    """Anything that can produce coaching text remotely."""

    async def generate_insights(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        north_star: str | None = None,
        user_question: str | None = None,
    ) -> Insight: ...

    async def recommend_tasks(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        time_of_day: str | None = None,
        signals: BehavioralSignals | None = None,
    ) -> list[TaskRecommendation]: ...

    async def bio_orb_insight(
        self,
        energy_level: int,
        flow_score: int | None,
        active_tasks: Sequence[Task],
        signals: BehavioralSignals | None = None,
    ) -> BioOrbInsight: ...

    async def end_of_day_reflection(
        self,
        timeline: Sequence[EnergyEntry],
        completed: Sequence[Task],
        pending: Sequence[Task],
        signals: BehavioralSignals | None = None,
        flow_score: int | None = None,
        north_star: str | None = None,
    ) -> Reflection: ...


def create_backend(provider: str | None = None) -> NarrationBackend | None:
    """Build the backend selected by ``AI_PROVIDER``."""
    provider = provider or settings.ai.provider

    if provider == "backend":
        from daysense.adapters.inference import InferenceAdapter

        return InferenceAdapter()

    if provider == "agent":
        from daysense.narration.agent import CoachAgent

        agent = CoachAgent()
        if not agent.configured:
            logger.warning("AI API key not set, using local narration")
            return None
        return agent

    return None


class NarrationService:
    """Front door for all coaching text.

    Remote failures of any kind are logged and answered from the local
    templates in ``daysense.narration.fallback``, so these methods do not
    raise on backend errors.
    """

    def __init__(self, backend: NarrationBackend | None = None) -> None:
        self.backend = backend

    async def generate_insights(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        north_star: str | None = None,
        user_question: str | None = None,
        flow_score: int | None = None,
    ) -> Insight:
        if self.backend is not None:
            try:
                result = await self.backend.generate_insights(
                    tasks, energy_level, north_star, user_question
                )
                if result.flow_score is None:
                    result.flow_score = flow_score
                return result
            except Exception as e:
                logger.warning("Failed to generate insights", error=str(e))
        return fallback.insight(tasks, energy_level, north_star, user_question, flow_score)

    async def recommend_tasks(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        time_of_day: str | None = None,
        signals: BehavioralSignals | None = None,
    ) -> list[TaskRecommendation]:
        if self.backend is not None:
            try:
                return await self.backend.recommend_tasks(
                    tasks, energy_level, time_of_day, signals
                )
            except Exception as e:
                logger.warning("Failed to generate recommendations", error=str(e))
        return fallback.recommendations(tasks, energy_level)

    async def bio_orb_insight(
        self,
        energy_level: int,
        flow_score: int | None,
        active_tasks: Sequence[Task],
        signals: BehavioralSignals | None = None,
    ) -> BioOrbInsight:
        if self.backend is not None:
            try:
                return await self.backend.bio_orb_insight(
                    energy_level, flow_score, active_tasks, signals
                )
            except Exception as e:
                logger.warning("Failed to generate bio-orb insight", error=str(e))
        return fallback.bio_orb(energy_level, flow_score)

    async def end_of_day_reflection(
        self,
        timeline: Sequence[EnergyEntry],
        completed: Sequence[Task],
        pending: Sequence[Task],
        signals: BehavioralSignals | None = None,
        flow_score: int | None = None,
        north_star: str | None = None,
    ) -> Reflection:
        if self.backend is not None:
            try:
                return await self.backend.end_of_day_reflection(
                    timeline, completed, pending, signals, flow_score, north_star
                )
            except Exception as e:
                logger.warning("Failed to generate reflection", error=str(e))
        return fallback.reflection(completed, pending, flow_score)
