"""Adapter for the DaySense inference backend.

The backend fronts an LLM and exposes three JSON endpoints. Each call is a
single POST with no retry; callers are expected to fall back to local text
when an ``AdapterError`` is raised.
"""

from collections.abc import Sequence
from typing import Any

import httpx

from daysense.adapters.base import HTTPAdapter
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
from daysense.scoring.energy import backend_state_name, energy_level_to_percentage

REFLECTIVE_QUESTION = "What's one small change you could make tomorrow to protect your energy?"
DEFAULT_TOMORROW_FOCUS = "Focus on high-priority tasks during peak energy hours"
DEFAULT_EXPLANATION = "Recommended based on your current energy level."

STATE_MESSAGES = {
    "FOCUSED": "High energy! Push forward.",
    "FLOW": "Good flow state. Keep momentum.",
}
CONSERVE_MESSAGE = "Conserve energy for later."


def _signals_payload(signals: BehavioralSignals | None) -> dict[str, Any]:
    return signals.model_dump(mode="json", by_alias=True) if signals else {}


def _user_context(
    energy_level: int, time_of_day: str, signals: BehavioralSignals | None
) -> dict[str, Any]:
    return {
        "energyLevel": energy_level_to_percentage(energy_level),
        "energyState": backend_state_name(energy_level),
        "timeOfDay": time_of_day,
        "passiveSignals": _signals_payload(signals),
    }


def orb_cues(level: int) -> tuple[str, str, str]:
    """Visual cue, pulse speed and glow for a 0-100 backend energy level."""
    if level >= 80:
        return "green", "fast", "high"
    if level >= 50:
        return "yellow", "medium", "medium"
    return "red", "slow", "low"


class InferenceAdapter(HTTPAdapter):
    """Client for ``/api/insights/generate``, ``/api/intelligence/next``
    and ``/api/reflection``."""

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            "inference",
            base_url or settings.ai.backend_url,
            timeout=settings.ai.timeout_seconds,
            transport=transport,
        )

    async def connect(self) -> bool:
        if not self.base_url:
            self.logger.warning("Inference backend URL not configured")
            return False
        self._open_client()
        self._connected = True
        return True

    async def generate_insights(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        north_star: str | None = None,
        user_question: str | None = None,
    ) -> Insight:
        data = await self._request(
            "POST",
            "/api/insights/generate",
            json={
                "tasks": [
                    {
                        "id": t.id,
                        "title": t.title,
                        "completed": t.completed,
                        "energy_cost": t.energy_cost,
                        "estimated_minutes": t.estimated_minutes,
                    }
                    for t in tasks
                ],
                "energyLevel": energy_level,
                "northStar": north_star,
                "userQuestion": user_question,
            },
        )
        return Insight(
            insight=data["insight"],
            recommendation=data.get("recommendation", ""),
            flow_score=data.get("flowScore"),
            optimal_tasks=data.get("optimalTasks", 0),
            completion_rate=data.get("completionRate", 0),
        )

    async def recommend_tasks(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        time_of_day: str | None = None,
        signals: BehavioralSignals | None = None,
    ) -> list[TaskRecommendation]:
        incomplete = [t for t in tasks if not t.completed]
        if not incomplete:
            return []

        data = await self._request(
            "POST",
            "/api/intelligence/next",
            json={
                "tasks": [
                    {
                        "id": t.id,
                        "title": t.title,
                        "energy_cost": t.energy_cost,
                        "estimated_minutes": t.estimated_minutes,
                        "priority": t.priority.value,
                    }
                    for t in incomplete
                ],
                "userContext": _user_context(
                    energy_level, time_of_day or "afternoon", signals
                ),
            },
        )

        suggested = data.get("task")
        if not suggested:
            return []

        match = next((t for t in incomplete if t.title == suggested.get("title")), None)
        return [
            TaskRecommendation(
                task=match.model_dump(mode="json") if match else suggested,
                explanation=data.get("explanation") or DEFAULT_EXPLANATION,
                confidence=0.85,
                factors=["energy_match", "timing"],
            )
        ]

    async def bio_orb_insight(
        self,
        energy_level: int,
        flow_score: int | None,
        active_tasks: Sequence[Task],
        signals: BehavioralSignals | None = None,
    ) -> BioOrbInsight:
        time_of_day = signals.time_of_day.value if signals else "afternoon"
        data = await self._request(
            "POST",
            "/api/intelligence/next",
            json={
                "tasks": [
                    {
                        "id": t.id,
                        "title": t.title,
                        "energy_cost": t.energy_cost,
                        "estimated_minutes": t.estimated_minutes,
                    }
                    for t in active_tasks
                ],
                "userContext": _user_context(energy_level, time_of_day, signals),
            },
        )

        orb = data["bio_orb"]
        cue, pulse, glow = orb_cues(orb["level"])
        return BioOrbInsight(
            insight_message=STATE_MESSAGES.get(orb.get("state"), CONSERVE_MESSAGE),
            visual_cue=cue,
            pulse_speed=pulse,
            glow_intensity=glow,
        )

    async def end_of_day_reflection(
        self,
        timeline: Sequence[EnergyEntry],
        completed: Sequence[Task],
        pending: Sequence[Task],
        signals: BehavioralSignals | None = None,
        flow_score: int | None = None,
        north_star: str | None = None,
    ) -> Reflection:
        # The backend only looks at task outcomes
        tasks = [
            {"title": t.title, "completed": done, "energy_cost": t.energy_cost}
            for done, group in ((True, completed), (False, pending))
            for t in group
        ]
        data = await self._request("POST", "/api/reflection", json={"tasks": tasks})

        summary = data["summary"]
        highs = data.get("highs", [])
        lows = data.get("lows", [])
        full = (
            f"{summary}\n\nWhat energized you:\n" + "\n".join(highs)
            + "\n\nWhat drained you:\n" + "\n".join(lows)
        )
        return Reflection(
            full_reflection=full,
            daily_summary=summary,
            energy_drains=", ".join(lows),
            energy_boosts=", ".join(highs),
            reflective_question=REFLECTIVE_QUESTION,
            tomorrow_focus=data.get("suggested_north_star") or DEFAULT_TOMORROW_FOCUS,
        )
