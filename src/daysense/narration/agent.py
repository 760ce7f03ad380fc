"""Energy coach agent using Pydantic AI."""

import os
from collections.abc import Sequence
from datetime import date
from typing import Literal, TypeVar

from pydantic import BaseModel, Field
from pydantic_ai import Agent, RunContext
from pydantic_ai.models import Model

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

OutputT = TypeVar("OutputT", bound=BaseModel)

MAX_TIMELINE_ENTRIES = 20
RECENT_ENTRIES = 10
PEAK_ENTRIES = 5
PRUNED_LIMIT = 15


class CoachDependencies(BaseModel):
    """Dependencies passed to the agent."""

    user_name: str = "there"
    current_date: str = Field(default_factory=lambda: date.today().isoformat())
    energy_level: int = 3
    north_star: str | None = None


SYSTEM_PROMPT = """You are DaySense, an energy-aware productivity coach.

You help the user match their tasks to their energy through the day.

Your personality:
- Warm, encouraging and concise
- Specific: reference the user's tasks, energy and flow score
- Practical: every answer ends in something the user can do next

When responding:
- Keep insights to two or three sentences
- Never invent tasks the user does not have
"""


# ── Structured outputs ───────────────────────────────────────────────


class CoachInsight(BaseModel):
    insight: str
    recommendation: str


class CoachPick(BaseModel):
    title: str = Field(description="Exact title of one of the user's pending tasks")
    explanation: str


class CoachOrb(BaseModel):
    insight_message: str
    visual_cue: Literal["green", "yellow", "red"]
    pulse_speed: Literal["slow", "medium", "fast"]
    glow_intensity: Literal["low", "medium", "high"]


class CoachReflection(BaseModel):
    daily_summary: str
    energy_drains: str
    energy_boosts: str
    reflective_question: str
    tomorrow_focus: str


def prune_timeline(timeline: Sequence[EnergyEntry]) -> list[EnergyEntry]:
    """Shrink a long timeline before it goes into a prompt.

    Up to 20 entries pass through untouched. Longer timelines keep the 10
    most recent entries plus the 5 highest-level ones, de-duplicated and
    capped at 15.
    """
    if len(timeline) <= MAX_TIMELINE_ENTRIES:
        return list(timeline)

    recent = list(timeline[-RECENT_ENTRIES:])
    peaks = sorted(timeline, key=lambda e: e.level, reverse=True)[:PEAK_ENTRIES]

    unique: list[EnergyEntry] = []
    for entry in recent + peaks:
        if entry not in unique:
            unique.append(entry)
    return unique[:PRUNED_LIMIT]


def _task_lines(tasks: Sequence[Task]) -> str:
    if not tasks:
        return "(none)"
    return "\n".join(
        f"- {t.title} [energy {t.energy_cost}/5, {t.estimated_minutes} min, "
        f"{t.priority.value} priority, {'done' if t.completed else 'pending'}]"
        for t in tasks
    )


def _signal_line(signals: BehavioralSignals | None) -> str:
    if signals is None:
        return "no behavioral signals yet"
    return (
        f"{signals.time_of_day.value}, {signals.task_switching_freq:g} task switches/hour, "
        f"{signals.idle_time:g} min idle, completion {signals.task_completion_speed.value}"
        f"{', late-night usage' if signals.late_night_usage else ''}"
    )


class CoachAgent:
    """Narration backend that asks a language model directly.

    One ``Agent`` is created lazily per output type. ``model`` is a
    pydantic-ai model name or a ``Model`` instance.
    """

    def __init__(self, model: str | Model | None = None, api_key: str | None = None) -> None:
        self.model = model or settings.ai.model
        self.api_key = api_key or settings.ai.api_key.get_secret_value()
        self._agents: dict[type[BaseModel], Agent] = {}

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _get_agent(self, output_type: type[OutputT]) -> Agent[CoachDependencies, OutputT]:
        if output_type not in self._agents:
            if self.api_key:
                os.environ.setdefault("GEMINI_API_KEY", self.api_key)

            agent = Agent(
                self.model,
                deps_type=CoachDependencies,
                output_type=output_type,
                system_prompt=SYSTEM_PROMPT,
            )

            @agent.system_prompt
            def user_context(ctx: RunContext[CoachDependencies]) -> str:
                deps = ctx.deps
                return (
                    f"You are talking to {deps.user_name}. Today is {deps.current_date}. "
                    f"Current energy: {deps.energy_level}/5. "
                    f"North Star: {deps.north_star or 'not set'}."
                )

            self._agents[output_type] = agent
        return self._agents[output_type]

    async def _run(
        self,
        output_type: type[OutputT],
        prompt: str,
        energy_level: int,
        north_star: str | None = None,
    ) -> OutputT:
        deps = CoachDependencies(energy_level=energy_level, north_star=north_star)
        result = await self._get_agent(output_type).run(prompt, deps=deps)
        return result.output

    async def generate_insights(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        north_star: str | None = None,
        user_question: str | None = None,
    ) -> Insight:
        prompt = (
            f"Tasks:\n{_task_lines(tasks)}\n\n"
            f"{user_question or 'Give me one insight about my day so far.'}"
        )
        answer = await self._run(CoachInsight, prompt, energy_level, north_star)

        completed = sum(1 for t in tasks if t.completed)
        optimal = [t for t in tasks if not t.completed and t.energy_cost <= energy_level]
        return Insight(
            insight=answer.insight,
            recommendation=answer.recommendation,
            optimal_tasks=len(optimal),
            completion_rate=int(completed / len(tasks) * 100 + 0.5) if tasks else 0,
            source="agent",
        )

    async def recommend_tasks(
        self,
        tasks: Sequence[Task],
        energy_level: int,
        time_of_day: str | None = None,
        signals: BehavioralSignals | None = None,
    ) -> list[TaskRecommendation]:
        pending = [t for t in tasks if not t.completed]
        if not pending:
            return []

        prompt = (
            f"It is {time_of_day or 'afternoon'}; {_signal_line(signals)}.\n"
            f"Pending tasks:\n{_task_lines(pending)}\n\n"
            "Pick the single best task to do next and explain why in one sentence."
        )
        pick = await self._run(CoachPick, prompt, energy_level)

        match = next((t for t in pending if t.title == pick.title), None)
        if match is None:
            return []
        return [
            TaskRecommendation(
                task=match.model_dump(mode="json"),
                explanation=pick.explanation,
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
        prompt = (
            f"Flow score: {flow_score if flow_score is not None else 'unknown'}. "
            f"Signals: {_signal_line(signals)}.\n"
            f"Active tasks:\n{_task_lines(active_tasks)}\n\n"
            "Write a one-sentence status message and choose the orb's color "
            "(green good, yellow caution, red overloaded or depleted), pulse and glow."
        )
        orb = await self._run(CoachOrb, prompt, energy_level)
        return BioOrbInsight(**orb.model_dump())

    async def end_of_day_reflection(
        self,
        timeline: Sequence[EnergyEntry],
        completed: Sequence[Task],
        pending: Sequence[Task],
        signals: BehavioralSignals | None = None,
        flow_score: int | None = None,
        north_star: str | None = None,
    ) -> Reflection:
        energy = ", ".join(
            f"{e.timestamp:%H:%M} {e.level}/5 ({e.source.value})"
            for e in prune_timeline(timeline)
        )
        prompt = (
            "Reflect on my day as an evening coach.\n\n"
            f"Energy timeline: {energy or 'no entries'}\n"
            f"Completed tasks:\n{_task_lines(completed)}\n"
            f"Pending tasks:\n{_task_lines(pending)}\n"
            f"Flow score: {flow_score if flow_score is not None else 'not calculated'}\n"
            f"Signals: {_signal_line(signals)}\n\n"
            "Summarize the day warmly, name what drained and what boosted my energy, "
            "ask ONE reflective question and suggest tomorrow's focus."
        )
        out = await self._run(CoachReflection, prompt, 3, north_star)
        return Reflection(
            full_reflection=(
                f"{out.daily_summary}\n\n"
                f"What energized you: {out.energy_boosts}\n"
                f"What drained you: {out.energy_drains}\n\n"
                f"{out.reflective_question}\n\n"
                f"Tomorrow's focus: {out.tomorrow_focus}"
            ),
            source="agent",
            **out.model_dump(),
        )
