"""Deterministic coaching text used when no remote model answers.

Every function here is pure and never raises on well-formed input.
"""

from collections.abc import Sequence

from daysense.models import (
    BioOrbInsight,
    Insight,
    Reflection,
    Task,
    TaskRecommendation,
)

MAX_RECOMMENDATIONS = 3


def _optimal(tasks: Sequence[Task], energy_level: int) -> list[Task]:
    return [t for t in tasks if not t.completed and t.energy_cost <= energy_level]


def _percent(part: int, total: int) -> int:
    return int(part / total * 100 + 0.5) if total else 0


def recommendation_text(optimal_count: int, energy_level: int) -> str:
    if optimal_count == 0:
        return "Take a break to recharge."
    return "Tackle your biggest challenge!" if energy_level >= 4 else "Focus on manageable wins."


def insight_text(
    tasks: Sequence[Task],
    energy_level: int,
    north_star: str | None = None,
    user_question: str | None = None,
) -> str:
    question = (user_question or "").lower()
    completed = sum(1 for t in tasks if t.completed)
    optimal = _optimal(tasks, energy_level)

    if "break" in question:
        if energy_level <= 2:
            return (
                "Your energy level is quite low. Consider taking a 5-10 minute break "
                "with some light stretching or deep breathing to recharge."
            )
        if energy_level >= 4:
            return (
                "Your energy is high! You could power through a few more tasks, "
                "but a brief break could help maintain this momentum."
            )
        return (
            "You're at a moderate energy level. A short break could help refresh "
            "your mind before continuing."
        )

    if "focus" in question or "concentrate" in question:
        return (
            f"With your current energy level of {energy_level}/5, you're in a good "
            "position to tackle focused work. Consider blocking out distractions for "
            "25-30 minutes to maximize your concentration."
        )

    if "north star" in question:
        if north_star:
            return (
                f'Your North Star goal is: "{north_star}". Consider how your next task '
                "aligns with this overarching objective to maintain focus on what "
                "matters most."
            )
        return (
            "You haven't set a North Star goal yet. Consider defining a primary "
            "objective to help prioritize your tasks and maintain motivation."
        )

    if completed == 0 and tasks:
        return (
            f"You have {len(tasks)} tasks waiting. Your current energy level is "
            f"{energy_level}/5. Consider starting with a lower energy-cost task to "
            "build momentum."
        )
    if completed > 0:
        if optimal:
            tail = f"You have {len(optimal)} tasks that match your current energy level."
        else:
            tail = (
                "Consider taking a break or scheduling more demanding tasks for when "
                "your energy peaks."
            )
        return (
            f"You've completed {completed} tasks so far. Your energy level is at "
            f"{energy_level}/5. {tail}"
        )
    return (
        f"You're off to a good start! With {energy_level}/5 energy, you're in a "
        "good position to tackle your planned tasks."
    )


def insight(
    tasks: Sequence[Task],
    energy_level: int,
    north_star: str | None = None,
    user_question: str | None = None,
    flow_score: int | None = None,
) -> Insight:
    completed = sum(1 for t in tasks if t.completed)
    optimal = _optimal(tasks, energy_level)
    return Insight(
        insight=insight_text(tasks, energy_level, north_star, user_question),
        recommendation=recommendation_text(len(optimal), energy_level),
        flow_score=flow_score,
        optimal_tasks=len(optimal),
        completion_rate=_percent(completed, len(tasks)),
        source="fallback",
    )


def recommendations(tasks: Sequence[Task], energy_level: int) -> list[TaskRecommendation]:
    """The first few pending tasks the current energy level can carry."""
    return [
        TaskRecommendation(
            task=t.model_dump(mode="json"),
            explanation=(
                f"Matches your current energy level ({energy_level}/5) for optimal performance."
            ),
            confidence=0.7,
            factors=["energy_alignment"],
        )
        for t in _optimal(tasks, energy_level)[:MAX_RECOMMENDATIONS]
    ]


def bio_orb(energy_level: int, flow_score: int | None = None) -> BioOrbInsight:
    """Orb cue from the flow score, overridden at the energy extremes."""
    score = 50 if flow_score is None else flow_score

    if energy_level <= 2:
        return BioOrbInsight(
            insight_message=(
                "Your energy is low. Consider lighter tasks or a short break to recharge."
            ),
            visual_cue="red",
            pulse_speed="slow",
            glow_intensity="low",
        )
    if energy_level >= 4:
        return BioOrbInsight(
            insight_message=(
                "High energy detected! This is perfect for tackling challenging tasks."
            ),
            visual_cue="green",
            pulse_speed="fast",
            glow_intensity="high",
        )

    if score >= 80:
        return BioOrbInsight(
            insight_message=(
                "You're in great flow! Keep up the momentum with your current tasks."
            ),
            visual_cue="green",
        )
    if score >= 60:
        return BioOrbInsight(
            insight_message=(
                "Good progress! Consider aligning your next task with your energy level."
            ),
            visual_cue="yellow",
        )
    return BioOrbInsight(
        insight_message=(
            "You might be overloaded. Take a moment to reassess your task priorities."
        ),
        visual_cue="red",
        pulse_speed="fast",
        glow_intensity="high",
    )


def reflection(
    completed: Sequence[Task],
    pending: Sequence[Task],
    flow_score: int | None = None,
) -> Reflection:
    rate = _percent(len(completed), len(completed) + len(pending))
    summary = (
        f"Great work today! You completed {len(completed)} tasks with a {rate}% "
        f"completion rate. Your Flow Score of {flow_score or 0}% shows solid progress."
    )
    return Reflection(
        full_reflection=(
            f"{summary} I noticed you were most productive during your peak energy "
            "hours. What's one routine adjustment you could make tomorrow to maintain "
            "this momentum? Consider protecting your high-energy time blocks for your "
            "most important work."
        ),
        daily_summary=summary,
        energy_drains="Evening hours showed decreased energy levels",
        energy_boosts="Morning/afternoon hours aligned well with task demands",
        reflective_question=(
            "What one boundary could you set tomorrow to preserve your peak energy hours?"
        ),
        tomorrow_focus="Protect high-energy time blocks for priority tasks",
        source="fallback",
    )
