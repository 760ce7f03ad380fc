"""Per-day usage rollups and the analytics summary."""

from collections.abc import Sequence
from datetime import date, datetime, timedelta
from datetime import date as date_type

from pydantic import BaseModel

from daysense.models import DailyAnalytics, EnergyEntry, Task, UserProfile
from daysense.scoring.energy import EnergyState, get_energy_state
from daysense.scoring.flow import round_half_up


class DayPoint(BaseModel):
    day: str
    date: date_type
    tasks: int = 0
    energy: float | None = None


class AnalyticsSummary(BaseModel):
    completed_tasks: int
    avg_energy: float
    productivity_score: int
    streak: int
    focus_time: float
    flow_time: float
    recharge_time: float
    weekly: list[DayPoint]


def time_by_state(timeline: Sequence[EnergyEntry], until: datetime) -> dict[EnergyState, float]:
    """Minutes spent in each energy state.

    Each entry's level holds until the next entry; the last one holds
    until ``until``.
    """
    minutes = {state: 0.0 for state in EnergyState}
    for entry, following in zip(timeline, [*timeline[1:], None]):
        end = following.timestamp if following is not None else until
        span = (end - entry.timestamp).total_seconds() / 60
        if span > 0:
            minutes[get_energy_state(entry.level)] += span
    return minutes


def daily_analytics(
    user_id: str,
    day: date,
    timeline: Sequence[EnergyEntry],
    tasks_completed: int,
    until: datetime,
    current_energy: int = 3,
) -> DailyAnalytics:
    """Roll one tracked day up into an analytics record."""
    levels = [e.level for e in timeline]
    spent = time_by_state(timeline, until)
    return DailyAnalytics(
        user_id=user_id,
        date=day,
        energy_level=round(sum(levels) / len(levels), 1) if levels else current_energy,
        tasks_completed=tasks_completed,
        focus_time=round(spent[EnergyState.FOCUS], 1),
        flow_time=round(spent[EnergyState.FLOW], 1),
        recharge_time=round(spent[EnergyState.RECHARGE], 1),
    )


def summarize(
    tasks: Sequence[Task],
    records: Sequence[DailyAnalytics],
    profile: UserProfile | None,
    today: date,
) -> AnalyticsSummary:
    completed = sum(1 for t in tasks if t.completed)

    avg_energy = float(profile.energy_level if profile else 3)
    if records:
        avg_energy = sum(r.energy_level for r in records) / len(records)

    by_date = {r.date: r for r in records}
    weekly = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        record = by_date.get(day)
        weekly.append(
            DayPoint(
                day=day.strftime("%a"),
                date=day,
                tasks=record.tasks_completed if record else 0,
                energy=record.energy_level if record else None,
            )
        )

    return AnalyticsSummary(
        completed_tasks=completed,
        avg_energy=round(avg_energy, 1),
        productivity_score=min(100, round_half_up(completed / max(len(tasks), 1) * 100)),
        streak=profile.streak_days if profile else 0,
        focus_time=sum(r.focus_time for r in records),
        flow_time=sum(r.flow_time for r in records),
        recharge_time=sum(r.recharge_time for r in records),
        weekly=weekly,
    )
