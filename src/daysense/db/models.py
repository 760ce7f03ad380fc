"""Database models for DaySense using SQLModel."""

from datetime import date as date_type
from datetime import datetime

from sqlmodel import Field, SQLModel

from daysense.models import utcnow


class FlowScoreEntry(SQLModel, table=True):
    """One day's flow score for a user."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    date: date_type = Field(index=True)

    score: int
    energy_alignment: int
    completion_efficiency: int
    focus_consistency: int

    updated_at: datetime = Field(default_factory=utcnow)


class ReflectionEntry(SQLModel, table=True):
    """A saved end-of-day reflection."""

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    date: date_type = Field(index=True)

    daily_summary: str
    reflective_question: str
    flow_score: int | None = None

    # Energy insights
    energy_avg: str | None = None
    energy_peak: int | None = None
    energy_low: int | None = None

    # Task stats
    tasks_completed: int | None = None
    tasks_pending: int | None = None
    efficiency: int | None = None

    created_at: datetime = Field(default_factory=utcnow)
