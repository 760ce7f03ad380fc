"""Domain models for DaySense."""

from datetime import date as date_type
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class EnergySource(str, Enum):
    MANUAL = "manual"
    INFERRED = "inferred"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Category(str, Enum):
    DEEP_WORK = "deep-work"
    COMMUNICATION = "communication"
    ADMIN = "admin"
    CREATIVE = "creative"
    WELLNESS = "wellness"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    LATE_NIGHT = "late_night"


class CompletionSpeed(str, Enum):
    FASTER = "faster_than_usual"
    SLOWER = "slower_than_usual"
    USUAL = "usual"


# ── Energy timeline ──────────────────────────────────────────────────


class EnergyEntry(BaseModel):
    """One point on the day's energy timeline."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utcnow)
    level: int = Field(ge=1, le=5)
    source: EnergySource = EnergySource.MANUAL
    confidence: int | None = Field(default=None, ge=0, le=100)


# ── Tasks ────────────────────────────────────────────────────────────


class TaskCreate(BaseModel):
    """Fields a user supplies when creating a task."""

    title: str = Field(min_length=1)
    description: str | None = None
    energy_cost: int = Field(default=3, ge=1, le=5)
    estimated_minutes: int = Field(default=30, gt=0)
    priority: Priority = Priority.MEDIUM
    category: Category | None = None
    completed: bool = False


class TaskUpdate(BaseModel):
    """Partial task update; unset fields are left untouched."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    energy_cost: int | None = Field(default=None, ge=1, le=5)
    estimated_minutes: int | None = Field(default=None, gt=0)
    priority: Priority | None = None
    category: Category | None = None
    completed: bool | None = None

    def changes(self) -> dict[str, Any]:
        """Only the fields that were explicitly set."""
        return self.model_dump(exclude_unset=True)


class Task(TaskCreate):
    """A task owned by a single user."""

    id: str
    user_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ── Behavioral signals ───────────────────────────────────────────────


class BehavioralSignals(BaseModel):
    """Latest snapshot of engagement proxies. Not persisted."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    time_of_day: TimeOfDay = Field(alias="timeOfDay")
    task_switching_freq: float = Field(default=0, ge=0, alias="taskSwitchingFreq")
    idle_time: float = Field(default=0, ge=0, alias="idleTime")
    task_completion_speed: CompletionSpeed = Field(
        default=CompletionSpeed.USUAL, alias="taskCompletionSpeed"
    )
    late_night_usage: bool = Field(default=False, alias="lateNightUsage")


class EnergyInference(BaseModel):
    """Result of passive energy inference."""

    inferred_energy_level: int = Field(ge=1, le=5)
    confidence_score: int = Field(ge=0, le=100)
    signal_summary: str
    user_message: str


# ── Flow score ───────────────────────────────────────────────────────


class FlowScoreRecord(BaseModel):
    """Composite flow score and its sub-scores for one day."""

    date: date_type
    score: int = Field(ge=0, le=100)
    energy_alignment: int = Field(ge=0, le=100)
    completion_efficiency: int = Field(ge=0, le=100)
    focus_consistency: int = Field(ge=0, le=100)


class DailyTrackingData(BaseModel):
    """Aggregate root for one tracking day."""

    energy_timeline: list[EnergyEntry] = Field(default_factory=list)
    completed_tasks: list[Task] = Field(default_factory=list)
    pending_tasks: list[Task] = Field(default_factory=list)
    passive_signals: BehavioralSignals | None = None
    flow_score: int | None = None
    energy_task_alignment_score: int | None = None
    completion_efficiency_score: int | None = None
    focus_consistency_score: int | None = None


# ── Profiles and analytics ───────────────────────────────────────────


class UserProfile(BaseModel):
    """Per-user profile document."""

    id: str
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    created_at: datetime | None = None
    energy_level: int = Field(default=3, ge=1, le=5)
    north_star: str | None = None
    streak_days: int = 0
    onboarding_completed: bool = False
    notifications_enabled: bool = True
    daily_checkins_enabled: bool = True
    task_reminders_enabled: bool = True
    focus_sessions_enabled: bool = False
    chronotype: str | None = None


class DailyAnalytics(BaseModel):
    """Per-day usage rollup stored in the document store."""

    id: str | None = None
    user_id: str
    date: date_type
    energy_level: float = 3
    tasks_completed: int = 0
    focus_time: float = 0
    flow_time: float = 0
    recharge_time: float = 0


# ── Narration results ────────────────────────────────────────────────


class Insight(BaseModel):
    insight: str
    recommendation: str
    flow_score: int | None = None
    optimal_tasks: int = 0
    completion_rate: int = 0
    source: str = "remote"


class TaskRecommendation(BaseModel):
    task: dict[str, Any]
    explanation: str
    confidence: float
    factors: list[str] = Field(default_factory=list)


class BioOrbInsight(BaseModel):
    insight_message: str
    visual_cue: str = "green"
    pulse_speed: str = "medium"
    glow_intensity: str = "medium"


class Reflection(BaseModel):
    """Structured end-of-day narrative."""

    full_reflection: str
    daily_summary: str
    energy_drains: str = ""
    energy_boosts: str = ""
    reflective_question: str
    tomorrow_focus: str = ""
    source: str = "remote"


class EnergyInsights(BaseModel):
    avg: str
    peak: int
    low: int


class TaskStats(BaseModel):
    completed: int
    pending: int
    efficiency: int


class DailyReflection(BaseModel):
    """A saved reflection for one calendar day."""

    date: date_type
    daily_summary: str
    reflective_question: str
    flow_score: int | None = None
    energy_insights: EnergyInsights | None = None
    task_stats: TaskStats | None = None
