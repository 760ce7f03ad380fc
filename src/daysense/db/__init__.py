"""Local persistence for flow score history and reflections."""

from pathlib import Path

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, select

from daysense.config.settings import settings
from daysense.db.models import FlowScoreEntry, ReflectionEntry
from daysense.models import (
    DailyReflection,
    EnergyInsights,
    FlowScoreRecord,
    TaskStats,
    utcnow,
)

logger = structlog.get_logger()

_engine: Engine | None = None


def create_db_engine(url: str) -> Engine:
    """Create an engine, expanding ``~`` and creating parent dirs for sqlite files."""
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )

    if url.startswith("sqlite:///"):
        path = Path(url.removeprefix("sqlite:///")).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite:///{path}"
        return create_engine(url, connect_args={"check_same_thread": False})

    return create_engine(url)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_db_engine(settings.database.database_url)
    return _engine


def set_engine(engine: Engine | None) -> None:
    """Swap the module engine (used by tests and the CLI)."""
    global _engine
    _engine = engine


async def init_db() -> None:
    SQLModel.metadata.create_all(get_engine())
    logger.info("Database initialized")


async def close_db() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
    logger.info("Database closed")


# ── Flow scores ──────────────────────────────────────────────────────


def save_flow_score(user_id: str, record: FlowScoreRecord) -> None:
    """Insert or replace the user's score for ``record.date``."""
    with Session(get_engine()) as session:
        entry = session.exec(
            select(FlowScoreEntry).where(
                FlowScoreEntry.user_id == user_id,
                FlowScoreEntry.date == record.date,
            )
        ).first()
        if entry is None:
            entry = FlowScoreEntry(user_id=user_id, **record.model_dump())
        else:
            for key, value in record.model_dump(exclude={"date"}).items():
                setattr(entry, key, value)
            entry.updated_at = utcnow()
        session.add(entry)
        session.commit()


def load_flow_scores(user_id: str) -> list[FlowScoreRecord]:
    with Session(get_engine()) as session:
        rows = session.exec(
            select(FlowScoreEntry)
            .where(FlowScoreEntry.user_id == user_id)
            .order_by(FlowScoreEntry.date)
        ).all()
    return [
        FlowScoreRecord(
            date=row.date,
            score=row.score,
            energy_alignment=row.energy_alignment,
            completion_efficiency=row.completion_efficiency,
            focus_consistency=row.focus_consistency,
        )
        for row in rows
    ]


# ── Reflections ──────────────────────────────────────────────────────


def _to_reflection(row: ReflectionEntry) -> DailyReflection:
    insights = None
    if row.energy_avg is not None:
        insights = EnergyInsights(avg=row.energy_avg, peak=row.energy_peak, low=row.energy_low)
    stats = None
    if row.tasks_completed is not None:
        stats = TaskStats(
            completed=row.tasks_completed,
            pending=row.tasks_pending or 0,
            efficiency=row.efficiency or 0,
        )
    return DailyReflection(
        date=row.date,
        daily_summary=row.daily_summary,
        reflective_question=row.reflective_question,
        flow_score=row.flow_score,
        energy_insights=insights,
        task_stats=stats,
    )


def save_reflection(user_id: str, reflection: DailyReflection) -> None:
    """Insert or replace the user's reflection for ``reflection.date``."""
    values = {
        "daily_summary": reflection.daily_summary,
        "reflective_question": reflection.reflective_question,
        "flow_score": reflection.flow_score,
        "energy_avg": None,
        "energy_peak": None,
        "energy_low": None,
        "tasks_completed": None,
        "tasks_pending": None,
        "efficiency": None,
    }
    if reflection.energy_insights:
        values.update(
            energy_avg=reflection.energy_insights.avg,
            energy_peak=reflection.energy_insights.peak,
            energy_low=reflection.energy_insights.low,
        )
    if reflection.task_stats:
        values.update(
            tasks_completed=reflection.task_stats.completed,
            tasks_pending=reflection.task_stats.pending,
            efficiency=reflection.task_stats.efficiency,
        )

    with Session(get_engine()) as session:
        entry = session.exec(
            select(ReflectionEntry).where(
                ReflectionEntry.user_id == user_id,
                ReflectionEntry.date == reflection.date,
            )
        ).first()
        if entry is None:
            entry = ReflectionEntry(user_id=user_id, date=reflection.date, **values)
        else:
            for key, value in values.items():
                setattr(entry, key, value)
        session.add(entry)
        session.commit()


def load_reflections(user_id: str) -> list[DailyReflection]:
    """All saved reflections for the user, oldest first."""
    with Session(get_engine()) as session:
        rows = session.exec(
            select(ReflectionEntry)
            .where(ReflectionEntry.user_id == user_id)
            .order_by(ReflectionEntry.date)
        ).all()
        return [_to_reflection(row) for row in rows]


def clear_reflections(user_id: str) -> None:
    with Session(get_engine()) as session:
        rows = session.exec(select(ReflectionEntry).where(ReflectionEntry.user_id == user_id))
        for row in rows.all():
            session.delete(row)
        session.commit()
