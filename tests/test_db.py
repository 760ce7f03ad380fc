"""Tests for local persistence of flow scores and reflections."""

from datetime import date

from daysense import db
from daysense.models import DailyReflection, EnergyInsights, FlowScoreRecord, TaskStats


def _record(day: date, score: int) -> FlowScoreRecord:
    return FlowScoreRecord(
        date=day,
        score=score,
        energy_alignment=score,
        completion_efficiency=score,
        focus_consistency=score,
    )


def _reflection(day: date, summary: str = "Good day.") -> DailyReflection:
    return DailyReflection(
        date=day,
        daily_summary=summary,
        reflective_question="What will you protect tomorrow?",
        flow_score=72,
        energy_insights=EnergyInsights(avg="3.5", peak=5, low=2),
        task_stats=TaskStats(completed=3, pending=1, efficiency=75),
    )


class TestFlowScores:
    """Test score upserts."""

    async def test_save_and_load(self, memory_db):
        await db.init_db()
        db.save_flow_score("u1", _record(date(2026, 1, 19), 70))
        db.save_flow_score("u1", _record(date(2026, 1, 18), 60))
        db.save_flow_score("u2", _record(date(2026, 1, 19), 10))

        records = db.load_flow_scores("u1")

        assert [r.date for r in records] == [date(2026, 1, 18), date(2026, 1, 19)]
        assert [r.score for r in records] == [60, 70]

    async def test_same_day_is_replaced(self, memory_db):
        await db.init_db()
        db.save_flow_score("u1", _record(date(2026, 1, 19), 70))
        db.save_flow_score("u1", _record(date(2026, 1, 19), 85))

        records = db.load_flow_scores("u1")
        assert len(records) == 1
        assert records[0].score == 85


class TestReflections:
    """Test reflection upserts and clearing."""

    async def test_save_and_load(self, memory_db):
        await db.init_db()
        original = _reflection(date(2026, 1, 19))
        db.save_reflection("u1", original)

        assert db.load_reflections("u1") == [original]

    async def test_same_day_is_replaced(self, memory_db):
        await db.init_db()
        db.save_reflection("u1", _reflection(date(2026, 1, 19), "First"))
        db.save_reflection("u1", _reflection(date(2026, 1, 19), "Second"))

        saved = db.load_reflections("u1")
        assert [r.daily_summary for r in saved] == ["Second"]

    async def test_optional_sections(self, memory_db):
        await db.init_db()
        bare = DailyReflection(
            date=date(2026, 1, 19), daily_summary="Quiet.", reflective_question="Why?"
        )
        db.save_reflection("u1", bare)

        loaded = db.load_reflections("u1")[0]
        assert loaded.energy_insights is None
        assert loaded.task_stats is None

    async def test_clear_only_affects_user(self, memory_db):
        await db.init_db()
        db.save_reflection("u1", _reflection(date(2026, 1, 19)))
        db.save_reflection("u2", _reflection(date(2026, 1, 19)))

        db.clear_reflections("u1")

        assert db.load_reflections("u1") == []
        assert len(db.load_reflections("u2")) == 1


def test_file_engine_creates_parent_dirs(tmp_path):
    path = tmp_path / "nested" / "daysense.db"
    engine = db.create_db_engine(f"sqlite:///{path}")
    try:
        assert path.parent.is_dir()
    finally:
        engine.dispose()
