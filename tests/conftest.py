"""Pytest configuration and fixtures for DaySense tests."""

import logging
from datetime import datetime, timezone
from itertools import count
from typing import Any

import pytest
import structlog

from daysense import db
from daysense.adapters.base import FetchError, WriteError
from daysense.aggregators.daily import DailyAggregator
from daysense.logging_config import HANDLER_NAME
from daysense.models import DailyAnalytics, Task, TaskCreate
from daysense.narration.service import NarrationService
from daysense.signals.sources import SyntheticSignalSource

FIXED_NOW = datetime(2026, 1, 19, 14, 30, tzinfo=timezone.utc)


class FakeStore:
    """In-memory stand-in for the Firestore adapter.

    Set ``fail_reads`` or ``fail_writes`` to make the next calls raise.
    """

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self.tasks: dict[str, Task] = {t.id: t for t in tasks or []}
        self.analytics: list[DailyAnalytics] = []
        self.fail_reads = False
        self.fail_writes = False
        self.connected = False
        self._ids = count(1)

    async def connect(self) -> bool:
        self.connected = True
        return True

    async def disconnect(self) -> None:
        self.connected = False

    async def create_task(self, user_id: str, task: TaskCreate) -> Task:
        if self.fail_writes:
            raise WriteError("firestore", "create failed")
        created = Task(**task.model_dump(), id=f"task-{next(self._ids)}", user_id=user_id)
        self.tasks[created.id] = created
        return created

    async def get_user_tasks(self, user_id: str) -> list[Task]:
        if self.fail_reads:
            raise FetchError("firestore", "query failed")
        return [t for t in self.tasks.values() if t.user_id == user_id]

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> Task:
        if self.fail_writes:
            raise WriteError("firestore", "update failed")
        updated = self.tasks[task_id].model_copy(update=changes)
        self.tasks[task_id] = Task.model_validate(updated.model_dump())
        return self.tasks[task_id]

    async def delete_task(self, task_id: str) -> None:
        if self.fail_writes:
            raise WriteError("firestore", "delete failed")
        self.tasks.pop(task_id, None)

    async def upsert_daily_analytics(self, analytics: DailyAnalytics) -> DailyAnalytics:
        if self.fail_writes:
            raise WriteError("firestore", "analytics failed")
        self.analytics = [
            a
            for a in self.analytics
            if not (a.user_id == analytics.user_id and a.date == analytics.date)
        ]
        self.analytics.append(analytics)
        return analytics

    async def get_user_analytics(self, user_id: str) -> list[DailyAnalytics]:
        if self.fail_reads:
            raise FetchError("firestore", "query failed")
        return [a for a in self.analytics if a.user_id == user_id]


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any ``setup_logging`` call made during a test."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(handler)
    root.setLevel(logging.WARNING)


@pytest.fixture
def make_task():
    """Factory for tasks owned by the test user."""
    ids = count(1)

    def _make(**overrides: Any) -> Task:
        fields: dict[str, Any] = {
            "id": f"t{next(ids)}",
            "user_id": "user-1",
            "title": "Write report",
            "energy_cost": 3,
            "estimated_minutes": 30,
            "priority": "medium",
            "completed": False,
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
        }
        fields.update(overrides)
        return Task(**fields)

    return _make


@pytest.fixture
def sample_tasks(make_task):
    """Two pending tasks and one completed one."""
    return [
        make_task(id="t1", title="Deep work block", energy_cost=5, priority="high"),
        make_task(id="t2", title="Answer email", energy_cost=2, priority="low"),
        make_task(id="t3", title="Plan sprint", energy_cost=3, completed=True),
    ]


@pytest.fixture
def fake_store(sample_tasks):
    return FakeStore(sample_tasks)


@pytest.fixture
def memory_db():
    """Point the persistence layer at a fresh in-memory sqlite database."""
    engine = db.create_db_engine("sqlite://")
    db.set_engine(engine)
    yield engine
    db.set_engine(None)
    engine.dispose()


@pytest.fixture
def aggregator(fake_store):
    """An aggregator with local narration, seeded signals and no persistence."""
    return DailyAggregator(
        user_id="user-1",
        store=fake_store,
        narration=NarrationService(None),
        source=SyntheticSignalSource(seed=7),
        persist=False,
    )
