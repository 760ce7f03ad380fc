"""Per-user task list kept in sync with the remote document store."""

from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol
from uuid import uuid4

import structlog

from daysense.adapters.base import AdapterError
from daysense.models import Task, TaskCreate, TaskUpdate, utcnow
from daysense.signals.sources import BehaviorTracker
from daysense.tasks.optimistic import OptimisticCollection

logger = structlog.get_logger()

LOAD_ERROR = "Failed to load tasks"
ADD_ERROR = "Failed to add task"
UPDATE_ERROR = "Failed to update task"
DELETE_ERROR = "Failed to delete task"


class TaskBackend(Protocol):
    async def create_task(self, user_id: str, task: TaskCreate) -> Task: ...

    async def get_user_tasks(self, user_id: str) -> list[Task]: ...

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> Task: ...

    async def delete_task(self, task_id: str) -> None: ...


class TaskStore:
    """Optimistic task list for one user.

    Writes are applied locally first. When the remote write fails only
    that write's change is undone: a failed create drops its placeholder,
    a failed update or delete puts back the task as it was before the
    call. ``error`` is set and the exception is re-raised. ``on_change``
    receives the full list after every local change, including rollbacks.

    When a ``BehaviorTracker`` is given, every user mutation counts as
    activity, moving between tasks counts as a task switch and completing
    a task records how long it took against its estimate.
    """

    def __init__(
        self,
        backend: TaskBackend,
        user_id: str,
        on_change: Callable[[list[Task]], None] | None = None,
        clock: Callable[[], datetime] = utcnow,
        behavior: BehaviorTracker | None = None,
    ) -> None:
        self.backend = backend
        self.user_id = user_id
        self.on_change = on_change
        self.clock = clock
        self.behavior = behavior
        self.loading = False
        self.error: str | None = None
        self._tasks: OptimisticCollection[Task] = OptimisticCollection()
        self._last_task_id: str | None = None

    @property
    def tasks(self) -> list[Task]:
        return self._tasks.items

    def get(self, task_id: str) -> Task | None:
        return next((t for t in self._tasks if t.id == task_id), None)

    def get_pending(self) -> list[Task]:
        return [t for t in self._tasks if not t.completed]

    def get_completed(self) -> list[Task]:
        return [t for t in self._tasks if t.completed]

    def get_optimal(self, energy_level: int) -> list[Task]:
        """Pending tasks the given energy level can carry."""
        return [t for t in self._tasks if not t.completed and t.energy_cost <= energy_level]

    # ── Remote sync ──────────────────────────────────────────────────

    async def fetch(self) -> list[Task]:
        """Reload the list from the store. Failures keep the current list."""
        self.loading = True
        self.error = None
        try:
            tasks = await self.backend.get_user_tasks(self.user_id)
        except AdapterError as e:
            logger.warning("Failed to fetch tasks", user_id=self.user_id, error=str(e))
            self.error = LOAD_ERROR
            return self.tasks
        finally:
            self.loading = False

        self._tasks.replace(tasks)
        self._notify()
        return self.tasks

    refresh = fetch

    async def add_task(self, data: TaskCreate) -> Task:
        now = self.clock()
        temp_id = f"temp-{uuid4().hex}"
        placeholder = Task(
            **data.model_dump(),
            id=temp_id,
            user_id=self.user_id,
            created_at=now,
            updated_at=now,
        )

        def swap(items: list[Task], created: Task) -> list[Task]:
            return [created if t.id == temp_id else t for t in items]

        def drop(items: list[Task]) -> list[Task]:
            return [t for t in items if t.id != temp_id]

        self._record_activity()
        return await self._mutate(
            ADD_ERROR,
            lambda items: [*items, placeholder],
            lambda: self.backend.create_task(self.user_id, data),
            swap,
            drop,
        )

    async def update_task(self, task_id: str, update: TaskUpdate) -> Task:
        changes = update.changes()
        before = self.get(task_id)

        def apply(items: list[Task]) -> list[Task]:
            return [t.model_copy(update=changes) if t.id == task_id else t for t in items]

        def replace(items: list[Task], saved: Task) -> list[Task]:
            return [saved if t.id == task_id else t for t in items]

        def restore(items: list[Task]) -> list[Task]:
            if before is None:
                return items
            return [before if t.id == task_id else t for t in items]

        self._record_activity(task_id)
        payload = update.model_dump(mode="json", exclude_unset=True)
        saved = await self._mutate(
            UPDATE_ERROR,
            apply,
            lambda: self.backend.update_task(task_id, payload),
            replace,
            restore,
        )

        if before is not None and not before.completed and changes.get("completed"):
            self._record_completion(before)
        return saved

    async def delete_task(self, task_id: str) -> None:
        before = self.get(task_id)
        position = next((i for i, t in enumerate(self._tasks) if t.id == task_id), 0)

        def restore(items: list[Task]) -> list[Task]:
            if before is None or any(t.id == task_id for t in items):
                return items
            return [*items[:position], before, *items[position:]]

        self._record_activity(task_id)
        await self._mutate(
            DELETE_ERROR,
            lambda items: [t for t in items if t.id != task_id],
            lambda: self.backend.delete_task(task_id),
            revert=restore,
        )

    async def toggle_task(self, task_id: str) -> Task | None:
        """Flip completion. Unknown ids are ignored."""
        task = self.get(task_id)
        if task is None:
            return None
        return await self.update_task(task_id, TaskUpdate(completed=not task.completed))

    async def _mutate(self, message, apply, commit, reconcile=None, revert=None):
        self.error = None
        try:
            result = await self._tasks.mutate(apply, commit, reconcile, revert)
        except Exception as e:
            logger.error(message, user_id=self.user_id, error=str(e))
            self.error = message
            raise
        finally:
            self._notify()
        return result

    # ── Behavior ─────────────────────────────────────────────────────

    def _record_activity(self, task_id: str | None = None) -> None:
        if self.behavior is None:
            return
        self.behavior.record_activity()
        if task_id is None:
            return
        if self._last_task_id is not None and task_id != self._last_task_id:
            self.behavior.record_task_switch()
        self._last_task_id = task_id

    def _record_completion(self, task: Task) -> None:
        if self.behavior is None:
            return
        actual = (self.behavior.clock() - task.created_at).total_seconds() / 60
        self.behavior.record_task_completion(task.estimated_minutes, max(actual, 0.0))

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.tasks)
