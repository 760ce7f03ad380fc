"""Task list with optimistic remote writes."""

from daysense.tasks.optimistic import OptimisticCollection
from daysense.tasks.store import TaskBackend, TaskStore

__all__ = ["OptimisticCollection", "TaskBackend", "TaskStore"]
