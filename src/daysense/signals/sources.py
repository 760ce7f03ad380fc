"""Behavioral signal sources.

A source turns whatever it knows about the user's recent behavior into a
``BehavioralSignals`` snapshot. Scoring code only ever sees the snapshot,
so sources can be swapped freely.
"""

import random
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from daysense.config.settings import settings
from daysense.models import BehavioralSignals, CompletionSpeed, TimeOfDay

IDLE_THRESHOLD = timedelta(minutes=5)
FASTER_RATIO = 0.7
SLOWER_RATIO = 1.3


def time_of_day(hour: int) -> TimeOfDay:
    """Bucket an hour of the day (0-23)."""
    if 5 <= hour < 12:
        return TimeOfDay.MORNING
    if 12 <= hour < 17:
        return TimeOfDay.AFTERNOON
    if 17 <= hour < 22:
        return TimeOfDay.EVENING
    return TimeOfDay.LATE_NIGHT


def is_late_night(hour: int) -> bool:
    return hour >= 22 or hour < 6


def local_now() -> datetime:
    """Current time in the configured timezone."""
    return datetime.now(ZoneInfo(settings.timezone))


class SignalSource(ABC):
    """Abstract provider of behavioral signal snapshots."""

    name: str = "source"

    @abstractmethod
    def snapshot(self, now: datetime) -> BehavioralSignals:
        """Produce a fresh signals snapshot for the given moment."""
        pass


class SyntheticSignalSource(SignalSource):
    """Uniform random stand-in used until real telemetry is wired in."""

    name = "synthetic"

    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    def snapshot(self, now: datetime) -> BehavioralSignals:
        return BehavioralSignals(
            time_of_day=time_of_day(now.hour),
            task_switching_freq=self._random.randrange(15),
            idle_time=self._random.randrange(20),
            task_completion_speed=(
                CompletionSpeed.FASTER if self._random.random() > 0.5 else CompletionSpeed.USUAL
            ),
            late_night_usage=is_late_night(now.hour),
        )


class BehaviorTracker(SignalSource):
    """Counts real engagement events.

    Feed it activity, task switches and task completions as they happen.
    Gaps longer than five minutes between activity events count as idle
    time and close the current active period. Each snapshot reports the
    idle minutes accumulated since the previous snapshot and the task
    switching rate per active hour over the whole day.
    """

    name = "tracker"

    def __init__(
        self, now: datetime | None = None, clock: Callable[[], datetime] = local_now
    ) -> None:
        self.clock = clock
        self.reset(now)

    def reset(self, now: datetime | None = None) -> None:
        """Clear all counters, e.g. at the start of a new day."""
        now = now or self.clock()
        self.task_switch_count = 0
        self.completion_speed = CompletionSpeed.USUAL
        self.last_action_time = now
        self.active_periods: list[tuple[datetime, datetime]] = []
        self._active_start: datetime | None = None
        self._window_idle = timedelta()
        self._window_start = now

    def record_activity(self, at: datetime | None = None) -> None:
        """Register a user interaction (click, key press, API call)."""
        at = at or self.clock()
        gap = at - self.last_action_time

        if gap > IDLE_THRESHOLD:
            self._window_idle += at - max(self.last_action_time, self._window_start)
            self._close_period(self.last_action_time)

        self.last_action_time = at
        if self._active_start is None:
            self._active_start = at

    def check_inactivity(self, now: datetime | None = None) -> None:
        """Close the active period if the user has gone quiet."""
        now = now or self.clock()
        if now - self.last_action_time > IDLE_THRESHOLD:
            self._close_period(now)

    def record_task_switch(self) -> None:
        self.task_switch_count += 1

    def record_task_completion(self, estimated_minutes: float, actual_minutes: float) -> None:
        """Classify completion speed against the task's estimate."""
        if actual_minutes < estimated_minutes * FASTER_RATIO:
            self.completion_speed = CompletionSpeed.FASTER
        elif actual_minutes > estimated_minutes * SLOWER_RATIO:
            self.completion_speed = CompletionSpeed.SLOWER
        else:
            self.completion_speed = CompletionSpeed.USUAL

    def active_time(self, now: datetime) -> timedelta:
        total = sum((end - start for start, end in self.active_periods), timedelta())
        if self._active_start is not None:
            total += now - self._active_start
        return total

    def snapshot(self, now: datetime) -> BehavioralSignals:
        idle = self._window_idle
        if now - self.last_action_time > IDLE_THRESHOLD:
            idle += now - max(self.last_action_time, self._window_start)
        self._window_idle = timedelta()
        self._window_start = now

        active_hours = self.active_time(now).total_seconds() / 3600
        switching = self.task_switch_count / active_hours if active_hours > 0 else 0.0

        return BehavioralSignals(
            time_of_day=time_of_day(now.hour),
            task_switching_freq=round(switching, 2),
            idle_time=round(idle.total_seconds() / 60, 2),
            task_completion_speed=self.completion_speed,
            late_night_usage=is_late_night(now.hour),
        )

    def _close_period(self, end: datetime) -> None:
        if self._active_start is None:
            return
        self.active_periods.append((self._active_start, end))
        self._active_start = None
