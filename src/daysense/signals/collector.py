"""Periodic behavioral signal collection."""

from collections.abc import Callable
from datetime import datetime

import structlog

from daysense.models import BehavioralSignals
from daysense.signals.sources import SignalSource, local_now

logger = structlog.get_logger()


class SignalCollector:
    """Samples a signal source and hands each snapshot to a callback.

    The collector does not own a timer; the scheduler calls ``collect``
    every ``interval_seconds``.
    """

    def __init__(
        self,
        source: SignalSource,
        interval_seconds: int = 1800,
        on_sample: Callable[[BehavioralSignals], None] | None = None,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.source = source
        self.interval_seconds = interval_seconds
        self.on_sample = on_sample
        self.clock = clock
        self.latest: BehavioralSignals | None = None

    def collect(self, now: datetime | None = None) -> BehavioralSignals:
        """Take one snapshot, remember it, and notify the callback."""
        signals = self.source.snapshot(now or self.clock())
        self.latest = signals

        logger.debug(
            "Collected behavioral signals",
            source=self.source.name,
            time_of_day=signals.time_of_day.value,
            switching=signals.task_switching_freq,
            idle=signals.idle_time,
        )

        if self.on_sample is not None:
            self.on_sample(signals)
        return signals
