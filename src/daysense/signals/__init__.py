"""Behavioral signal sources and collection."""

from daysense.signals.collector import SignalCollector
from daysense.signals.sources import (
    BehaviorTracker,
    SignalSource,
    SyntheticSignalSource,
    is_late_night,
    time_of_day,
)

__all__ = [
    "BehaviorTracker",
    "SignalCollector",
    "SignalSource",
    "SyntheticSignalSource",
    "is_late_night",
    "time_of_day",
]
