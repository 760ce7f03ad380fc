"""Daily tracking state and flow score history."""

from daysense.tracking.daily import DailyTracker
from daysense.tracking.history import FlowScoreHistory

__all__ = ["DailyTracker", "FlowScoreHistory"]
