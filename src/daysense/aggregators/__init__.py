"""Aggregators combining tracking, tasks, narration and analytics."""

from daysense.aggregators.analytics import AnalyticsSummary, daily_analytics, summarize
from daysense.aggregators.daily import DailyAggregator, get_status
from daysense.aggregators.reflection import InsufficientDataError, ReflectionJournal

__all__ = [
    "AnalyticsSummary",
    "DailyAggregator",
    "InsufficientDataError",
    "ReflectionJournal",
    "daily_analytics",
    "get_status",
    "summarize",
]
