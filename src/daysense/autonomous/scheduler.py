"""Scheduler for the periodic DaySense routines."""

import asyncio
import signal

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from daysense.aggregators.daily import DailyAggregator
from daysense.config.settings import settings

logger = structlog.get_logger()


class DaySenseScheduler:
    """Runs signal sampling, passive inference, task refresh and the
    end-of-day reflection for one aggregator.

    Every job runs at most one instance at a time.
    """

    def __init__(self, aggregator: DailyAggregator) -> None:
        self.aggregator = aggregator
        self.scheduler = AsyncIOScheduler(timezone=settings.timezone)
        self._setup_jobs()

    def _setup_jobs(self) -> None:
        """Configure all scheduled jobs."""
        tracking = settings.tracking
        common = {"replace_existing": True, "max_instances": 1, "coalesce": True}

        # Behavioral signal snapshot
        self.scheduler.add_job(
            self._sample_signals,
            IntervalTrigger(seconds=self.aggregator.collector.interval_seconds),
            id="sample_signals",
            name="Sample Signals",
            **common,
        )

        # Passive energy inference
        self.scheduler.add_job(
            self._infer_energy,
            IntervalTrigger(seconds=tracking.inference_interval_seconds),
            id="infer_energy",
            name="Infer Energy",
            **common,
        )

        # Task list refresh
        self.scheduler.add_job(
            self._refresh_tasks,
            IntervalTrigger(seconds=tracking.task_refresh_seconds),
            id="refresh_tasks",
            name="Refresh Tasks",
            **common,
        )

        # End-of-day reflection, retried through the reflection hour
        self.scheduler.add_job(
            self._evening_reflection,
            CronTrigger(hour=tracking.reflection_hour, minute="*/5"),
            id="evening_reflection",
            name="Evening Reflection",
            **common,
        )

        logger.info("Scheduled jobs configured")

    async def _sample_signals(self) -> None:
        try:
            self.aggregator.sample_signals()
        except Exception as e:
            logger.error("Signal sampling failed", error=str(e))

    async def _infer_energy(self) -> None:
        try:
            self.aggregator.infer_energy()
        except Exception as e:
            logger.error("Energy inference failed", error=str(e))

    async def _refresh_tasks(self) -> None:
        try:
            await self.aggregator.refresh_tasks()
        except Exception as e:
            logger.error("Task refresh failed", error=str(e))

    async def _evening_reflection(self) -> None:
        try:
            reflection = await self.aggregator.maybe_reflect()
            if reflection is not None:
                logger.info(
                    "Evening reflection generated",
                    summary=reflection.daily_summary[:100],
                )
        except Exception as e:
            logger.error("Evening reflection failed", error=str(e))

    def start(self) -> None:
        """Start the scheduler."""
        self.scheduler.start()
        logger.info("DaySense scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("DaySense scheduler stopped")


async def run_scheduler(aggregator: DailyAggregator | None = None) -> None:
    """Run the scheduled jobs until SIGINT or SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    async with aggregator or DailyAggregator() as day:
        scheduler = DaySenseScheduler(day)
        scheduler.start()
        try:
            await stop.wait()
        finally:
            logger.info("Shutting down scheduler...")
            scheduler.stop()


def start_scheduler() -> None:
    """Entry point for scheduler service."""
    from daysense.logging_config import setup_logging

    setup_logging()
    asyncio.run(run_scheduler())


if __name__ == "__main__":
    start_scheduler()
