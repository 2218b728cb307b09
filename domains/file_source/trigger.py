"""
Poll trigger for the File Source domain.

Runs the poll job on an APScheduler background scheduler, either on a fixed
delay or on a crontab expression. The job is registered with
``max_instances=1`` and ``coalesce=True``: polls never overlap and firings
missed while a poll is running collapse into one.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MAX_INSTANCES, JobExecutionEvent
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from app.utils.config import Settings

JOB_ID = "file_source_poll"


def build_schedule(
    fixed_delay: float,
    initial_delay: float = 0,
    cron: Optional[str] = None,
) -> BaseTrigger:
    """
    Build the APScheduler trigger for the poll job.

    Args:
        fixed_delay: Seconds between polls
        initial_delay: Seconds before the first poll
        cron: Crontab expression; takes precedence over the fixed delay

    Returns:
        APScheduler trigger
    """
    if cron:
        return CronTrigger.from_crontab(cron, timezone="UTC")

    start = datetime.now(timezone.utc) + timedelta(seconds=initial_delay)
    return IntervalTrigger(seconds=fixed_delay, start_date=start, timezone="UTC")


class PollTrigger:
    """Periodically invokes a poll callable, one run at a time."""

    def __init__(self, schedule: BaseTrigger, misfire_grace_time: int = 30):
        self.schedule = schedule
        self.scheduler = BackgroundScheduler(
            job_defaults={
                "coalesce": True,  # Combine multiple pending executions
                "max_instances": 1,  # Prevent overlapping polls
                "misfire_grace_time": misfire_grace_time,
            },
            timezone="UTC",
        )
        self.scheduler.add_listener(
            self._job_listener,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollTrigger":
        schedule = build_schedule(
            settings.poll_interval_seconds(),
            settings.initial_delay_seconds(),
            settings.cron,
        )
        return cls(schedule)

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def _job_listener(self, event):
        if event.code == EVENT_JOB_MAX_INSTANCES:
            logger.debug("Poll still running, skipping this firing")
        elif isinstance(event, JobExecutionEvent) and event.exception:
            logger.error(f"Poll job failed: {event.exception}")

    def start(self, job: Callable[[], object]):
        """Schedule ``job`` and start the scheduler thread."""
        if self.scheduler.running:
            return

        self.scheduler.add_job(
            job,
            trigger=self.schedule,
            id=JOB_ID,
            name="File source poll",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.success(f"Poll trigger started: {self.schedule}")

    def stop(self, wait: bool = True):
        """Stop the scheduler, waiting for a running poll to finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
            logger.info("Poll trigger stopped")
