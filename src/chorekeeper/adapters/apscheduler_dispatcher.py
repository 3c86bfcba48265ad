"""APScheduler dispatcher adapter - fires reminders at their trigger time."""

import logging
from datetime import datetime

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from chorekeeper.core.errors import DispatcherFailure
from chorekeeper.ports.dispatcher import Notifier

logger = logging.getLogger(__name__)

JOB_PREFIX = "reminder:"


class APSchedulerDispatcher:
    """
    Background-scheduler dispatcher.

    Implements Dispatcher protocol. Each reminder is a one-shot date job
    whose id is derived from the item id, so registering again replaces it.
    """

    def __init__(
        self,
        notifier: Notifier,
        timezone: str = "America/Toronto",
        scheduler: BackgroundScheduler | None = None,
        misfire_grace_time: int = 300,
    ):
        self.notifier = notifier
        self.timezone = timezone
        self.scheduler = scheduler or BackgroundScheduler(timezone=timezone)
        self.misfire_grace_time = misfire_grace_time

    def request_authorization(self) -> bool:
        """Start the scheduler and check the delivery channel."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Reminder scheduler started")
        return self.notifier.authorize()

    def _deliver(self, item_id: str, title: str, body: str) -> None:
        # Errors raised here are logged by APScheduler's job executor
        logger.info(f"Delivering reminder {item_id}")
        self.notifier.deliver(title, body)

    def register(self, item_id: str, trigger_at: datetime, title: str, body: str) -> None:
        try:
            self.scheduler.add_job(
                self._deliver,
                DateTrigger(run_date=trigger_at, timezone=self.timezone),
                args=[item_id, title, body],
                id=f"{JOB_PREFIX}{item_id}",
                name=title,
                replace_existing=True,
                misfire_grace_time=self.misfire_grace_time,
            )
        except (ValueError, TypeError, LookupError) as e:
            logger.error(f"Failed to schedule reminder {item_id}: {e}")
            raise DispatcherFailure(f"Could not schedule reminder {item_id}: {e}") from e
        logger.debug(f"Scheduled reminder {item_id} at {trigger_at}")

    def unregister(self, item_id: str) -> None:
        try:
            self.scheduler.remove_job(f"{JOB_PREFIX}{item_id}")
            logger.debug(f"Canceled reminder {item_id}")
        except JobLookupError:
            pass

    def pending_ids(self) -> list[str]:
        return [
            job.id.removeprefix(JOB_PREFIX)
            for job in self.scheduler.get_jobs()
            if job.id.startswith(JOB_PREFIX)
        ]

    def add_interval_job(self, func, seconds: int, job_id: str) -> None:
        """Run func every N seconds alongside the reminders."""
        self.scheduler.add_job(func, "interval", seconds=seconds, id=job_id, replace_existing=True)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
