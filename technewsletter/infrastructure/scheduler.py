"""Scheduler management: one owned, replaceable newsletter schedule"""

from typing import Any, Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

NEWSLETTER_JOB_ID = "newsletter_job"


class SchedulerManager:
    """
    Owns the APScheduler instance and the single newsletter job.

    The manager is created by the application and handed to whoever needs to
    change the schedule; `reconfigure` is the only way to replace the job, so
    at most one schedule is ever live.
    """

    def __init__(self, timezone: str = "America/Sao_Paulo"):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.timezone = timezone
        self.cron: Optional[str] = None

    def create_scheduler(self) -> AsyncIOScheduler:
        """Create the scheduler instance, shutting down any previous one."""
        if self.scheduler is not None and self.scheduler.running:
            logger.warning("[scheduler] A scheduler is already running, shutting it down...")
            try:
                self.scheduler.shutdown(wait=False)
            except Exception as e:  # noqa: BLE001
                logger.warning(f"[scheduler] Error while shutting down the old scheduler: {e}")

        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        logger.info("[scheduler] Scheduler instance created")
        return self.scheduler

    def reconfigure(
        self,
        func: Callable,
        cron: str,
        timezone: Optional[str] = None,
        job_id: str = NEWSLETTER_JOB_ID,
        **kwargs: Any,
    ) -> None:
        """
        Replace the newsletter job with one firing on `cron` in `timezone`.

        The old job is removed before the new one is added.

        Raises:
            ValueError: when `cron` is not a valid five-field expression
        """
        if self.scheduler is None:
            raise RuntimeError("Scheduler not initialized, call create_scheduler() first")

        tz = timezone or self.timezone
        trigger = CronTrigger.from_crontab(cron, timezone=tz)

        if self.scheduler.get_job(job_id) is not None:
            self.scheduler.remove_job(job_id)
            logger.info(f"[scheduler] Previous job {job_id} stopped ({self.cron}, {self.timezone})")

        self.scheduler.add_job(
            func,
            trigger=trigger,
            id=job_id,
            replace_existing=True,
            **kwargs,
        )
        self.cron = cron
        self.timezone = tz
        logger.info(f"[scheduler] Job {job_id} scheduled: {cron} ({tz})")

    def start(self) -> None:
        """Start the scheduler and log the upcoming runs."""
        if self.scheduler is None:
            raise RuntimeError("Scheduler not initialized, call create_scheduler() first")

        self.scheduler.start()
        logger.info("[scheduler] Scheduler started, waiting for triggers...")

        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            if next_run:
                logger.info(f"[scheduler]   - {job.id}: next run at {next_run}")
            else:
                logger.info(f"[scheduler]   - {job.id}: added (next run pending)")

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler is not None:
            try:
                if self.scheduler.running:
                    self.scheduler.shutdown(wait=wait)
                    logger.info("[scheduler] Scheduler shut down")
                else:
                    logger.info("[scheduler] Scheduler not running, nothing to shut down")
            except Exception as e:  # noqa: BLE001
                logger.error(f"[scheduler] Error while shutting down the scheduler: {e}")
            finally:
                self.scheduler = None

    def get_job(self, job_id: str = NEWSLETTER_JOB_ID) -> Optional[Any]:
        if self.scheduler is None:
            return None
        return self.scheduler.get_job(job_id)

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running
