"""Reminder Scheduler - Periodic due-reminder sweep

A single APScheduler interval job runs ReminderService.evaluate_due_reminders.
Overlapping runs are prevented by max_instances=1; per-reminder races with
API requests are settled by the compare-and-swap writes in the service.
"""
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import settings
from ..services.reminder_service import ReminderService
from ..utils.logger import correlation_scope, get_logger
from ..utils.idgen import generate_correlation_id
from ..utils.time import utc_now

logger = get_logger(__name__)


class ReminderScheduler:
    """Runs the reminder sweep on a fixed interval"""

    JOB_ID = "evaluate_due_reminders"

    def __init__(self, interval_seconds: Optional[int] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.interval_seconds = interval_seconds or settings.reminder_sweep_interval_seconds
        self._service: Optional[ReminderService] = None
        self._is_running = False
        self._sweep_count = 0

    @property
    def service(self) -> ReminderService:
        if self._service is None:
            self._service = ReminderService()
        return self._service

    def start(self) -> None:
        """Start the scheduler"""
        if self._is_running:
            logger.warning("Reminder scheduler already running")
            return

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=self.JOB_ID,
            name="Evaluate due reminders",
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()
        self._is_running = True
        logger.info(
            f"Reminder scheduler started (every {self.interval_seconds}s)",
            extra={"action": "scheduler_start"}
        )

    def stop(self) -> None:
        """Stop the scheduler"""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self._is_running = False
            logger.info("Reminder scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._is_running

    async def run_sweep(self) -> int:
        """
        One sweep pass with its own correlation id

        Returns:
            Number of reminders fired
        """
        with correlation_scope(generate_correlation_id()):
            start_time = utc_now()
            try:
                fired = self.service.evaluate_due_reminders(start_time)
            except Exception as e:
                # Keep the job alive; the next interval retries
                logger.error(
                    f"Error in reminder sweep: {e}",
                    extra={"action": "sweep", "error_code": type(e).__name__},
                    exc_info=True
                )
                return 0

            self._sweep_count += 1
            duration_ms = (utc_now() - start_time).total_seconds() * 1000
            logger.debug(
                f"Reminder sweep {self._sweep_count} done in {duration_ms:.0f}ms, fired {len(fired)}",
                extra={"action": "sweep"}
            )
            return len(fired)


# Global scheduler instance
_scheduler: Optional[ReminderScheduler] = None


def get_scheduler() -> ReminderScheduler:
    """Get or create scheduler instance"""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReminderScheduler()
    return _scheduler


def start_scheduler() -> None:
    """Start the global scheduler"""
    get_scheduler().start()


def stop_scheduler() -> None:
    """Stop the global scheduler"""
    global _scheduler
    if _scheduler:
        _scheduler.stop()
        _scheduler = None
