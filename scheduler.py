# scheduler.py
import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from config import SCHEDULER_CRON
from database import SessionLocal
from notifications import check_expenses, sweep_due_reminders

logger = logging.getLogger(__name__)


class NotificationScheduler:
    """Runs the expense check and the reminder sweep on a cron cadence.

    A tick that starts while the previous one is still running is skipped,
    so a slow dispatch can never make two sweeps pick up the same reminder.
    """

    JOB_ID = "notification-tick"

    def __init__(
        self,
        cron=SCHEDULER_CRON,
        session_factory=SessionLocal,
        dispatcher=None,
        destination=None,
        scheduler=None,
    ):
        self.cron = cron
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.destination = destination
        self.scheduler = scheduler or AsyncIOScheduler()
        self._tick_in_progress = False

    @property
    def tick_in_progress(self):
        return self._tick_in_progress

    async def tick(self):
        if self._tick_in_progress:
            logger.warning("Previous tick still running, skipping this one")
            return None

        self._tick_in_progress = True
        try:
            expense_result, reminder_result = await asyncio.gather(
                check_expenses(
                    self.session_factory, self.dispatcher, self.destination
                ),
                sweep_due_reminders(
                    self.session_factory, self.dispatcher, self.destination
                ),
                return_exceptions=True,
            )
            for name, outcome in (
                ("expense check", expense_result),
                ("reminder sweep", reminder_result),
            ):
                if isinstance(outcome, BaseException):
                    logger.error(
                        "Error during %s",
                        name,
                        exc_info=(type(outcome), outcome, outcome.__traceback__),
                    )
            return expense_result, reminder_result
        except Exception:
            logger.exception("Error during cron job")
            return None
        finally:
            self._tick_in_progress = False

    def start(self):
        self.scheduler.add_job(
            self.tick,
            CronTrigger.from_crontab(self.cron),
            id=self.JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info("Notification scheduler started (%s)", self.cron)

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Notification scheduler stopped")
