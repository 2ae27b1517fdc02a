"""
Grab Scheduler

Runs the listing grab on the configured cron schedule, and optionally once
right after startup so a fresh deployment serves a guide without waiting
for the first cron tick.
"""
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from mitv_epg.config import settings
from mitv_epg.services.grab_service import grab_and_write


logger = logging.getLogger(__name__)

GRAB_JOB_ID = "listing_grab"
STARTUP_JOB_ID = "listing_grab_startup"


class EPGScheduler:
    """Cron driven listing grabs on an AsyncIOScheduler"""

    def __init__(self):
        self.scheduler: AsyncIOScheduler | None = None

    async def _grab_job(self) -> None:
        logger.info("Scheduled listing grab triggered")
        try:
            result = await grab_and_write()
        except Exception as e:
            logger.error(f"Exception in scheduled grab: {e}", exc_info=True)
            return

        if "error" in result:
            logger.error(f"Scheduled grab failed: {result['error']}")
        elif result.get("status") == "skipped":
            logger.info("Scheduled grab skipped: %s", result.get("message"))
        else:
            logger.info(
                "Scheduled grab finished: %s ok, %s partial, %s failed, %s programmes",
                result.get("channels_succeeded", 0),
                result.get("channels_partial", 0),
                result.get("channels_failed", 0),
                result.get("programs_written", 0),
            )

    def start(self) -> None:
        """Start the scheduler with the cron job (and the startup run if enabled)"""
        if self.scheduler and self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        try:
            trigger = CronTrigger.from_crontab(settings.grab_cron, timezone="UTC")
        except (ValueError, KeyError) as exc:
            logger.error("Invalid cron expression '%s': %s", settings.grab_cron, exc)
            raise

        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.scheduler.add_job(
            self._grab_job,
            trigger=trigger,
            id=GRAB_JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.grab_misfire_grace_sec,
        )
        if settings.grab_on_startup:
            self.scheduler.add_job(
                self._grab_job,
                id=STARTUP_JOB_ID,
                next_run_time=datetime.now(timezone.utc),
            )

        self.scheduler.start()
        next_time = self.get_next_run_time()
        logger.info(
            "Scheduler started (cron '%s'). Next grab: %s",
            settings.grab_cron,
            next_time.isoformat() if next_time else "unknown",
        )

    def shutdown(self) -> None:
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        self.scheduler = None

    def get_next_run_time(self) -> datetime | None:
        """Next cron-triggered grab, or None when the scheduler is not running"""
        if not self.scheduler:
            return None
        job = self.scheduler.get_job(GRAB_JOB_ID)
        return job.next_run_time if job else None


epg_scheduler = EPGScheduler()
