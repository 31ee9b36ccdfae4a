# src/app/core/scheduler.py

import logging
from datetime import datetime
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings

logger = logging.getLogger(__name__)

job_status = {
    "last_run_time": None,
    "last_run_status": "Not Started",
    "last_run_error": None,
    "last_outbreak_count": None,
}

async def scheduled_outbreak_scan():
    """
    Unfiltered outbreak scan run by the scheduler. Results land in the shared
    result cache, so on-demand requests inside the TTL reuse them.
    """
    from app.services.outbreak_service import get_outbreak_service, OutbreakDetectionError

    logger.info("Starting scheduled outbreak scan...")
    job_status["last_run_status"] = "Running"

    try:
        service = get_outbreak_service()
        response = await service.run_scan(
            auto_notify=settings.OUTBREAK_SCHEDULED_AUTO_NOTIFY,
            timeout=settings.OUTBREAK_SCAN_TIMEOUT_SECONDS,
        )

        logger.info(f"Scheduled outbreak scan finished: {response.metadata.total_outbreaks} outbreaks.")
        job_status["last_run_status"] = "Success"
        job_status["last_run_error"] = None
        job_status["last_outbreak_count"] = response.metadata.total_outbreaks

    except (OutbreakDetectionError, Exception) as e:
        logger.error(f"Scheduled outbreak scan failed: {e}", exc_info=True)
        job_status["last_run_status"] = "Failed"
        job_status["last_run_error"] = str(e)

    finally:
        job_status["last_run_time"] = datetime.now()

scheduler = AsyncIOScheduler(timezone=settings.SCHEDULER_TIMEZONE)

OUTBREAK_SCAN_JOB_ID = "outbreak_scan_job"

def next_outbreak_scan_time() -> Optional[datetime]:
    job = scheduler.get_job(OUTBREAK_SCAN_JOB_ID)
    return job.next_run_time if job is not None else None

def setup_scheduler():
    """
    Registers the periodic outbreak scan and starts the scheduler. With
    OUTBREAK_SCAN_ON_STARTUP the first scan runs right away instead of one
    interval later.
    """
    logger.info(
        f"Configuring the scheduler (every {settings.OUTBREAK_SCAN_INTERVAL_MINUTES} min, "
        f"timezone {settings.SCHEDULER_TIMEZONE})..."
    )

    job_options = {}
    if settings.OUTBREAK_SCAN_ON_STARTUP:
        job_options["next_run_time"] = datetime.now(scheduler.timezone)

    scheduler.add_job(
        scheduled_outbreak_scan,
        trigger=IntervalTrigger(minutes=settings.OUTBREAK_SCAN_INTERVAL_MINUTES),
        id=OUTBREAK_SCAN_JOB_ID,
        name="Outbreak detection scan",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **job_options,
    )

    try:
        scheduler.start()
        logger.info("Scheduler started.")
    except Exception as e:
        logger.error(f"Could not start the scheduler: {e}")
