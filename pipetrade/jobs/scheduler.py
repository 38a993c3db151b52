"""
APScheduler configuration.

Background jobs run inside the API process on an AsyncIOScheduler; each
job opens its own database session through get_db_session().
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from pipetrade.config import settings

logger = logging.getLogger(__name__)

# Single process, so jobs live in memory and are re-registered on startup
scheduler = AsyncIOScheduler(
    jobstores={'default': MemoryJobStore()},
    executors={'default': AsyncIOExecutor()},
    job_defaults={
        'coalesce': True,
        'max_instances': 1,
        'misfire_grace_time': 60,
    },
    timezone='Asia/Kolkata'
)


async def run_quotation_expiry():
    """Scheduler entry point for the expiry job. Failures are logged, the next run still fires."""
    from pipetrade.jobs.quotation_jobs import expire_quotations

    try:
        expired = await expire_quotations()
    except Exception:
        logger.exception("Quotation expiry job failed")
        return
    logger.debug("Quotation expiry job finished: %d expired", expired)


def start_scheduler():
    """Register jobs and start the scheduler."""
    if scheduler.running:
        return

    scheduler.add_job(
        run_quotation_expiry,
        'interval',
        minutes=settings.QUOTATION_EXPIRY_CHECK_MINUTES,
        id='expire_quotations',
        name='Expire Lapsed Quotations',
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Background scheduler started with %d job(s)", len(scheduler.get_jobs()))


def shutdown_scheduler():
    """Stop the scheduler without waiting for running jobs."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
