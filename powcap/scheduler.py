"""Background scheduler for periodic cleanup of expired challenges and tokens."""

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from powcap.config import settings
from powcap.services.cap import get_cap

logger = structlog.get_logger()

scheduler: AsyncIOScheduler | None = None


async def cleanup_job() -> None:
    """Run one cleanup pass against the configured storage."""
    try:
        report = await get_cap().cleanup()
        if report.challenges_deleted or report.tokens_deleted:
            logger.info(
                "cleanup_job_cleared",
                challenges=report.challenges_deleted,
                tokens=report.tokens_deleted,
            )
    except Exception as e:
        logger.error("cleanup_job_failed", error=str(e))


def start_scheduler() -> None:
    """Start the cleanup scheduler on the running event loop."""
    global scheduler
    # A fresh scheduler per start; AsyncIOScheduler binds to the loop it starts on
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        cleanup_job,
        trigger=IntervalTrigger(minutes=settings.cleanup_interval_minutes),
        id="cleanup_expired",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("scheduler_started", interval_minutes=settings.cleanup_interval_minutes)


def shutdown_scheduler() -> None:
    """Shutdown the scheduler without waiting for a running job."""
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")
    scheduler = None
