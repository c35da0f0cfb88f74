"""
Application Scheduler - APScheduler Integration

Runs the incremental Telegram sync on a fixed interval inside the API
process when SCHEDULER_ENABLED is set. External cron callers use the
HTTP trigger instead.
"""

from typing import Any, Dict

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings

logger = structlog.get_logger(__name__)

SYNC_JOB_ID = "telegram_sync"

# Global scheduler instance
scheduler = AsyncIOScheduler(
    timezone="UTC",
    job_defaults={
        "coalesce": True,  # Combine missed executions into one
        "max_instances": 1,  # Never overlap two runs
        "misfire_grace_time": 60,
    },
)


def scheduler_listener(event):
    """Log executed/failed jobs."""
    if event.exception:
        logger.error("scheduled_job_failed", job_id=event.job_id, error=str(event.exception))
    else:
        logger.info("scheduled_job_executed", job_id=event.job_id)


scheduler.add_listener(scheduler_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)


async def run_telegram_sync():
    """Scheduled task: one incremental sync run."""
    from app.services.sync_window import SyncMode
    from app.services.telegram_sync_service import get_sync_service

    summary = await get_sync_service().run(SyncMode.INCREMENTAL)
    logger.info(
        "scheduled_sync_finished",
        success=summary.success,
        chats_synced=summary.chats_synced,
        messages_synced=summary.messages_synced,
        duration_ms=summary.duration_ms,
        error=summary.error,
    )
    return summary


def start_scheduler() -> None:
    """Register jobs and start the scheduler if enabled."""
    if not settings.SCHEDULER_ENABLED:
        logger.info("scheduler_disabled")
        return

    scheduler.add_job(
        run_telegram_sync,
        trigger=IntervalTrigger(seconds=settings.SYNC_INTERVAL_SECONDS),
        id=SYNC_JOB_ID,
        name="Telegram incremental sync",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("scheduler_started", interval_seconds=settings.SYNC_INTERVAL_SECONDS)


def stop_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")


def get_scheduler_status() -> Dict[str, Any]:
    """Running flag and next run times of registered jobs."""
    return {
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            }
            for job in scheduler.get_jobs()
        ],
    }
