# smartsupply/services/sync_job.py
"""
Background customer sync policy.

The cache is resynced when it has never been synced or when the last sync
is older than the configured max age. A failed background sync is only
logged: the cached data keeps serving the portals.
"""
import logging
import time
from datetime import datetime
from typing import Callable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..core.config import Settings
from .customer_cache import CustomerCache
from .directory_client import DirectoryError

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "customer_sync_check"


def should_sync(last_sync: Optional[float], now: float, max_age: float) -> bool:
    if last_sync is None:
        return True
    return now - last_sync > max_age


async def run_sync_check(
    cache: CustomerCache,
    max_age: float,
    clock: Callable[[], float] = time.time,
) -> bool:
    """
    Run ONE policy check, syncing if warranted.
    Returns True only when a sync ran and succeeded.
    """
    if cache.loading or cache.syncing:
        return False
    if not should_sync(cache.last_sync, clock(), max_age):
        return False

    logger.info("Customer cache is stale, starting background sync")
    try:
        await cache.sync_customers()
    except DirectoryError as e:
        logger.warning(f"Background customer sync failed, cached data still in use: {e}")
        return False
    return True


def job_listener(event):
    """Log the outcome of each scheduled sync check."""
    if event.exception:
        logger.error(f"Job {event.job_id} failed: {event.exception}")
    else:
        logger.debug(f"Job {event.job_id} executed")


def build_sync_scheduler(cache: CustomerCache, settings: Settings) -> AsyncIOScheduler:
    """
    Scheduler with a single interval job checking whether the cache needs a
    resync. The first check fires immediately. Call .start() from inside a
    running event loop.
    """
    scheduler = AsyncIOScheduler(
        job_defaults={
            "coalesce": True,  # missed runs collapse into one
            "max_instances": 1,
        }
    )
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
    scheduler.add_job(
        run_sync_check,
        trigger=IntervalTrigger(seconds=settings.sync_check_interval_seconds),
        args=[cache, settings.sync_max_age_seconds],
        id=SYNC_JOB_ID,
        name="Customer cache sync check",
        next_run_time=datetime.now(),
        replace_existing=True,
    )
    logger.info(
        f"Customer sync check scheduled every {settings.sync_check_interval_seconds}s "
        f"(max age {settings.sync_max_age_seconds}s)"
    )
    return scheduler
