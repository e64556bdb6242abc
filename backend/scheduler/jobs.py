from __future__ import annotations

import asyncio
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..analysis.pipeline import run_analysis
from ..storage import store
from ..tracking.tracker import cleanup_old_data
from .config import DEFAULT_SCHEDULER_CONFIG, SchedulerConfig

logger = logging.getLogger(__name__)


async def run_due_updates(config: SchedulerConfig = DEFAULT_SCHEDULER_CONFIG) -> dict[str, list[str]]:
    """
    Re-analyse every listing whose snapshot is due, one at a time.

    A failure on one listing is logged and the loop moves on to the next.
    """
    due = store.get_listings_due()
    logger.info("Found %d listings to update", len(due))

    updated: list[str] = []
    failed: list[str] = []
    for i, listing_id in enumerate(due):
        if i:
            await asyncio.sleep(config.listing_delay)
        try:
            await run_analysis(listing_id)
        except Exception:
            logger.exception("Failed to update %s", listing_id)
            failed.append(listing_id)
            continue
        logger.info("Updated %s", listing_id)
        updated.append(listing_id)

    return {"updated": updated, "failed": failed}


def _update_job(config: SchedulerConfig) -> None:
    logger.info("Running scheduled competitor analysis updates")
    asyncio.run(run_due_updates(config))


def _cleanup_job(config: SchedulerConfig) -> None:
    logger.info("Running daily data cleanup")
    cleanup_old_data(config)


def build_scheduler(config: SchedulerConfig = DEFAULT_SCHEDULER_CONFIG) -> BackgroundScheduler:
    """Create (but do not start) the background scheduler with both cron jobs."""
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        _update_job,
        CronTrigger.from_crontab(config.update_cron, timezone="UTC"),
        args=[config],
        id="competitor-updates",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        _cleanup_job,
        CronTrigger.from_crontab(config.cleanup_cron, timezone="UTC"),
        args=[config],
        id="daily-cleanup",
        max_instances=1,
        coalesce=True,
    )
    return scheduler
