"""
Background job scheduler for periodic price lookup statistics logging.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from cache_service import cache_service
from config import settings

logger = logging.getLogger("price_manager.jobs")


class BackgroundJobService:
    """Service for managing background tasks"""

    def __init__(self):
        self.scheduler = AsyncIOScheduler()

    def start(self):
        """Start the background job scheduler"""
        self.scheduler.add_job(
            func=self.log_lookup_stats,
            trigger=IntervalTrigger(minutes=settings.STATS_LOG_INTERVAL_MINUTES),
            id='log_lookup_stats',
            name='Log price lookup statistics',
            replace_existing=True
        )

        self.scheduler.start()
        logger.info("Background job scheduler started")

    def stop(self):
        """Stop the background job scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
            logger.info("Background job scheduler stopped")

    async def log_lookup_stats(self):
        """
        Log price lookup statistics: volume, hit rates and latency.
        Failures are logged and never stop the scheduler.
        """
        try:
            stats = await cache_service.get_lookup_stats()

            if stats.total_requests == 0:
                logger.info("Price lookups: no requests recorded")
                return

            found_rate = (stats.found / stats.total_requests) * 100
            cache_hit_rate = (stats.cache_hits / stats.total_requests) * 100
            logger.info(
                "Price lookups: total=%d found=%.2f%% not_found=%d cache_hits=%.2f%% avg_latency=%.2fms",
                stats.total_requests, found_rate, stats.not_found,
                cache_hit_rate, stats.avg_latency_ms
            )
            if stats.last_not_found:
                logger.info("Last lookup without price: %s", stats.last_not_found)

        except Exception:
            logger.exception("Lookup stats logging job failed")


# Global background job service instance
background_job_service = BackgroundJobService()
