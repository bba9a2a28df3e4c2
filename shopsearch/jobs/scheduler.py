"""APScheduler-based maintenance for search analytics.

Runs two periodic jobs against the keyword table, each in its own session:

- cleanup: reset weekly counters and trending flags of keywords that have
  been silent for 30 days
- refresh: recompute derived popularity and trending scores so they decay
  even for keywords nobody searches any more
"""

from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

import structlog
from apscheduler.job import Job
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shopsearch.config import settings
from shopsearch.services.analytics_service import AnalyticsService
from shopsearch.services.cache_service import CacheService, invalidate_keyword_cache

logger = structlog.get_logger(__name__)

CLEANUP_JOB_ID = "analytics_cleanup"
REFRESH_JOB_ID = "analytics_refresh"


class AnalyticsScheduler:
    """Manages periodic search-analytics maintenance jobs.

    Job failures are logged and never stop the scheduler.
    """

    def __init__(
        self,
        db_session_factory: async_sessionmaker[AsyncSession],
        cache: Optional[CacheService] = None,
    ):
        """Initialize analytics scheduler.

        Args:
            db_session_factory: Async session factory for database access
            cache: Cache whose keyword rankings are dropped after each job
        """
        self.db_session_factory = db_session_factory
        self.cache = cache
        self.scheduler = AsyncIOScheduler(timezone="UTC")
        self.logger = logger.bind(service="analytics_scheduler")

    def start(self) -> None:
        """Register both maintenance jobs and start the scheduler."""
        if self.scheduler.running:
            self.logger.warning("scheduler_already_running")
            return

        self._add_job(
            CLEANUP_JOB_ID,
            self.run_cleanup,
            IntervalTrigger(hours=settings.ANALYTICS_CLEANUP_INTERVAL_HOURS, timezone="UTC"),
        )
        self._add_job(
            REFRESH_JOB_ID,
            self.run_refresh,
            IntervalTrigger(minutes=settings.ANALYTICS_REFRESH_INTERVAL_MINUTES, timezone="UTC"),
        )
        self.scheduler.start()
        self.logger.info("scheduler_started", jobs=[job.id for job in self.scheduler.get_jobs()])

    def stop(self) -> None:
        """Stop the scheduler, waiting for running jobs to finish."""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            self.logger.info("scheduler_stopped")
        else:
            self.logger.warning("scheduler_not_running")

    def _add_job(self, job_id: str, func: Callable[[], Awaitable[int]], trigger: IntervalTrigger) -> Job:
        job = self.scheduler.add_job(
            func=self._run_wrapper,
            trigger=trigger,
            args=[job_id, func],
            id=job_id,
            name=job_id.replace("_", " ").title(),
            replace_existing=True,
            max_instances=1,
        )
        self.logger.info(
            "maintenance_job_added",
            job_id=job_id,
            next_run=job.next_run_time.isoformat() if job.next_run_time else None,
        )
        return job

    async def _run_wrapper(self, job_id: str, func: Callable[[], Awaitable[int]]) -> None:
        """Entry point APScheduler calls; keeps job failures away from the scheduler."""
        started = datetime.now(timezone.utc)
        try:
            touched = await func()
        except Exception as e:
            self.logger.error("maintenance_job_failed", job_id=job_id, error=str(e), exc_info=True)
            return

        await invalidate_keyword_cache(self.cache)
        self.logger.info(
            "maintenance_job_completed",
            job_id=job_id,
            keywords=touched,
            duration_seconds=(datetime.now(timezone.utc) - started).total_seconds(),
        )

    async def run_cleanup(self) -> int:
        """Reset stale keywords; returns the number of records reset."""
        async with self.db_session_factory() as db:
            return await AnalyticsService(db).cleanup_old_searches()

    async def run_refresh(self) -> int:
        """Recompute derived keyword scores; returns the number refreshed."""
        async with self.db_session_factory() as db:
            return await AnalyticsService(db).refresh_derived_scores()
