"""Scheduler service - fires check cycles and housekeeping on a fixed period.

This is the in-process periodic trigger. The same cycle can also be
triggered over HTTP (POST /api/internal/run-checks); the orchestrator's
in-flight guard rejects whichever trigger arrives while a cycle runs.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..database import async_session
from ..storage import Storage
from .orchestrator import CheckOrchestrator, check_orchestrator
from .rate_limiter import RateLimiter, rate_limiter

logger = logging.getLogger(__name__)


class SchedulerService:
    """Service for scheduling periodic check cycles and cleanup."""

    def __init__(
        self,
        orchestrator: Optional[CheckOrchestrator] = None,
        limiter: Optional[RateLimiter] = None,
        tick_seconds: int = 30,
        retention_days: int = 90,
    ):
        self.orchestrator = orchestrator or check_orchestrator
        self.limiter = limiter or rate_limiter
        self.tick_seconds = tick_seconds
        self.retention_days = retention_days
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._running = False

    def start(self):
        """Start the scheduler."""
        if self._running:
            return

        self.scheduler = AsyncIOScheduler()

        self.scheduler.add_job(
            self._run_checks,
            trigger=IntervalTrigger(seconds=self.tick_seconds),
            id="run_checks",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=self.tick_seconds,
            next_run_time=datetime.now(),
        )

        self.scheduler.add_job(
            self._cleanup,
            trigger=IntervalTrigger(hours=1),
            id="cleanup",
            replace_existing=True,
            max_instances=1,
        )

        self.scheduler.start()
        self._running = True
        logger.info(f"Scheduler started (tick={self.tick_seconds}s, retention={self.retention_days}d)")

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped")

    async def _run_checks(self):
        """Run one cycle. A failed cycle is logged and retried on the next tick."""
        try:
            summary = await self.orchestrator.run_cycle()
        except Exception:
            logger.exception("Check cycle failed")
            return

        if summary.busy:
            logger.info("Skipped tick: previous check cycle still running")

    async def _cleanup(self):
        """Delete old history and evict expired rate limit windows."""
        evicted = self.limiter.sweep()
        if evicted:
            logger.info(f"Evicted {evicted} expired rate limit windows")

        cutoff = datetime.utcnow() - timedelta(days=self.retention_days)
        try:
            async with async_session() as session:
                storage = Storage(session)
                deleted = await storage.purge_older_than(cutoff)
                await storage.commit()
            logger.info(f"Cleaned up {deleted} records older than {self.retention_days} days")
        except SQLAlchemyError:
            logger.exception("Error cleaning up old records")


# Global instance
scheduler_service = SchedulerService(
    tick_seconds=settings.scheduler_tick_seconds,
    retention_days=settings.retention_days,
)
