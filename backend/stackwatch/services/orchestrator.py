"""Check orchestrator - runs one check cycle over every enabled monitor.

One call to ``run_cycle`` is one cycle:

1. load enabled monitors (ascending id)
2. record a host stats snapshot
3. skip monitors whose last result is younger than their interval
4. probe each due monitor, one at a time
5. store the outcome
6. fold it into the monitor's streaks and debounced state
7. open or close an incident when the state flips
8. commit the outcome, the new state and any incident change as one unit

Probe failures are data. Database errors are not: they abort the cycle
and propagate to whoever triggered it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import settings
from ..database import async_session
from ..models import Monitor
from ..storage import Storage
from .checker import CheckerService, checker_service
from .health import HealthSnapshot, HealthState, Thresholds, Transition, evaluate
from .host_stats import HostStatsService, host_stats_service
from .incidents import IncidentManager, incident_manager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleSummary:
    """What a cycle did. busy=True means it was rejected because one was already running."""
    checked: int
    total_enabled: int
    busy: bool = False


class CheckOrchestrator:
    """Drives check cycles. At most one cycle runs at a time per instance."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        checker: Optional[CheckerService] = None,
        incidents: Optional[IncidentManager] = None,
        host_stats: Optional[HostStatsService] = None,
        thresholds: Optional[Thresholds] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.session_factory = session_factory or async_session
        self.checker = checker or checker_service
        self.incidents = incidents or incident_manager
        self.host_stats = host_stats or host_stats_service
        self.thresholds = thresholds or Thresholds(
            fail=settings.check_fail_threshold,
            recovery=settings.check_recovery_threshold,
        )
        self._clock = clock
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def run_cycle(self) -> CycleSummary:
        """Run one cycle, or return busy immediately if one is already running."""
        # Test-and-set with no await in between, so it is atomic on the event loop
        if self._in_flight:
            logger.warning("Check cycle already in progress, rejecting overlapping trigger")
            return CycleSummary(checked=0, total_enabled=0, busy=True)

        self._in_flight = True
        try:
            return await self._run_cycle()
        finally:
            self._in_flight = False

    async def _run_cycle(self) -> CycleSummary:
        async with self.session_factory() as session:
            storage = Storage(session)

            monitors = await storage.list_enabled_monitors()

            snapshot = await self.host_stats.sample_snapshot()
            await storage.insert_stats_snapshot(snapshot)
            await storage.commit()

            checked = 0
            for monitor in monitors:
                if not await self._is_due(storage, monitor):
                    continue
                await self._check_monitor(storage, monitor)
                checked += 1

        logger.info(f"Check cycle complete: {checked}/{len(monitors)} monitors checked")
        return CycleSummary(checked=checked, total_enabled=len(monitors))

    async def _is_due(self, storage: Storage, monitor: Monitor) -> bool:
        """Due if never checked, or the interval has fully elapsed since the last result."""
        last_checked = await storage.last_check_result_time(monitor.id)
        if last_checked is None:
            return True

        elapsed = (self._clock() - last_checked).total_seconds()
        return elapsed >= monitor.interval_sec

    async def _check_monitor(self, storage: Storage, monitor: Monitor):
        """Probe one monitor, store the outcome, and act on any state transition."""
        outcome = await self.checker.check(
            monitor.type,
            monitor.target,
            monitor.timeout_ms,
            monitor.expected_status,
        )
        await storage.insert_check_result(monitor.id, outcome)

        previous = HealthSnapshot(
            fail_streak=monitor.fail_streak or 0,
            ok_streak=monitor.ok_streak or 0,
            last_state_ok=monitor.last_state_ok,
            state=HealthState(monitor.health_state or HealthState.UNKNOWN.value),
        )
        update = evaluate(previous, outcome.ok, self.thresholds)
        current = update.snapshot

        await storage.update_monitor_streaks(
            monitor.id,
            current.fail_streak,
            current.ok_streak,
            current.last_state_ok,
            current.state.value,
        )

        if outcome.ok:
            logger.debug(f"Monitor {monitor.name}: up ({outcome.latency_ms}ms)")
        else:
            logger.debug(f"Monitor {monitor.name}: down - {outcome.error}")

        # The new state commits together with the incident change, so a
        # failed incident write rolls the transition back and the next
        # cycle fires it again.
        if update.transition == Transition.WENT_DOWN:
            await self.incidents.open_if_needed(storage, monitor)
        elif update.transition == Transition.WENT_UP:
            await self.incidents.close_if_needed(storage, monitor)

        await storage.commit()


# Global instance
check_orchestrator = CheckOrchestrator()
