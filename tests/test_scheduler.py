"""Tests for scheduled jobs and host sampling."""

from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from stackwatch.models import CheckResult, HostStats
from stackwatch.services.host_stats import HostSnapshot, HostStatsService
from stackwatch.services.orchestrator import CycleSummary
from stackwatch.services.rate_limiter import RateLimiter
from stackwatch.services.scheduler import SchedulerService


class TestRunChecksJob:
    @pytest.mark.asyncio
    async def test_failed_cycle_is_logged_not_raised(self, caplog):
        orchestrator = AsyncMock()
        orchestrator.run_cycle.side_effect = OperationalError("SELECT", {}, Exception("down"))
        service = SchedulerService(orchestrator=orchestrator, limiter=RateLimiter())

        await service._run_checks()

        assert "Check cycle failed" in caplog.text

    @pytest.mark.asyncio
    async def test_busy_tick_is_skipped(self, caplog):
        caplog.set_level("INFO")
        orchestrator = AsyncMock()
        orchestrator.run_cycle.return_value = CycleSummary(checked=0, total_enabled=0, busy=True)
        service = SchedulerService(orchestrator=orchestrator, limiter=RateLimiter())

        await service._run_checks()

        assert "still running" in caplog.text


class TestCleanupJob:
    @pytest.mark.asyncio
    async def test_purges_history_older_than_retention(self, session, session_factory, make_monitor):
        monitor = await make_monitor()
        now = datetime.utcnow()
        session.add_all([
            CheckResult(monitor_id=monitor.id, ok=True, checked_at=now - timedelta(days=100)),
            CheckResult(monitor_id=monitor.id, ok=True, checked_at=now - timedelta(days=1)),
            HostStats(checked_at=now - timedelta(days=100)),
            HostStats(checked_at=now),
        ])
        await session.commit()

        limiter = RateLimiter()
        service = SchedulerService(orchestrator=AsyncMock(), limiter=limiter, retention_days=90)
        with patch("stackwatch.services.scheduler.async_session", session_factory):
            await service._cleanup()

        async with session_factory() as s:
            results = (await s.execute(select(func.count()).select_from(CheckResult))).scalar_one()
            stats = (await s.execute(select(func.count()).select_from(HostStats))).scalar_one()
        assert results == 1
        assert stats == 1

    @pytest.mark.asyncio
    async def test_evicts_expired_rate_limit_windows(self, session_factory):
        now = [0.0]
        limiter = RateLimiter(clock=lambda: now[0])
        limiter.take("internal:10.0.0.1", 5, 60_000)
        now[0] = 120_000.0

        service = SchedulerService(orchestrator=AsyncMock(), limiter=limiter)
        with patch("stackwatch.services.scheduler.async_session", session_factory):
            await service._cleanup()

        assert len(limiter) == 0


class TestHostStats:
    def test_unreadable_sources_degrade_to_zero(self):
        with patch("stackwatch.services.host_stats.psutil") as fake_psutil:
            fake_psutil.cpu_percent.side_effect = RuntimeError("no /proc")
            fake_psutil.virtual_memory.side_effect = RuntimeError("no /proc")
            fake_psutil.disk_usage.side_effect = PermissionError("denied")
            fake_psutil.getloadavg.side_effect = OSError("unsupported")
            fake_psutil.net_io_counters.side_effect = RuntimeError("no /proc")
            fake_psutil.boot_time.side_effect = RuntimeError("no /proc")

            snapshot = HostStatsService().sample_blocking()

        assert snapshot.cpu_percent == 0.0
        assert snapshot.mem_used_mb == 0
        assert snapshot.disk_used_percent == 0.0
        assert (snapshot.load1, snapshot.load5, snapshot.load15) == (0.0, 0.0, 0.0)
        assert (snapshot.net_rx_bytes, snapshot.net_tx_bytes) == (0, 0)
        assert snapshot.uptime_sec == 0

    def test_loopback_traffic_is_excluded(self):
        class Counters:
            def __init__(self, recv, sent):
                self.bytes_recv = recv
                self.bytes_sent = sent

        with patch("stackwatch.services.host_stats.psutil.net_io_counters", return_value={
            "lo": Counters(1_000, 1_000),
            "eth0": Counters(300, 200),
            "wlan0": Counters(20, 10),
        }):
            snapshot = HostStatsService().sample_blocking()

        assert snapshot.net_rx_bytes == 320
        assert snapshot.net_tx_bytes == 210

    @pytest.mark.asyncio
    async def test_sample_snapshot_runs_off_loop(self):
        service = HostStatsService()
        expected = HostSnapshot(cpu_percent=1.0)
        with patch.object(service, "sample_blocking", return_value=expected):
            assert await service.sample_snapshot() is expected
