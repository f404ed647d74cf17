"""Host statistics sampler - best-effort CPU, memory, disk, load and network snapshot."""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

import psutil

logger = logging.getLogger(__name__)

# CPU usage is measured over this interval
CPU_SAMPLE_SECONDS = 0.15

DISK_PATH = "/"

LOOPBACK_INTERFACES = ("lo", "lo0")


@dataclass(frozen=True)
class HostSnapshot:
    """Point-in-time host sample. Fields that could not be read are zero."""
    cpu_percent: float = 0.0
    mem_used_mb: int = 0
    mem_avail_mb: int = 0
    disk_used_percent: float = 0.0
    load1: float = 0.0
    load5: float = 0.0
    load15: float = 0.0
    net_rx_bytes: int = 0
    net_tx_bytes: int = 0
    uptime_sec: int = 0
    checked_at: datetime = field(default_factory=datetime.utcnow)


def _safe(read, default, label: str):
    try:
        return read()
    except Exception as e:
        logger.debug(f"Could not sample {label}: {type(e).__name__}: {e}")
        return default


def _cpu_percent() -> float:
    return round(psutil.cpu_percent(interval=CPU_SAMPLE_SECONDS), 2)


def _memory() -> tuple:
    mem = psutil.virtual_memory()
    used_mb = max(0, round((mem.total - mem.available) / 1024 / 1024))
    avail_mb = round(mem.available / 1024 / 1024)
    return used_mb, avail_mb


def _disk_used_percent() -> float:
    return float(psutil.disk_usage(DISK_PATH).percent)


def _load() -> tuple:
    return tuple(round(value, 2) for value in psutil.getloadavg())


def _network() -> tuple:
    rx = tx = 0
    for name, counters in psutil.net_io_counters(pernic=True).items():
        if name in LOOPBACK_INTERFACES:
            continue
        rx += counters.bytes_recv
        tx += counters.bytes_sent
    return rx, tx


def _uptime() -> int:
    return int(time.time() - psutil.boot_time())


class HostStatsService:
    """Samples the host the engine runs on."""

    def sample_blocking(self) -> HostSnapshot:
        mem_used_mb, mem_avail_mb = _safe(_memory, (0, 0), "memory")
        load1, load5, load15 = _safe(_load, (0.0, 0.0, 0.0), "load average")
        net_rx, net_tx = _safe(_network, (0, 0), "network counters")

        return HostSnapshot(
            cpu_percent=_safe(_cpu_percent, 0.0, "cpu"),
            mem_used_mb=mem_used_mb,
            mem_avail_mb=mem_avail_mb,
            disk_used_percent=_safe(_disk_used_percent, 0.0, "disk"),
            load1=load1,
            load5=load5,
            load15=load15,
            net_rx_bytes=net_rx,
            net_tx_bytes=net_tx,
            uptime_sec=_safe(_uptime, 0, "uptime"),
        )

    async def sample_snapshot(self) -> HostSnapshot:
        """Take a snapshot off the event loop (the CPU sample sleeps)."""
        return await asyncio.to_thread(self.sample_blocking)


# Global instance
host_stats_service = HostStatsService()
