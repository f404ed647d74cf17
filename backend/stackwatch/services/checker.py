"""Checker service - performs HTTP, TCP, and UDP reachability probes.

Every probe has the same shape: ``probe(target, timeout_ms, expected_status)``
returning a CheckOutcome. Probes never raise; timeouts, refused
connections, DNS failures and status mismatches all come back as
``ok=False`` with a readable error.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

DEFAULT_EXPECTED_STATUS = 200

# Payload for the UDP probe datagram
UDP_PROBE_PAYLOAD = b"\x01"


class MonitorType(str, Enum):
    """The closed set of probe kinds."""
    HTTP = "http"
    TCP = "tcp"
    UDP = "udp"


@dataclass(frozen=True)
class CheckOutcome:
    """Result of one probe execution."""
    ok: bool
    latency_ms: int
    status_code: Optional[int] = None  # HTTP only
    error: Optional[str] = None
    checked_at: datetime = field(default_factory=datetime.utcnow)


def parse_host_port(target: str) -> Tuple[str, int]:
    """Split a ``host:port`` target. Raises ValueError if the port is missing or invalid."""
    host, sep, port_str = target.strip().rpartition(":")
    if not sep or not host:
        raise ValueError(f"Invalid target '{target}', expected host:port")

    # Bracketed IPv6 literal, e.g. [::1]:53
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_str)
    except ValueError:
        raise ValueError(f"Invalid port in target '{target}'") from None

    if not 1 <= port <= 65535:
        raise ValueError(f"Port out of range in target '{target}'")

    return host, port


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _error_text(exc: BaseException, fallback: str) -> str:
    return str(exc) or f"{fallback} ({type(exc).__name__})"


class HttpProbe:
    """GET the target URL and compare the response status with the expected one."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        # Injected in tests; None means real network I/O
        self._transport = transport

    async def probe(self, target: str, timeout_ms: int, expected_status: Optional[int] = None) -> CheckOutcome:
        expected = expected_status or DEFAULT_EXPECTED_STATUS
        timeout = timeout_ms / 1000
        started = time.monotonic()

        try:
            # Disable SSL verification to handle self-signed certificates
            async with httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                verify=False,
                transport=self._transport,
            ) as client:
                # httpx timeouts are per phase; wait_for caps the whole request
                response = await asyncio.wait_for(client.get(target), timeout=timeout)

            latency = _elapsed_ms(started)
            if response.status_code != expected:
                return CheckOutcome(
                    ok=False,
                    status_code=response.status_code,
                    latency_ms=latency,
                    error=f"Expected {expected}, got {response.status_code}",
                )
            return CheckOutcome(ok=True, status_code=response.status_code, latency_ms=latency)

        except (httpx.TimeoutException, asyncio.TimeoutError):
            return CheckOutcome(ok=False, latency_ms=_elapsed_ms(started), error="Request timeout")
        except httpx.ConnectError as e:
            return CheckOutcome(
                ok=False,
                latency_ms=_elapsed_ms(started),
                error=f"Connection error: {_error_text(e, 'connect failed')}",
            )
        except Exception as e:
            return CheckOutcome(ok=False, latency_ms=_elapsed_ms(started), error=_error_text(e, "Request failed"))


class TcpProbe:
    """Open a TCP connection and close it straight away. No payload is exchanged."""

    async def probe(self, target: str, timeout_ms: int, expected_status: Optional[int] = None) -> CheckOutcome:
        started = time.monotonic()
        try:
            host, port = parse_host_port(target)
        except ValueError as e:
            return CheckOutcome(ok=False, latency_ms=0, error=str(e))

        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            return CheckOutcome(ok=False, latency_ms=_elapsed_ms(started), error="TCP timeout")
        except OSError as e:
            return CheckOutcome(ok=False, latency_ms=_elapsed_ms(started), error=_error_text(e, "TCP error"))

        latency = _elapsed_ms(started)
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            # The check already succeeded; a reset on close does not change that
            pass
        return CheckOutcome(ok=True, latency_ms=latency)


class _UdpProbeProtocol(asyncio.DatagramProtocol):
    """Surfaces the first socket error (e.g. ICMP port unreachable) as a future."""

    def __init__(self):
        self.error: asyncio.Future = asyncio.get_running_loop().create_future()

    def error_received(self, exc: Exception):
        if not self.error.done():
            self.error.set_result(exc)

    def connection_lost(self, exc: Optional[Exception]):
        if exc is not None and not self.error.done():
            self.error.set_result(exc)


class UdpProbe:
    """Send one datagram and treat silence until the timeout as reachable.

    UDP has no handshake, so the only negative signal is a transport error
    while sending or an ICMP error reported back on the connected socket.
    A host that silently drops the datagram still counts as up.
    """

    async def probe(self, target: str, timeout_ms: int, expected_status: Optional[int] = None) -> CheckOutcome:
        started = time.monotonic()
        try:
            host, port = parse_host_port(target)
        except ValueError as e:
            return CheckOutcome(ok=False, latency_ms=0, error=str(e))

        loop = asyncio.get_running_loop()
        transport = None
        try:
            transport, protocol = await asyncio.wait_for(
                loop.create_datagram_endpoint(_UdpProbeProtocol, remote_addr=(host, port)),
                timeout=timeout_ms / 1000,
            )
            transport.sendto(UDP_PROBE_PAYLOAD)

            remaining = max(0.0, timeout_ms / 1000 - (time.monotonic() - started))
            try:
                exc = await asyncio.wait_for(asyncio.shield(protocol.error), timeout=remaining)
            except asyncio.TimeoutError:
                return CheckOutcome(ok=True, latency_ms=_elapsed_ms(started))

            return CheckOutcome(ok=False, latency_ms=_elapsed_ms(started), error=_error_text(exc, "UDP error"))

        except asyncio.TimeoutError:
            return CheckOutcome(ok=False, latency_ms=_elapsed_ms(started), error="UDP timeout")
        except OSError as e:
            return CheckOutcome(ok=False, latency_ms=_elapsed_ms(started), error=_error_text(e, "UDP send failed"))
        finally:
            if transport is not None:
                transport.close()


class CheckerService:
    """Selects the probe for a monitor's type and runs it."""

    def __init__(self, probes: Optional[Dict[MonitorType, object]] = None):
        self.probes = probes or {
            MonitorType.HTTP: HttpProbe(),
            MonitorType.TCP: TcpProbe(),
            MonitorType.UDP: UdpProbe(),
        }

    async def check(self, monitor_type: str, target: str, timeout_ms: int, expected_status: Optional[int] = None) -> CheckOutcome:
        """Perform a check based on monitor type."""
        try:
            kind = MonitorType(monitor_type)
        except ValueError:
            return CheckOutcome(ok=False, latency_ms=0, error=f"Unknown monitor type: {monitor_type}")

        return await self.probes[kind].probe(target, timeout_ms, expected_status)


# Global instance
checker_service = CheckerService()
