"""Tests for the HTTP, TCP, and UDP probes."""

from __future__ import annotations

import asyncio
import socket
import time
from unittest.mock import patch

import httpx
import pytest

from stackwatch.services.checker import (
    CheckerService,
    CheckOutcome,
    HttpProbe,
    MonitorType,
    TcpProbe,
    UdpProbe,
    parse_host_port,
)


def _responder(status: int):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="hello")
    return handler


class TestParseHostPort:
    def test_host_and_port(self):
        assert parse_host_port("db.internal:5432") == ("db.internal", 5432)

    def test_bracketed_ipv6(self):
        assert parse_host_port("[::1]:53") == ("::1", 53)

    @pytest.mark.parametrize("target", ["db.internal", "db.internal:", ":80", "host:abc", "host:0", "host:70000"])
    def test_invalid_targets(self, target):
        with pytest.raises(ValueError):
            parse_host_port(target)


class TestHttpProbe:
    @pytest.mark.asyncio
    async def test_expected_status_is_ok(self):
        probe = HttpProbe(transport=httpx.MockTransport(_responder(200)))
        outcome = await probe.probe("http://svc.test/health", 1000)
        assert outcome.ok is True
        assert outcome.status_code == 200
        assert outcome.error is None
        assert outcome.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_status_mismatch(self):
        probe = HttpProbe(transport=httpx.MockTransport(_responder(503)))
        outcome = await probe.probe("http://svc.test/health", 1000, 200)
        assert outcome.ok is False
        assert outcome.status_code == 503
        assert outcome.error == "Expected 200, got 503"

    @pytest.mark.asyncio
    async def test_custom_expected_status(self):
        probe = HttpProbe(transport=httpx.MockTransport(_responder(204)))
        outcome = await probe.probe("http://svc.test/", 1000, 204)
        assert outcome.ok is True

    @pytest.mark.asyncio
    async def test_default_expectation_rejects_other_2xx(self):
        probe = HttpProbe(transport=httpx.MockTransport(_responder(201)))
        outcome = await probe.probe("http://svc.test/", 1000, None)
        assert outcome.ok is False
        assert outcome.error == "Expected 200, got 201"

    @pytest.mark.asyncio
    async def test_slow_response_times_out(self):
        async def slow(request):
            await asyncio.sleep(2)
            return httpx.Response(200)

        probe = HttpProbe(transport=httpx.MockTransport(slow))
        started = time.monotonic()
        outcome = await probe.probe("http://svc.test/", 100)
        assert outcome.ok is False
        assert outcome.error == "Request timeout"
        assert time.monotonic() - started < 1

    @pytest.mark.asyncio
    async def test_connect_error_is_captured(self):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        probe = HttpProbe(transport=httpx.MockTransport(refuse))
        outcome = await probe.probe("http://svc.test/", 1000)
        assert outcome.ok is False
        assert outcome.status_code is None
        assert "Connection refused" in outcome.error

    @pytest.mark.asyncio
    async def test_malformed_url_does_not_raise(self):
        outcome = await HttpProbe().probe("not a url", 500)
        assert outcome.ok is False
        assert outcome.error


class TestTcpProbe:
    @pytest.mark.asyncio
    async def test_connects_to_listening_port(self):
        server = await asyncio.start_server(lambda r, w: w.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            outcome = await TcpProbe().probe(f"127.0.0.1:{port}", 1000)
        finally:
            server.close()
            await server.wait_closed()
        assert outcome.ok is True
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_refused_port(self):
        sock = socket.socket()
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
        sock.close()

        outcome = await TcpProbe().probe(f"127.0.0.1:{port}", 1000)
        assert outcome.ok is False
        assert outcome.error

    @pytest.mark.asyncio
    async def test_unreachable_host_times_out_within_budget(self):
        async def hang(host, port):
            await asyncio.sleep(10)

        with patch("stackwatch.services.checker.asyncio.open_connection", hang):
            started = time.monotonic()
            outcome = await TcpProbe().probe("10.255.255.1:81", 200)
            elapsed = time.monotonic() - started

        assert outcome.ok is False
        assert "timeout" in outcome.error
        assert elapsed < 0.5

    @pytest.mark.asyncio
    async def test_missing_port_fails_without_io(self):
        with patch("stackwatch.services.checker.asyncio.open_connection") as open_conn:
            outcome = await TcpProbe().probe("db.internal", 1000)
        assert outcome.ok is False
        assert "host:port" in outcome.error
        open_conn.assert_not_called()


class TestUdpProbe:
    @pytest.mark.asyncio
    async def test_silence_counts_as_reachable(self):
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
        try:
            outcome = await UdpProbe().probe(f"127.0.0.1:{port}", 100)
            payload = sock.recv(16)
        finally:
            sock.close()
        assert outcome.ok is True
        assert payload == b"\x01"

    @pytest.mark.asyncio
    async def test_invalid_target(self):
        outcome = await UdpProbe().probe("127.0.0.1:notaport", 100)
        assert outcome.ok is False
        assert outcome.latency_ms == 0

    @pytest.mark.asyncio
    async def test_send_error_is_failure(self):
        loop = asyncio.get_running_loop()
        with patch.object(loop, "create_datagram_endpoint", side_effect=OSError("Network is unreachable")):
            outcome = await UdpProbe().probe("192.0.2.1:53", 100)
        assert outcome.ok is False
        assert outcome.error == "Network is unreachable"


class FakeProbe:
    def __init__(self):
        self.calls = []

    async def probe(self, target, timeout_ms, expected_status=None):
        self.calls.append((target, timeout_ms, expected_status))
        return CheckOutcome(ok=True, latency_ms=1)


class TestCheckerService:
    @pytest.mark.asyncio
    async def test_dispatches_by_monitor_type(self):
        probes = {kind: FakeProbe() for kind in MonitorType}
        checker = CheckerService(probes=probes)

        await checker.check("tcp", "db:5432", 3000)
        await checker.check("http", "http://svc/", 5000, 204)

        assert probes[MonitorType.TCP].calls == [("db:5432", 3000, None)]
        assert probes[MonitorType.HTTP].calls == [("http://svc/", 5000, 204)]
        assert probes[MonitorType.UDP].calls == []

    @pytest.mark.asyncio
    async def test_unknown_type_is_a_failed_outcome(self):
        outcome = await CheckerService().check("icmp", "host", 1000)
        assert outcome.ok is False
        assert outcome.error == "Unknown monitor type: icmp"
