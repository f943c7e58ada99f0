"""Tests for the prober module."""

import asyncio
import threading
import time

import nmap
import pytest

from findpi.core.errors import ScanConfigurationError
from findpi.scanner import prober
from findpi.scanner.prober import NmapProbe, ping_command, ping_host, probe

ADDRESSES = [f"192.168.1.{i}" for i in range(1, 255)]


class InstrumentedProbe:
    """Fake probe that records how many calls are in flight at once."""

    def __init__(self, responsive=None, delay=0.005):
        self.responsive = responsive
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []

    async def __call__(self, ip, timeout):
        self.calls.append(ip)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        return self.responsive is None or ip in self.responsive


class TestProbe:
    """Tests for the bounded concurrent sweep."""

    @pytest.mark.asyncio
    async def test_returns_responsive_subset(self):
        alive = {"192.168.1.1", "192.168.1.42", "192.168.1.254"}
        fake = InstrumentedProbe(responsive=alive)
        result = await probe(ADDRESSES, 32, 0.5, 10, probe_fn=fake)
        assert set(result) == alive
        assert len(fake.calls) == 254

    @pytest.mark.asyncio
    async def test_never_fabricates_addresses(self):
        """Even a probe that answers yes to everything cannot add targets."""
        targets = ADDRESSES[:10]
        result = await probe(targets, 4, 0.5, 10, probe_fn=InstrumentedProbe())
        assert sorted(result) == sorted(targets)

    @pytest.mark.asyncio
    async def test_idempotent_against_static_targets(self):
        alive = {"192.168.1.5", "192.168.1.6"}
        first = await probe(ADDRESSES, 16, 0.5, 10, probe_fn=InstrumentedProbe(responsive=alive))
        second = await probe(ADDRESSES, 16, 0.5, 10, probe_fn=InstrumentedProbe(responsive=alive))
        assert set(first) == set(second) == alive

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 3, 10, 64])
    async def test_respects_concurrency_limit(self, limit):
        fake = InstrumentedProbe(delay=0.002)
        await probe(ADDRESSES, limit, 0.5, 30, probe_fn=fake)
        assert fake.max_in_flight <= limit
        assert fake.max_in_flight == min(limit, len(ADDRESSES))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -5])
    async def test_invalid_limit_is_clamped_to_one(self, limit):
        fake = InstrumentedProbe()
        result = await probe(ADDRESSES[:5], limit, 0.5, 10, probe_fn=fake)
        assert fake.max_in_flight == 1
        assert len(result) == 5

    @pytest.mark.asyncio
    async def test_empty_input_spawns_nothing(self):
        fake = InstrumentedProbe()
        assert await probe([], 8, 0.5, 10, probe_fn=fake) == []
        assert fake.calls == []

    @pytest.mark.asyncio
    async def test_deadline_returns_partial_result(self):
        """Slow probes are cancelled at the deadline; fast successes are kept."""
        fast = {"192.168.1.1", "192.168.1.2", "192.168.1.3"}
        cancelled = []

        async def slow_or_fast(ip, timeout):
            if ip in fast:
                return True
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.append(ip)
                raise
            return True

        started = time.monotonic()
        result = await probe(ADDRESSES, 300, 0.5, 0.2, probe_fn=slow_or_fast)
        elapsed = time.monotonic() - started

        assert set(result) == fast
        assert elapsed < 2.0
        assert len(cancelled) == len(ADDRESSES) - len(fast)

    @pytest.mark.asyncio
    async def test_deadline_releases_queued_probes(self):
        """Probes still waiting for a slot are cancelled too."""
        fake = InstrumentedProbe(delay=60)
        started = time.monotonic()
        result = await probe(ADDRESSES, 2, 0.5, 0.1, probe_fn=fake)
        assert result == []
        assert time.monotonic() - started < 2.0
        assert len(fake.calls) == 2
        assert fake.in_flight == 0

    @pytest.mark.asyncio
    async def test_probe_errors_count_as_no_response(self):
        async def flaky(ip, timeout):
            if ip.endswith(".2"):
                raise OSError("network unreachable")
            return True

        result = await probe(["10.0.0.1", "10.0.0.2", "10.0.0.3"], 2, 0.5, 10, probe_fn=flaky)
        assert sorted(result) == ["10.0.0.1", "10.0.0.3"]

    @pytest.mark.asyncio
    async def test_progress_reports_every_completion(self):
        seen = []
        await probe(ADDRESSES[:20], 5, 0.5, 10,
                    probe_fn=InstrumentedProbe(), on_progress=lambda done, total: seen.append((done, total)))
        assert [done for done, _ in seen] == list(range(1, 21))
        assert all(total == 20 for _, total in seen)

    @pytest.mark.asyncio
    async def test_failing_progress_callback_does_not_break_sweep(self):
        def broken(done, total):
            raise RuntimeError("display gone")

        result = await probe(ADDRESSES[:4], 2, 0.5, 10, probe_fn=InstrumentedProbe(), on_progress=broken)
        assert len(result) == 4


class TestPingCommand:
    """Tests for ping_command."""

    def test_linux_uses_whole_seconds(self):
        assert ping_command("10.0.0.1", 0.5, system="Linux") == ["ping", "-c", "1", "-W", "1", "10.0.0.1"]

    def test_macos_uses_milliseconds(self):
        assert ping_command("10.0.0.1", 0.8, system="Darwin") == ["ping", "-c", "1", "-W", "800", "10.0.0.1"]

    def test_windows(self):
        assert ping_command("10.0.0.1", 0.5, count=2, system="Windows") == ["ping", "-n", "2", "-w", "500", "10.0.0.1"]


class FakeProcess:
    def __init__(self, returncode=0, hang=False):
        self.returncode = None
        self._returncode = returncode
        self.hang = hang
        self.killed = False
        self.reaped = False
        self._exited = asyncio.Event()

    async def wait(self):
        if self.hang:
            await self._exited.wait()
            self.reaped = True
        else:
            self.returncode = self._returncode
        return self.returncode

    def kill(self):
        self.killed = True
        self.returncode = -9
        self._exited.set()


class TestPingHost:
    """Tests for ping_host with a faked subprocess."""

    def _fake_exec(self, monkeypatch, process=None, error=None):
        calls = []

        async def fake_exec(*args, **kwargs):
            calls.append(args)
            if error:
                raise error
            return process

        monkeypatch.setattr(prober.asyncio, "create_subprocess_exec", fake_exec)
        return calls

    @pytest.mark.asyncio
    async def test_reply(self, monkeypatch):
        calls = self._fake_exec(monkeypatch, FakeProcess(returncode=0))
        assert await ping_host("10.0.0.1", 0.5) is True
        assert calls[0][0] == "ping"
        assert calls[0][-1] == "10.0.0.1"

    @pytest.mark.asyncio
    async def test_no_reply(self, monkeypatch):
        self._fake_exec(monkeypatch, FakeProcess(returncode=1))
        assert await ping_host("10.0.0.1", 0.5) is False

    @pytest.mark.asyncio
    async def test_missing_ping_binary(self, monkeypatch):
        self._fake_exec(monkeypatch, error=FileNotFoundError("ping"))
        assert await ping_host("10.0.0.1", 0.5) is False

    @pytest.mark.asyncio
    async def test_overrun_is_killed(self, monkeypatch):
        process = FakeProcess(hang=True)
        self._fake_exec(monkeypatch, process)
        monkeypatch.setattr(prober, "KILL_GRACE", 0.0)
        assert await ping_host("10.0.0.1", 0.01) is False
        assert process.killed
        assert process.reaped

    @pytest.mark.asyncio
    async def test_cancellation_kills_process(self, monkeypatch):
        process = FakeProcess(hang=True)
        self._fake_exec(monkeypatch, process)
        task = asyncio.ensure_future(ping_host("10.0.0.1", 30))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert process.killed
        assert process.reaped

    @pytest.mark.asyncio
    async def test_default_grace_stays_under_800ms(self, monkeypatch):
        """A silent host costs at most 0.8 s at the default 0.5 s timeout."""
        process = FakeProcess(hang=True)
        self._fake_exec(monkeypatch, process)
        loop = asyncio.get_running_loop()
        started = loop.time()
        assert await ping_host("10.0.0.1", 0.5) is False
        assert 0.5 <= loop.time() - started < 0.8
        assert process.killed and process.reaped


class TestNmapProbe:
    """Tests for the nmap backend with a faked PortScanner."""

    class FakeScanner:
        def __init__(self, up=()):
            self.up = set(up)
            self.arguments = []

        def scan(self, hosts, arguments):
            self.arguments.append(arguments)
            if hosts in self.up:
                return {"scan": {hosts: {"status": {"state": "up", "reason": "arp-response"}}}}
            return {"scan": {}}

    @pytest.mark.asyncio
    async def test_host_up(self, monkeypatch):
        fake = self.FakeScanner(up={"10.0.0.7"})
        monkeypatch.setattr(prober.nmap, "PortScanner", lambda: fake)
        backend = NmapProbe()
        assert await backend("10.0.0.7", 0.5) is True
        assert await backend("10.0.0.8", 0.5) is False
        assert "-sn" in fake.arguments[0]
        assert "--host-timeout 500ms" in fake.arguments[0]

    @pytest.mark.asyncio
    async def test_pool_sized_to_concurrency(self, monkeypatch):
        """Calls beyond the default executor size still run side by side."""
        fake = self.FakeScanner(up={"10.0.0.7"})
        monkeypatch.setattr(prober.nmap, "PortScanner", lambda: fake)
        backend = NmapProbe(max_workers=64)
        assert backend._executor._max_workers == 64

        running = 0
        peak = 0
        lock = threading.Lock()
        release = threading.Event()
        scan = fake.scan

        def slow_scan(hosts, arguments):
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
                if running == 40:
                    release.set()
            release.wait(timeout=5)
            with lock:
                running -= 1
            return scan(hosts, arguments)

        fake.scan = slow_scan
        results = await asyncio.gather(*(backend(f"10.0.0.{i}", 0.5) for i in range(1, 41)))
        assert peak == 40
        assert results.count(True) == 1

    def test_missing_nmap_binary(self, monkeypatch):
        def no_nmap():
            raise nmap.PortScannerError("nmap program was not found in path")

        monkeypatch.setattr(prober.nmap, "PortScanner", no_nmap)
        with pytest.raises(ScanConfigurationError):
            NmapProbe()
