"""
Bounded concurrent host probing.

Every address gets its own short-lived task; an ``asyncio.Semaphore``
caps how many probes are in flight, and one overall deadline bounds the
whole sweep. Probing is pluggable: ``ping_host`` sends a single
unprivileged ICMP echo through the system ``ping`` binary, ``NmapProbe``
runs nmap host discovery instead.
"""

import asyncio
import logging
import math
import platform
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, Iterable, List, Optional

import nmap

from ..core.errors import ScanConfigurationError

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[str, float], Awaitable[bool]]
ProgressCallback = Callable[[int, int], None]

# Extra time a probe may take past its own timeout before it is killed.
# Linux ping only takes whole seconds for -W, so this kill is what keeps a
# 0.5 s probe under 0.8 s.
KILL_GRACE = 0.2


def ping_command(ip: str, timeout: float, count: int = 1,
                 system: Optional[str] = None) -> List[str]:
    """Build the ping command line for the current platform."""
    system = (system or platform.system()).lower()
    timeout_ms = str(max(1, int(timeout * 1000)))
    
    if system == "windows":
        return ["ping", "-n", str(count), "-w", timeout_ms, ip]
    if system == "darwin":
        return ["ping", "-c", str(count), "-W", timeout_ms, ip]
    # iputils and busybox take whole seconds, ping_host kills it sooner
    return ["ping", "-c", str(count), "-W", str(max(1, math.ceil(timeout))), ip]


def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass


async def ping_host(ip: str, timeout: float, count: int = 1) -> bool:
    """
    Ping a single host.
    
    Any failure (no reply, timeout, missing ping binary) is reported as
    False. The ping process is killed and reaped if it overruns or if
    the calling task is cancelled.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *ping_command(ip, timeout, count),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL
        )
    except OSError as e:
        logger.debug("Could not run ping for %s: %s", ip, e)
        return False
    
    try:
        await asyncio.wait_for(process.wait(), timeout=timeout * count + KILL_GRACE)
    except asyncio.TimeoutError:
        return False
    finally:
        if process.returncode is None:
            _kill(process)
            # reap even if cancelled again
            await asyncio.shield(process.wait())
    
    return process.returncode == 0


class NmapProbe:
    """
    Host discovery through nmap, one address per call.
    
    Each call blocks a worker thread of the probe's own pool, sized to the
    sweep concurrency. A running nmap cannot be cancelled by the sweep
    deadline; its --host-timeout bounds how long it can outlive it.
    """
    
    def __init__(self, arguments: str = "-sn -n", max_workers: Optional[int] = None):
        self.arguments = arguments
        try:
            self._scanner = nmap.PortScanner()
        except nmap.PortScannerError as e:
            raise ScanConfigurationError(f"nmap backend unavailable: {e}") from e
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="nmap-probe")
    
    def _scan(self, ip: str, timeout: float) -> bool:
        host_timeout = max(1, math.ceil(timeout * 1000))
        try:
            result = self._scanner.scan(
                hosts=ip,
                arguments=f"{self.arguments} --host-timeout {host_timeout}ms"
            )
        except nmap.PortScannerError as e:
            logger.debug("nmap probe of %s failed: %s", ip, e)
            return False
        
        # use the returned dict, the scanner's own copy is shared between threads
        host = result.get("scan", {}).get(ip, {})
        return host.get("status", {}).get("state") == "up"
    
    async def __call__(self, ip: str, timeout: float) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._scan, ip, timeout)


async def probe(
    addresses: Iterable[str],
    concurrency_limit: int,
    per_probe_timeout: float,
    overall_deadline: float,
    probe_fn: Optional[ProbeFunc] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> List[str]:
    """
    Probe addresses concurrently and return the ones that responded.
    
    Args:
        addresses: Targets to probe
        concurrency_limit: Maximum probes in flight, clamped to at least 1
        per_probe_timeout: Seconds each probe waits for a reply
        overall_deadline: Seconds for the whole sweep; probes still pending
            when it elapses are cancelled and count as unresponsive
        probe_fn: Coroutine function (address, timeout) -> bool, ping_host if None
        on_progress: Called with (completed, total) as each probe finishes
    
    Returns:
        The responsive subset of `addresses`, in no particular order
    """
    targets = list(addresses)
    if not targets:
        return []
    
    if concurrency_limit < 1:
        logger.warning("Concurrency limit %d is invalid, using 1", concurrency_limit)
        concurrency_limit = 1
    
    probe_fn = probe_fn or ping_host
    semaphore = asyncio.Semaphore(concurrency_limit)
    total = len(targets)
    completed = 0
    
    async def probe_one(ip: str) -> Optional[str]:
        nonlocal completed
        async with semaphore:
            try:
                alive = await probe_fn(ip, per_probe_timeout)
            except Exception as e:
                logger.debug("Probe of %s failed: %s", ip, e)
                alive = False
        
        completed += 1
        if on_progress:
            try:
                on_progress(completed, total)
            except Exception as e:
                logger.debug("Progress callback error: %s", e)
        
        return ip if alive else None
    
    tasks = [asyncio.create_task(probe_one(ip)) for ip in targets]
    
    try:
        await asyncio.wait(tasks, timeout=overall_deadline)
    finally:
        pending = [task for task in tasks if not task.done()]
        if pending:
            logger.warning("Sweep deadline reached, cancelling %d pending probes", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
    
    responsive = []
    for task in tasks:
        if task.cancelled():
            continue
        ip = task.result()
        if ip is not None:
            responsive.append(ip)
    
    return responsive
