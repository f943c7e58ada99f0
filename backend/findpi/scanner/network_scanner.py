import functools
import logging
import time
from typing import Awaitable, Callable, List, Optional

from ..core.config import settings
from ..core.errors import ScanConfigurationError
from ..schemas import ScanResult
from .addressing import generate_address_space, to_cidr
from .arp_table import HostnameResolver, read_arp_table, reconcile, resolve_hostname
from .oui_lookup import OuiClassifier
from .prober import NmapProbe, ProbeFunc, ping_host, probe
from .statistics import aggregate
from .system import default_concurrency

logger = logging.getLogger(__name__)

ArpReader = Callable[[], Awaitable[str]]
ScanCallback = Callable[[str, dict], None]

BACKENDS = ("icmp", "nmap")


def make_probe(backend: str, count: int = 1, concurrency: Optional[int] = None) -> ProbeFunc:
    """Return the probe function for a backend name.
    
    `concurrency` sizes the nmap worker pool so it does not cap the sweep.
    """
    if backend == "icmp":
        return functools.partial(ping_host, count=count)
    if backend == "nmap":
        return NmapProbe(max_workers=max(1, concurrency) if concurrency else None)
    raise ScanConfigurationError(f"Unknown probe backend {backend!r}, expected one of {', '.join(BACKENDS)}")


class NetworkScanner:
    """
    Main network scanner orchestrating device discovery.
    
    One scan sweeps the /24 of a local address, reads the neighbor cache
    once the sweep is over, and classifies every responsive host that has
    a MAC address. Scans share no state with each other.
    """
    
    def __init__(
        self,
        classifier: Optional[OuiClassifier] = None,
        backend: Optional[str] = None,
        resolve_hostnames: Optional[bool] = None,
        probe_timeout: Optional[float] = None,
        deadline: Optional[float] = None,
        concurrency: Optional[int] = None,
        probe_fn: Optional[ProbeFunc] = None,
        arp_reader: Optional[ArpReader] = None,
        resolver: HostnameResolver = resolve_hostname,
    ):
        self.backend = backend or settings.PROBE_BACKEND
        self.resolve_hostnames = settings.RESOLVE_HOSTNAMES if resolve_hostnames is None else resolve_hostnames
        self.probe_timeout = probe_timeout or settings.PROBE_TIMEOUT
        self.deadline = deadline or settings.SCAN_DEADLINE
        if concurrency is None:
            concurrency = settings.MAX_CONCURRENCY or default_concurrency(settings.CONCURRENCY_PER_CORE)
        self.concurrency = concurrency
        self.probe_fn = probe_fn or make_probe(self.backend, settings.PROBE_COUNT, self.concurrency)
        self.classifier = classifier or OuiClassifier.from_database(settings.OUI_DATABASE_PATH)
        self.arp_reader = arp_reader or functools.partial(read_arp_table, settings.ARP_TIMEOUT)
        self.resolver = resolver
        self._callbacks: List[ScanCallback] = []
    
    def register_callback(self, callback: ScanCallback):
        """Register a callback for scan updates."""
        self._callbacks.append(callback)
    
    def unregister_callback(self, callback: ScanCallback):
        """Unregister a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)
    
    def _notify_callbacks(self, event_type: str, data: dict):
        """Notify all registered callbacks."""
        for callback in self._callbacks:
            try:
                callback(event_type, data)
            except Exception as e:
                logger.warning("Callback error: %s", e)
    
    def _on_progress(self, completed: int, total: int):
        self._notify_callbacks("probe_progress", {"completed": completed, "total": total})
    
    async def perform_scan(self, local_address: str) -> ScanResult:
        """
        Scan the /24 enclosing a local address.
        
        Args:
            local_address: One of the host's own IPv4 addresses
        
        Returns:
            The scan results
        
        Raises:
            ScanConfigurationError: `local_address` is not an IPv4 address
        """
        addresses = generate_address_space(local_address)
        if not addresses:
            raise ScanConfigurationError(f"Invalid base address {local_address!r}")
        
        network = to_cidr(local_address)
        started = time.monotonic()
        
        self._notify_callbacks("scan_started", {
            "network": network,
            "addresses": len(addresses),
            "concurrency": self.concurrency,
        })
        
        found = await probe(
            addresses,
            self.concurrency,
            self.probe_timeout,
            self.deadline,
            probe_fn=self.probe_fn,
            on_progress=self._on_progress,
        )
        logger.info("Sweep of %s found %d responsive hosts", network, len(found))
        self._notify_callbacks("hosts_found", {"network": network, "count": len(found)})
        
        # the neighbor cache is only populated once the probes have gone out
        arp_output = await self.arp_reader() if found else ""
        devices = await reconcile(
            found,
            self.classifier,
            arp_output=arp_output,
            resolve_hostnames=self.resolve_hostnames,
            resolver=self.resolver,
        )
        
        manufacturers, categories = aggregate(devices)
        result = ScanResult(
            network=network,
            duration_seconds=time.monotonic() - started,
            total_devices=len(devices),
            raspberry_pi_count=sum(1 for d in devices if d.is_raspberry_pi),
            devices=devices,
            manufacturer_statistics=manufacturers,
            category_statistics=categories,
        )
        
        self._notify_callbacks("scan_completed", {
            "network": network,
            "devices_found": result.total_devices,
            "raspberry_pi_count": result.raspberry_pi_count,
        })
        return result
