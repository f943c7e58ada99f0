"""
Neighbor (ARP) cache reading and reconciliation with probe results.

``arp -a`` prints one line per neighbor. BSD/macOS and Linux use::

    ? (192.168.1.1) at 0:11:22:33:44:55 on en0 ifscope [ethernet]
    gateway (192.168.1.1) at aa:bb:cc:dd:ee:ff [ether] on wlan0

and Windows prints a table::

      192.168.1.1           aa-bb-cc-dd-ee-ff     dynamic

Lines that match neither shape are skipped, as are unresolved
(incomplete) entries.
"""

import asyncio
import ipaddress
import logging
import re
import socket
from typing import Callable, Iterable, List, NamedTuple, Optional

from ..schemas import Device
from .oui_lookup import OuiClassifier, normalize_mac

logger = logging.getLogger(__name__)

HostnameResolver = Callable[[str], Optional[str]]

_ARP_LINE = re.compile(
    r"^\s*(?:(?P<hostname>\S+)\s+)?"
    r"\((?P<ip>[0-9.]+)\)\s+"
    r"at\s+(?P<mac>[0-9A-Fa-f:.\-]+)"
    r"(?:\s+\[[^\]]*\])?"
    r"\s+on\s+(?P<interface>\S+)"
)

_WINDOWS_ARP_LINE = re.compile(
    r"^\s*(?P<ip>\d{1,3}(?:\.\d{1,3}){3})\s+"
    r"(?P<mac>[0-9A-Fa-f]{2}(?:-[0-9A-Fa-f]{2}){5})\s+\w+"
)


class ArpEntry(NamedTuple):
    ip: str
    mac: str  # canonical form
    interface: Optional[str] = None


def parse_arp_line(line: str) -> Optional[ArpEntry]:
    """Parse one line of `arp -a` output, None if it is not a resolved entry."""
    if "incomplete" in line:
        return None
    
    match = _ARP_LINE.match(line) or _WINDOWS_ARP_LINE.match(line)
    if not match:
        return None
    
    try:
        ip = str(ipaddress.IPv4Address(match.group("ip")))
    except ValueError:
        return None
    
    mac = normalize_mac(match.group("mac"))
    if mac is None:
        return None
    
    interface = match.groupdict().get("interface")
    return ArpEntry(ip, mac, interface)


def parse_arp_table(output: str) -> List[ArpEntry]:
    """
    Parse `arp -a` output into entries.
    
    Malformed lines are skipped. When an address appears more than once
    (several interfaces) the first row wins.
    """
    entries = {}
    for line in output.splitlines():
        entry = parse_arp_line(line)
        if entry is None:
            if line.strip():
                logger.debug("Skipping ARP line: %r", line)
            continue
        entries.setdefault(entry.ip, entry)
    return list(entries.values())


async def read_arp_table(timeout: float = 10.0) -> str:
    """
    Run `arp -a` and return its output.
    
    Failures are logged and yield an empty string so the scan can carry
    on with no devices.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            "arp", "-a",
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except OSError as e:
        logger.warning("Error running arp command: %s", e)
        return ""
    
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning("arp command timed out after %.1fs", timeout)
        return ""
    
    if process.returncode != 0:
        logger.warning("arp command failed (exit %s): %s",
                       process.returncode, stderr.decode(errors="replace").strip())
        return ""
    
    return stdout.decode(errors="replace")


def resolve_hostname(ip: str) -> Optional[str]:
    """Resolve IP address to hostname."""
    try:
        hostname, _, _ = socket.gethostbyaddr(ip)
    except (socket.herror, socket.gaierror, OSError):
        return None
    return hostname.rstrip(".") or None


async def reconcile(
    responsive: Iterable[str],
    classifier: OuiClassifier,
    arp_output: Optional[str] = None,
    resolve_hostnames: bool = False,
    resolver: HostnameResolver = resolve_hostname,
    arp_timeout: float = 10.0,
) -> List[Device]:
    """
    Build devices for responsive addresses that have a neighbor entry.
    
    Neighbor entries for addresses that were not probed, or did not
    respond, are ignored. Responsive addresses without a neighbor entry
    are dropped.
    
    Args:
        responsive: Addresses that answered a probe
        classifier: Vendor classifier applied to every MAC
        arp_output: `arp -a` text, read from the OS if None
        resolve_hostnames: Look up reverse DNS names for each device
        resolver: Hostname lookup used when resolve_hostnames is set
        arp_timeout: Seconds to wait for `arp -a`
    
    Returns:
        Devices sorted by ascending address
    """
    responsive = set(responsive)
    if not responsive:
        return []
    
    if arp_output is None:
        arp_output = await read_arp_table(arp_timeout)
    
    entries = [e for e in parse_arp_table(arp_output) if e.ip in responsive]
    
    unresolved = responsive - {e.ip for e in entries}
    if unresolved:
        logger.debug("%d responsive addresses have no neighbor entry: %s",
                     len(unresolved), ", ".join(sorted(unresolved)))
    
    hostnames: List[Optional[str]] = [None] * len(entries)
    if resolve_hostnames and entries:
        hostnames = await asyncio.gather(
            *(asyncio.to_thread(resolver, e.ip) for e in entries)
        )
    
    devices = []
    for entry, hostname in zip(entries, hostnames):
        vendor, category, is_sbc = classifier.classify(entry.mac)
        devices.append(Device(
            ip=entry.ip,
            mac=entry.mac,
            manufacturer=vendor,
            category=category,
            is_raspberry_pi=is_sbc,
            hostname=hostname or None,
        ))
    
    devices.sort(key=lambda d: ipaddress.IPv4Address(d.ip))
    return devices
