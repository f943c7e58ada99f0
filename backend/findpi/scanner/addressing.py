"""Local interface enumeration and /24 address space generation."""

import ipaddress
import logging
from typing import List

import netifaces

logger = logging.getLogger(__name__)

HOSTS_PER_SUBNET = 254


def _split_octets(address: str) -> List[str]:
    parts = address.strip().split(".")
    if len(parts) != 4:
        return []
    try:
        ipaddress.IPv4Address(".".join(parts))
    except ValueError:
        return []
    return parts


def generate_address_space(address: str) -> List[str]:
    """
    Generate all host addresses of the /24 enclosing `address`.
    
    The address itself is not excluded.
    
    Returns:
        "{base}.1" through "{base}.254" in ascending order, or an empty
        list if `address` is not a dotted-quad IPv4 address
    """
    parts = _split_octets(address)
    if not parts:
        return []
    
    base = ".".join(parts[:3])
    return [f"{base}.{host}" for host in range(1, HOSTS_PER_SUBNET + 1)]


def to_cidr(address: str) -> str:
    """Convert an address to the CIDR notation of its /24."""
    parts = _split_octets(address)
    if not parts:
        return address
    return f"{'.'.join(parts[:3])}.0/24"


def get_local_addresses() -> List[str]:
    """
    List IPv4 addresses bound to non-loopback interfaces.
    
    Each address stands for one selectable /24. Order follows the
    interface order reported by the OS; duplicates are dropped.
    """
    addresses: List[str] = []
    
    try:
        interfaces = netifaces.interfaces()
    except Exception as e:
        logger.error("Error getting network interfaces: %s", e)
        return addresses
    
    for interface in interfaces:
        try:
            addrs = netifaces.ifaddresses(interface)
        except ValueError as e:
            # interface vanished between listing and query
            logger.debug("Skipping interface %s: %s", interface, e)
            continue
        
        for ipv4_info in addrs.get(netifaces.AF_INET, []):
            addr = ipv4_info.get("addr")
            if not addr:
                continue
            try:
                ip = ipaddress.IPv4Address(addr)
            except ValueError:
                continue
            if ip.is_loopback or addr in addresses:
                continue
            addresses.append(addr)
    
    return addresses
