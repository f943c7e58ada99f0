"""
OUI (Organizationally Unique Identifier) lookup for MAC address vendor identification.

The vendor table is loaded from a local JSON database (generated offline by
``findpi.tools.generate_oui``) and handed to an :class:`OuiClassifier`.
Entries have the maclookup.app shape plus a device category::

    [{"macPrefix": "B8:27:EB", "vendorName": "Raspberry Pi Foundation",
      "category": "Raspberry Pi"}, ...]
"""

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Mapping, NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

# Path to the packaged OUI database
OUI_DATABASE_PATH = Path(__file__).resolve().parent.parent / "data" / "oui_database.json"

UNKNOWN = "Unknown"
RASPBERRY_PI = "Raspberry Pi"

# Curated Raspberry Pi prefixes, authoritative for the embedded SBC category
RASPBERRY_PI_OUIS = frozenset({
    "b8:27:eb",  # Raspberry Pi Foundation
    "dc:a6:32",  # Raspberry Pi Trading Ltd
    "e4:5f:01",  # Raspberry Pi 4 and newer
    "28:cd:c1",  # Raspberry Pi 400 and some Pi 4
    "d8:3a:dd",  # Some Raspberry Pi models
    "2c:cf:67",  # Raspberry Pi 5 and newer
})

# Shortest string that can carry an OUI, e.g. "aa:bb:cc"
MIN_PREFIX_LENGTH = 8

_SEPARATORS = re.compile(r"[:\-.]")
_HEX = re.compile(r"[0-9a-f]+")


class OuiEntry(NamedTuple):
    """One row of the vendor table."""
    prefix: str
    vendor_name: str
    category: str


class Classification(NamedTuple):
    vendor_name: str
    category: str
    is_embedded_sbc: bool


MISS = Classification(UNKNOWN, UNKNOWN, False)


def normalize_mac(mac: Optional[str]) -> Optional[str]:
    """
    Normalize a MAC address to lowercase, colon separated form.
    
    Accepts "AA:BB:CC:DD:EE:FF", "aa-bb-cc-dd-ee-ff", "aabb.ccdd.eeff",
    "aabbccddeeff" and the unpadded BSD form "0:1a:2b:3:4:5".
    
    Returns:
        The 17 character canonical form, or None if `mac` is not a MAC address
    """
    if not mac:
        return None
    
    mac = mac.strip().lower()
    if "." in mac:
        groups = mac.split(".")
        if len(groups) != 3 or any(len(g) != 4 for g in groups):
            return None
        digits = "".join(groups)
    elif ":" in mac or "-" in mac:
        groups = re.split(r"[:\-]", mac)
        if len(groups) != 6 or any(not 1 <= len(g) <= 2 for g in groups):
            return None
        digits = "".join(g.zfill(2) for g in groups)
    else:
        digits = mac
    
    if len(digits) != 12 or not _HEX.fullmatch(digits):
        return None
    return ":".join(digits[i:i + 2] for i in range(0, 12, 2))


def normalize_oui(value: Optional[str]) -> Optional[str]:
    """Normalize a MAC address or bare prefix to its "xx:xx:xx" OUI."""
    if not value:
        return None
    
    canonical = normalize_mac(value)
    if canonical:
        return canonical[:MIN_PREFIX_LENGTH]
    
    value = value.strip().lower()
    groups = [g for g in _SEPARATORS.split(value) if g]
    if len(groups) >= 3 and all(1 <= len(g) <= 2 for g in groups[:3]):
        digits = "".join(g.zfill(2) for g in groups[:3])
    else:
        digits = "".join(groups)[:6]
    
    if len(digits) != 6 or not _HEX.fullmatch(digits):
        return None
    return f"{digits[0:2]}:{digits[2:4]}:{digits[4:6]}"


def build_oui_table(entries: Iterable[OuiEntry]) -> Dict[str, OuiEntry]:
    """Index entries by normalized prefix. The first entry for a prefix wins."""
    table: Dict[str, OuiEntry] = {}
    for entry in entries:
        prefix = normalize_oui(entry.prefix)
        if prefix is None:
            logger.warning("Skipping OUI entry with invalid prefix %r", entry.prefix)
            continue
        if prefix in table:
            logger.warning("Duplicate OUI prefix %s (%s), keeping %s",
                           prefix, entry.vendor_name, table[prefix].vendor_name)
            continue
        table[prefix] = entry._replace(prefix=prefix)
    return table


def load_oui_database(path: Optional[Union[str, Path]] = None) -> Dict[str, OuiEntry]:
    """
    Load the OUI database into memory.
    
    A missing or unreadable database is not fatal: every lookup then
    classifies as unknown.
    
    Args:
        path: JSON database to read, the packaged database if None
    
    Returns:
        Mapping of "xx:xx:xx" prefix to OuiEntry
    """
    path = Path(path) if path else OUI_DATABASE_PATH
    
    if not path.exists():
        logger.warning("OUI database not found at %s", path)
        return {}
    
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse OUI database %s: %s", path, e)
        return {}
    except OSError as e:
        logger.warning("Failed to load OUI database %s: %s", path, e)
        return {}
    
    entries = []
    for item in data:
        prefix = item.get("macPrefix", "")
        vendor = item.get("vendorName", "")
        if prefix and vendor:
            entries.append(OuiEntry(prefix, vendor, item.get("category") or UNKNOWN))
    
    table = build_oui_table(entries)
    logger.debug("OUI database loaded: %d vendors", len(table))
    return table


class OuiClassifier:
    """Classifies MAC addresses by vendor and device category."""
    
    def __init__(self, table: Mapping[str, OuiEntry],
                 sbc_prefixes: Iterable[str] = RASPBERRY_PI_OUIS,
                 sbc_category: str = RASPBERRY_PI):
        self._table = dict(table)
        self._sbc_prefixes = frozenset(sbc_prefixes)
        self._sbc_category = sbc_category
    
    @classmethod
    def from_database(cls, path: Optional[Union[str, Path]] = None) -> "OuiClassifier":
        return cls(load_oui_database(path))
    
    def __len__(self) -> int:
        return len(self._table)
    
    def classify(self, mac: Optional[str]) -> Classification:
        """
        Look up vendor and category for a MAC address.
        
        Never raises: unknown vendors and garbage input classify as
        ("Unknown", "Unknown", False).
        """
        if not mac or len(mac) < MIN_PREFIX_LENGTH:
            return MISS
        
        prefix = normalize_oui(mac) or mac[:MIN_PREFIX_LENGTH].lower()
        entry = self._table.get(prefix)
        
        if prefix in self._sbc_prefixes:
            vendor = entry.vendor_name if entry else UNKNOWN
            return Classification(vendor, self._sbc_category, True)
        
        if entry is None:
            return MISS
        return Classification(entry.vendor_name, entry.category, False)
