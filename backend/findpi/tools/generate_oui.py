"""
Generate the packaged OUI database from public registries.

Run with: python -m findpi.tools.generate_oui [--output PATH]

Sources:
- IEEE OUI registry: https://standards-oui.ieee.org/oui/oui.csv
- Wireshark manuf: https://www.wireshark.org/download/automated/data/manuf

IEEE rows take precedence over Wireshark rows for the same prefix, and
the curated Raspberry Pi prefixes always come first. This is a build
time job; scans never touch the network for vendor data.
"""

import argparse
import asyncio
import csv
import io
import json
import logging
import re
import sys
from pathlib import Path
from typing import Iterable, List, Optional

import aiohttp

from ..scanner.oui_lookup import (
    OUI_DATABASE_PATH,
    RASPBERRY_PI,
    UNKNOWN,
    OuiEntry,
    normalize_oui,
)

logger = logging.getLogger(__name__)

IEEE_OUI_URL = "https://standards-oui.ieee.org/oui/oui.csv"
WIRESHARK_MANUF_URL = "https://www.wireshark.org/download/automated/data/manuf"

RASPBERRY_PI_ENTRIES = [
    OuiEntry("b8:27:eb", "Raspberry Pi Foundation", RASPBERRY_PI),
    OuiEntry("dc:a6:32", "Raspberry Pi Trading Ltd", RASPBERRY_PI),
    OuiEntry("e4:5f:01", "Raspberry Pi Trading Ltd", RASPBERRY_PI),
    OuiEntry("28:cd:c1", "Raspberry Pi Trading Ltd", RASPBERRY_PI),
    OuiEntry("d8:3a:dd", "Raspberry Pi Trading Ltd", RASPBERRY_PI),
    OuiEntry("2c:cf:67", "Raspberry Pi Trading Ltd", RASPBERRY_PI),
]

# Checked in order, first match wins. Keywords match whole words.
CATEGORY_KEYWORDS = [
    ("raspberry", RASPBERRY_PI),
    # Network Equipment
    ("cisco", "Network Equipment"),
    ("juniper", "Network Equipment"),
    ("arista", "Network Equipment"),
    ("ubiquiti", "Network Equipment"),
    ("mikrotik", "Network Equipment"),
    ("routerboard", "Network Equipment"),
    ("netgear", "Network Equipment"),
    ("tp-link", "Network Equipment"),
    ("d-link", "Network Equipment"),
    ("linksys", "Network Equipment"),
    ("belkin", "Network Equipment"),
    ("zyxel", "Network Equipment"),
    ("aruba", "Network Equipment"),
    ("fortinet", "Network Equipment"),
    ("palo alto", "Network Equipment"),
    ("sonicwall", "Network Equipment"),
    ("meraki", "Network Equipment"),
    ("ruckus", "Network Equipment"),
    ("extreme", "Network Equipment"),
    ("brocade", "Network Equipment"),
    ("alcatel", "Network Equipment"),
    # Computers
    ("apple", "Computer/Phone"),
    ("dell", "Computer"),
    ("hewlett", "Computer"),
    ("hp", "Computer"),
    ("lenovo", "Computer"),
    ("intel", "Computer"),
    ("microsoft", "Computer"),
    ("acer", "Computer"),
    ("asustek", "Computer/Network"),
    ("asus", "Computer/Network"),
    # Phones/Mobile
    ("samsung", "Phone/TV"),
    ("xiaomi", "Phone/IoT"),
    ("huawei", "Phone/Network"),
    ("oneplus", "Phone"),
    ("oppo", "Phone"),
    ("vivo", "Phone"),
    ("motorola", "Phone"),
    ("nokia", "Phone"),
    ("sony", "Phone/TV"),
    ("google", "Phone/IoT"),
    # IoT/Smart Home
    ("amazon", "IoT/Smart Home"),
    ("ring", "IoT/Smart Home"),
    ("nest", "IoT/Smart Home"),
    ("philips", "IoT/Smart Home"),
    ("sonos", "IoT/Audio"),
    ("ecobee", "IoT/Smart Home"),
    ("wyze", "IoT/Smart Home"),
    ("tuya", "IoT/Smart Home"),
    ("shelly", "IoT/Smart Home"),
    ("espressif", "IoT/Embedded"),
    ("arduino", "IoT/Embedded"),
    # TV/Entertainment
    ("lg", "TV/Display"),
    ("vizio", "TV"),
    ("tcl", "TV"),
    ("roku", "TV/Streaming"),
    # Gaming
    ("nintendo", "Gaming"),
    ("playstation", "Gaming"),
    ("xbox", "Gaming"),
    ("valve", "Gaming"),
    # Printers
    ("canon", "Printer/Camera"),
    ("epson", "Printer"),
    ("brother", "Printer"),
    ("xerox", "Printer"),
    ("lexmark", "Printer"),
    # Security/Cameras
    ("hikvision", "Security Camera"),
    ("dahua", "Security Camera"),
    ("axis", "Security Camera"),
    ("lorex", "Security Camera"),
    ("arlo", "Security Camera"),
    # Storage
    ("synology", "Storage/NAS"),
    ("qnap", "Storage/NAS"),
    ("western digital", "Storage"),
    ("seagate", "Storage"),
    # Virtual/Cloud
    ("vmware", "Virtual"),
    ("xensource", "Virtual"),
    ("parallels", "Virtual"),
]

_KEYWORD_PATTERNS = [
    (re.compile(rf"\b{re.escape(keyword)}\b"), category)
    for keyword, category in CATEGORY_KEYWORDS
]

_MANUF_LINE = re.compile(
    r"^(?P<oui>[0-9A-Fa-f]{2}:[0-9A-Fa-f]{2}:[0-9A-Fa-f]{2})\s+(?P<short>\S+)\s*(?P<long>.*)$"
)


def categorize_manufacturer(name: str) -> str:
    """Guess a device category from a manufacturer name."""
    lowered = name.lower()
    for pattern, category in _KEYWORD_PATTERNS:
        if pattern.search(lowered):
            return category
    return UNKNOWN


def _clean_name(name: str) -> str:
    return " ".join(name.split())


def parse_ieee_csv(text: str) -> List[OuiEntry]:
    """Parse the IEEE CSV (Registry, Assignment, Organization Name, ...)."""
    entries = []
    reader = csv.reader(io.StringIO(text))
    next(reader, None)  # header
    
    for record in reader:
        if len(record) < 3:
            continue
        prefix = normalize_oui(record[1])
        manufacturer = _clean_name(record[2])
        if not prefix or not manufacturer:
            continue
        entries.append(OuiEntry(prefix, manufacturer, categorize_manufacturer(manufacturer)))
    
    return entries


def parse_wireshark_manuf(text: str) -> List[OuiEntry]:
    """Parse Wireshark's manuf file (OUI, short name, long name)."""
    entries = []
    for line in text.splitlines():
        if not line or line.startswith("#"):
            continue
        match = _MANUF_LINE.match(line)
        if not match:
            # longer MA-M/MA-S assignments ("00:1B:C5:00:00/36") are skipped
            continue
        manufacturer = _clean_name(match.group("long")) or match.group("short")
        entries.append(OuiEntry(
            match.group("oui").lower(),
            manufacturer,
            categorize_manufacturer(manufacturer),
        ))
    return entries


def merge_entries(*sources: Iterable[OuiEntry]) -> List[OuiEntry]:
    """Merge sources, Raspberry Pi entries first, earlier sources win, sorted by prefix."""
    combined: List[OuiEntry] = list(RASPBERRY_PI_ENTRIES)
    for source in sources:
        combined.extend(source)
    
    merged = {}
    for entry in combined:
        prefix = normalize_oui(entry.prefix)
        if prefix and prefix not in merged:
            merged[prefix] = entry._replace(prefix=prefix)
    return [merged[prefix] for prefix in sorted(merged)]


def to_json(entries: Iterable[OuiEntry]) -> str:
    return json.dumps([
        {"macPrefix": e.prefix.upper(), "vendorName": e.vendor_name, "category": e.category}
        for e in entries
    ], indent=1)


async def fetch_text(session: aiohttp.ClientSession, url: str) -> str:
    async with session.get(url) as response:
        response.raise_for_status()
        return await response.text(errors="replace")


async def download_sources(timeout: float = 120.0) -> List[List[OuiEntry]]:
    """
    Download and parse both registries.
    
    A source that fails to download is skipped with a warning.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    headers = {"User-Agent": "Mozilla/5.0 (findpi OUI generator)"}
    
    async with aiohttp.ClientSession(timeout=client_timeout, headers=headers) as session:
        results = await asyncio.gather(
            fetch_text(session, IEEE_OUI_URL),
            fetch_text(session, WIRESHARK_MANUF_URL),
            return_exceptions=True,
        )
    
    sources = []
    for url, parser, result in zip(
        (IEEE_OUI_URL, WIRESHARK_MANUF_URL),
        (parse_ieee_csv, parse_wireshark_manuf),
        results,
    ):
        if isinstance(result, BaseException):
            logger.warning("Could not download %s: %s", url, result)
            continue
        entries = parser(result)
        logger.info("Downloaded %d entries from %s", len(entries), url)
        sources.append(entries)
    
    return sources


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate the findpi OUI database.")
    parser.add_argument("-o", "--output", type=Path, default=OUI_DATABASE_PATH,
                        help=f"output JSON file (default: {OUI_DATABASE_PATH})")
    parser.add_argument("--timeout", type=float, default=120.0, help="download timeout in seconds")
    args = parser.parse_args(argv)
    
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    
    sources = asyncio.run(download_sources(args.timeout))
    if not sources:
        logger.error("No OUI entries downloaded. Check network connection.")
        return 1
    
    entries = merge_entries(*sources)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(to_json(entries) + "\n", encoding="utf-8")
    logger.info("Wrote %d entries to %s", len(entries), args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
