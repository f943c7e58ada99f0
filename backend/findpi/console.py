"""Console rendering for the findpi command."""

import sys
from typing import Dict, List, Sequence

from .output import ArtifactReport
from .scanner.addressing import to_cidr
from .schemas import Device, ScanResult

WIDTH = 64
TABLE_LIMIT = 15
TOP_MANUFACTURERS = 10


def print_header(app_name: str, version: str):
    title = f"{app_name.upper()} - NETWORK DEVICE SCANNER"
    print()
    print("=" * WIDTH)
    print(title.center(WIDTH).rstrip())
    print(f"v{version} - Manufacturer Detection - OUI Database".center(WIDTH).rstrip())
    print("=" * WIDTH)


def print_section(title: str):
    print(f"\n── {title} {'─' * max(0, 50 - len(title))}")


def print_networks(addresses: Sequence[str]):
    print_section("AVAILABLE NETWORKS")
    for i, address in enumerate(addresses):
        print(f"  [{i}] {to_cidr(address)}")


def print_system_info(cores: int, concurrency: int, oui_entries: int):
    print_section("SYSTEM INFO")
    print(f"  • CPU Cores: {cores}")
    print(f"  • Concurrent probes: {concurrency}")
    print(f"  • OUI Database: {oui_entries} entries")


class ProgressBar:
    """Scanner callback drawing sweep progress on one line."""
    
    def __init__(self, width: int = 40, stream=None):
        self.width = width
        self.stream = stream or sys.stdout
    
    def __call__(self, event_type: str, data: dict):
        if event_type == "scan_started":
            self.stream.write(f"  Scanning {data['addresses']} addresses...\n\n")
        elif event_type == "probe_progress":
            self.draw(data["completed"], data["total"])
        elif event_type == "hosts_found":
            self.stream.write(f"\n\n  ✓ Found {data['count']} active devices\n")
            self.stream.write("  → Identifying manufacturers...\n")
        self.stream.flush()
    
    def draw(self, current: int, total: int):
        percent = current / total if total else 1.0
        filled = int(percent * self.width)
        bar = "█" * filled + "░" * (self.width - filled)
        self.stream.write(f"\r  [{bar}] {int(percent * 100):3d}% ({current}/{total})")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit - 3] + "..."


def print_device_table(devices: List[Device]):
    if not devices:
        return
    
    print_section("DISCOVERED DEVICES")
    print(f"\n  {'IP ADDRESS':<16} {'MAC ADDRESS':<18} {'MANUFACTURER':<30} CATEGORY")
    print(f"  {'─' * 80}")
    for device in devices[:TABLE_LIMIT]:
        marker = " 🍓" if device.is_raspberry_pi else ""
        print(f"  {device.ip:<16} {device.mac:<18} {_truncate(device.manufacturer, 28):<30} "
              f"{device.category}{marker}")
    
    if len(devices) > TABLE_LIMIT:
        print(f"\n  ... and {len(devices) - TABLE_LIMIT} more devices (see devicesfound.txt)")


def print_raspberry_pis(devices: List[Device]):
    if not devices:
        return
    
    print_section("🍓 RASPBERRY PI DEVICES")
    for pi in devices:
        host = f" ({pi.hostname})" if pi.hostname else ""
        print(f"  ● {pi.ip}{host} [{pi.mac}]")


def _ranked(counts: Dict[str, int]):
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def print_statistics(result: ScanResult):
    print_section("SCAN RESULTS")
    print(f"\n  TOTAL DEVICES: {result.total_devices:4d}    RASPBERRY PI: {result.raspberry_pi_count:4d}")
    
    print_section("MANUFACTURERS")
    manufacturers = _ranked(result.manufacturer_statistics)
    max_count = manufacturers[0][1] if manufacturers else 0
    for name, count in manufacturers[:TOP_MANUFACTURERS]:
        bar_width = int(count / max_count * 20)
        print(f"  {_truncate(name, 35):<35} {'█' * bar_width}{'░' * (20 - bar_width)} {count:2d}")
    if len(manufacturers) > TOP_MANUFACTURERS:
        print(f"  ... and {len(manufacturers) - TOP_MANUFACTURERS} more")
    
    print_section("DEVICE CATEGORIES")
    for name, count in _ranked(result.category_statistics):
        print(f"  • {name:<20} {count:2d}")


def print_outputs(reports: List[ArtifactReport], result: ScanResult):
    print_section("OUTPUT FILES")
    details = {
        "devicesfound.txt": f"({result.total_devices} devices)",
        "devicesfound.json": "(full scan data)",
        "pilist.txt": f"({result.raspberry_pi_count} Raspberry Pi)",
    }
    for report in reports:
        if report.ok:
            print(f"  ✓ {report.path} {details.get(report.name, '')}".rstrip())
        else:
            print(f"  ✗ Failed to save {report.name}: {report.error}")


def print_footer(duration: float):
    print(f"\n{'─' * WIDTH}")
    print(f"  Scan completed in {duration:.2f} seconds")
    print()


def render_result(result: ScanResult, reports: List[ArtifactReport]):
    """Print everything that follows a finished scan."""
    print_outputs(reports, result)
    print_device_table(result.devices)
    print_raspberry_pis(result.raspberry_pis)
    print_statistics(result)
    print_footer(result.duration_seconds)
