"""Writing scan results to disk.

Three artifacts land in the output directory (the user's home by
default): the device list, the JSON summary and the Raspberry Pi list.
Each artifact is attempted independently.
"""

import logging
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Union

from .core.errors import OutputError
from .schemas import Device, ScanResult

logger = logging.getLogger(__name__)

DEVICES_FILE = "devicesfound.txt"
JSON_FILE = "devicesfound.json"
PI_FILE = "pilist.txt"


class ArtifactReport(NamedTuple):
    name: str
    path: Optional[Path]
    error: Optional[str] = None
    
    @property
    def ok(self) -> bool:
        return self.error is None


def resolve_output_dir(output_dir: Optional[Union[str, Path]] = None) -> Path:
    """Return the output directory, the user's home directory by default."""
    if output_dir:
        return Path(output_dir).expanduser()
    try:
        return Path.home()
    except (RuntimeError, KeyError) as e:
        raise OutputError("~", f"failed to get home directory: {e}") from e


def write_device_list(devices: Iterable[Device], path: Path) -> None:
    """Write one `ip:... mac:... manufacturer:... category:...` line per device."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            for device in devices:
                f.write(device.to_line() + "\n")
    except OSError as e:
        raise OutputError(path, e) from e


def write_json(result: ScanResult, path: Path) -> None:
    """Write the scan result as indented JSON."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(result.to_json() + "\n")
    except OSError as e:
        raise OutputError(path, e) from e


def write_outputs(result: ScanResult,
                  output_dir: Optional[Union[str, Path]] = None) -> List[ArtifactReport]:
    """
    Write every artifact that applies to `result`.
    
    The device list is skipped when no devices were found and the
    Raspberry Pi list when none of them is a Pi. A failing artifact does
    not stop the others.
    
    Returns:
        One report per attempted artifact
    """
    jobs = []
    if result.devices:
        jobs.append((DEVICES_FILE, lambda p: write_device_list(result.devices, p)))
    jobs.append((JSON_FILE, lambda p: write_json(result, p)))
    if result.raspberry_pis:
        jobs.append((PI_FILE, lambda p: write_device_list(result.raspberry_pis, p)))
    
    reports = []
    for name, write in jobs:
        path = None
        try:
            path = resolve_output_dir(output_dir) / name
            write(path)
        except OutputError as e:
            logger.error("Failed to save %s: %s", name, e)
            reports.append(ArtifactReport(name, path, str(e)))
        else:
            reports.append(ArtifactReport(name, path))
    
    return reports
