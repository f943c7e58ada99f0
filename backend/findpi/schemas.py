from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
import json


def rfc3339_now() -> str:
    """Current local time in RFC 3339 form, second precision."""
    return datetime.now().astimezone().isoformat(timespec="seconds")


class Device(BaseModel):
    """A host that answered a probe and has a neighbor-table entry."""
    model_config = ConfigDict(frozen=True)
    
    ip: str
    mac: str  # canonical lowercase colon form
    manufacturer: str = "Unknown"
    category: str = "Unknown"
    is_raspberry_pi: bool = False
    hostname: Optional[str] = None
    
    def to_line(self) -> str:
        """Render the device as one line of the device list file."""
        line = f"ip:{self.ip} mac:{self.mac} manufacturer:{self.manufacturer} category:{self.category}"
        if self.hostname:
            line += f" hostname:{self.hostname}"
        if self.is_raspberry_pi:
            line += " [Raspberry Pi]"
        return line


class ScanResult(BaseModel):
    """Complete scan results with metadata."""
    model_config = ConfigDict(frozen=True)
    
    timestamp: str = Field(default_factory=rfc3339_now)
    network: str
    duration_seconds: float
    total_devices: int
    raspberry_pi_count: int
    devices: list[Device] = Field(default_factory=list)
    manufacturer_statistics: dict[str, int] = Field(default_factory=dict)
    category_statistics: dict[str, int] = Field(default_factory=dict)
    
    @property
    def raspberry_pis(self) -> list[Device]:
        return [d for d in self.devices if d.is_raspberry_pi]
    
    def to_json(self) -> str:
        """Serialize as the devicesfound.json document."""
        # hostname is the only optional field and is omitted when unknown
        return json.dumps(self.model_dump(mode="json", exclude_none=True), indent=2)
