# Scanner module
from .network_scanner import NetworkScanner
from .oui_lookup import OuiClassifier, OuiEntry, load_oui_database
from .prober import NmapProbe, ping_host, probe

__all__ = [
    "NetworkScanner",
    "OuiClassifier",
    "OuiEntry",
    "load_oui_database",
    "NmapProbe",
    "ping_host",
    "probe",
]
