# Core module
from .config import Settings, get_settings, settings
from .errors import FindPiError, OutputError, ScanConfigurationError

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "FindPiError",
    "OutputError",
    "ScanConfigurationError",
]
