"""Exceptions raised by findpi.

Only configuration problems and output failures are raised. Probe
failures, neighbor-table failures and unparseable lines are modelled as
missing data and never surface as exceptions.
"""


class FindPiError(Exception):
    """Base class for findpi errors."""


class ScanConfigurationError(FindPiError):
    """The scan cannot start: no interfaces, bad selection, bad backend."""


class OutputError(FindPiError):
    """An output artifact could not be written."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"failed writing {path}: {reason}")
