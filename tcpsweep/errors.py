# tcpsweep/errors.py
from typing import Optional


class ScanError(Exception):
    """Base class for errors raised by the scan engine."""


class ConfigurationError(ScanError, ValueError):
    """Invalid scan parameters. Raised before any connection attempt is issued."""


class ResourceExhaustion(ScanError, OSError):
    """
    A socket could not be created or configured for a new attempt.

    Recoverable: the slot is released, the target is left unconsumed and the
    engine backs off before trying again. ``issued`` holds the number of
    attempts that were started by the same fill pass before the failure.
    """
    def __init__(self, message: str, issued: int = 0, cause: Optional[OSError] = None):
        super().__init__(message)
        self.issued = issued
        self.cause = cause
