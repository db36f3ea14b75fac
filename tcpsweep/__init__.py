# tcpsweep/__init__.py
from .address_space import AddressSpace
from .config import ScanConfig
from .engine import ScanEngine, run_scan
from .errors import ConfigurationError, ResourceExhaustion, ScanError
from .models import OpenPort, ProgressSnapshot, ScanSummary, Target
from .pool import MAX_CAPACITY, ScanPool
from .slot import AttemptOutcome, AttemptSlot, SlotState

__version__ = "0.1.0"

__all__ = [
    "AddressSpace",
    "AttemptOutcome",
    "AttemptSlot",
    "ConfigurationError",
    "MAX_CAPACITY",
    "OpenPort",
    "ProgressSnapshot",
    "ResourceExhaustion",
    "ScanConfig",
    "ScanEngine",
    "ScanError",
    "ScanPool",
    "ScanSummary",
    "SlotState",
    "Target",
    "run_scan",
]
