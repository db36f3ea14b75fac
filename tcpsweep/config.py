# tcpsweep/config.py
import logging
import math
from dataclasses import dataclass
from typing import Optional

from .address_space import AddressSpace
from .errors import ConfigurationError
from .pool import MAX_CAPACITY
from .utils import MAX_SCAN_PORT, parse_host_spec, parse_port_range

logger = logging.getLogger(__name__)

DEFAULT_SOCKETS = 256
DEFAULT_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL_MS = 500


@dataclass
class ScanConfig:
    base_host: str
    prefix: int
    first_port: int
    last_port: int
    sockets: int = DEFAULT_SOCKETS
    timeout: float = DEFAULT_TIMEOUT
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    verbose: bool = False
    output: Optional[str] = None
    output_json: Optional[str] = None
    output_csv: Optional[str] = None

    def __post_init__(self):
        self._validate()

    @classmethod
    def from_args(
        cls,
        hosts: str,
        ports: str,
        sockets: int = DEFAULT_SOCKETS,
        timeout: float = DEFAULT_TIMEOUT,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        **kwargs,
    ) -> "ScanConfig":
        """Builds a config from the raw host (``a.b.c.d[/n]``) and port (``p`` or ``p1-p2``) strings."""
        base_host, prefix = parse_host_spec(hosts)
        first_port, last_port = parse_port_range(ports)
        return cls(
            base_host=base_host,
            prefix=prefix,
            first_port=first_port,
            last_port=last_port,
            sockets=sockets,
            timeout=timeout,
            poll_interval_ms=poll_interval_ms,
            **kwargs,
        )

    def _validate(self):
        if not (1 <= self.sockets <= MAX_CAPACITY):
            raise ConfigurationError(f"Max sockets number is {MAX_CAPACITY}, got {self.sockets}.")
        if not math.isfinite(self.timeout) or self.timeout <= 0:
            raise ConfigurationError("Timeout must be a positive, finite value.")
        if not math.isfinite(self.poll_interval_ms) or self.poll_interval_ms <= 0:
            raise ConfigurationError("Poll interval must be a positive value.")
        if self.poll_interval_ms / 1000 > self.timeout:
            raise ConfigurationError("Internal sleep time cannot be above timeout value.")
        if not (1 <= self.first_port <= MAX_SCAN_PORT and 1 <= self.last_port <= MAX_SCAN_PORT):
            raise ConfigurationError(f"Port must be a number within 1-{MAX_SCAN_PORT}, "
                                     f"got {self.first_port}-{self.last_port}.")
        # AddressSpace checks the address, prefix and port order
        self._total = self.address_space().total

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000

    def address_space(self) -> AddressSpace:
        return AddressSpace(self.base_host, self.prefix, self.first_port, self.last_port)

    @property
    def total(self) -> int:
        return self._total

    @property
    def capacity(self) -> int:
        """Pool size actually used: never more slots than targets."""
        return min(self.sockets, self.total)

    def estimate_seconds(self) -> float:
        return (self.total // self.capacity) * self.timeout + self.timeout
