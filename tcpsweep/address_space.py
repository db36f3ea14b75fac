# tcpsweep/address_space.py
import ipaddress
import logging
from typing import Iterator, Optional, Union

from .errors import ConfigurationError
from .models import Target

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535


class AddressSpace:
    """
    Cursor over the cross product of a host range and a port range.

    The host range starts at ``base`` and runs up to ``base | hostmask`` for
    the given prefix length, both ends included. The base is not masked down,
    so ``10.0.0.5/30`` covers 10.0.0.5 - 10.0.0.7. Pairs come out host-major,
    port-minor: every port of one host before the next host. Once exhausted
    the cursor stays exhausted.
    """
    def __init__(
        self,
        base: Union[str, int, ipaddress.IPv4Address],
        prefix: int,
        first_port: int,
        last_port: int,
    ):
        try:
            base_addr = ipaddress.IPv4Address(base)
        except (ipaddress.AddressValueError, ValueError) as e:
            raise ConfigurationError(f"Invalid IP address given: {base!r}") from e

        if not isinstance(prefix, int) or not (0 <= prefix <= 32):
            raise ConfigurationError(f"Prefix length must be within 0-32, got {prefix!r}.")
        if not (MIN_PORT <= first_port <= MAX_PORT and MIN_PORT <= last_port <= MAX_PORT):
            raise ConfigurationError(
                f"Ports must be within {MIN_PORT}-{MAX_PORT}, got {first_port}-{last_port}."
            )
        if first_port > last_port:
            raise ConfigurationError(f"Invalid port range: {first_port}-{last_port}.")

        hostmask = (1 << (32 - prefix)) - 1
        self._first_host = int(base_addr)
        self._last_host = self._first_host | hostmask
        self.prefix = prefix
        self.first_port = first_port
        self.last_port = last_port

        self._current_host = self._first_host
        self._current_port = first_port

    @classmethod
    def from_network(cls, network: str, first_port: int, last_port: int) -> "AddressSpace":
        """Build from ``a.b.c.d`` or ``a.b.c.d/n``; a bare address is a /32."""
        base, sep, prefix = network.strip().partition('/')
        if not sep:
            return cls(base, 32, first_port, last_port)
        try:
            prefix_len = int(prefix)
        except ValueError as e:
            raise ConfigurationError(f"Invalid prefix length in '{network}'.") from e
        return cls(base, prefix_len, first_port, last_port)

    @property
    def first_host(self) -> str:
        return str(ipaddress.IPv4Address(self._first_host))

    @property
    def last_host(self) -> str:
        return str(ipaddress.IPv4Address(self._last_host))

    @property
    def host_count(self) -> int:
        return self._last_host - self._first_host + 1

    @property
    def port_count(self) -> int:
        return self.last_port - self.first_port + 1

    @property
    def total(self) -> int:
        return self.host_count * self.port_count

    @property
    def exhausted(self) -> bool:
        return self._current_host > self._last_host

    def peek(self) -> Optional[Target]:
        """Return the pair next_target() would produce, without moving the cursor."""
        if self.exhausted:
            return None
        return Target(str(ipaddress.IPv4Address(self._current_host)), self._current_port)

    def next_target(self) -> Optional[Target]:
        """Return the next (host, port) pair, or None once the space is exhausted."""
        target = self.peek()
        if target is None:
            return None

        self._current_port += 1
        if self._current_port > self.last_port:
            self._current_host += 1
            self._current_port = self.first_port
        return target

    def __iter__(self) -> Iterator[Target]:
        return self

    def __next__(self) -> Target:
        target = self.next_target()
        if target is None:
            raise StopIteration
        return target

    def __repr__(self) -> str:
        return (f"AddressSpace({self.first_host}-{self.last_host}, "
                f"ports {self.first_port}-{self.last_port})")
