# tcpsweep/utils.py
import ipaddress
import logging
from typing import Tuple, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# The highest port accepted on the command line
MAX_SCAN_PORT = 65534


def validate_ip(ip: str) -> bool:
    """Validates if a string is a valid IPv4 address."""
    try:
        ipaddress.IPv4Address(ip)
        return True
    except ValueError:
        return False


def validate_port(port: Union[int, str]) -> bool:
    """Validates if a value is a port number accepted for scanning (1-65534)."""
    try:
        port_num = int(port)
        return 0 < port_num <= MAX_SCAN_PORT
    except (ValueError, TypeError):
        return False


def parse_host_spec(host_str: str) -> Tuple[str, int]:
    """
    Parses ``a.b.c.d`` or ``a.b.c.d/n`` into a base address and a prefix length.

    A bare address is a single host (/32). Raises ConfigurationError for
    anything else.
    """
    if not host_str or not host_str.strip():
        raise ConfigurationError("No target host given.")

    base, sep, prefix_str = host_str.strip().partition('/')
    if not validate_ip(base):
        raise ConfigurationError(f"Invalid IP address given: '{base}'.")
    if not sep:
        return base, 32

    try:
        prefix = int(prefix_str)
    except ValueError as e:
        raise ConfigurationError(f"Invalid prefix length '{prefix_str}' in '{host_str}'.") from e
    if not (0 <= prefix <= 32):
        raise ConfigurationError(f"Prefix length must be within 0-32, got {prefix}.")
    return base, prefix


def parse_port_range(port_str: str) -> Tuple[int, int]:
    """
    Parses a single port (``22``) or an inclusive range (``1-1024``).

    Raises ConfigurationError for empty, inverted or out-of-range input.
    """
    if port_str is None or not str(port_str).strip():
        raise ConfigurationError("No ports given.")

    port_str = str(port_str).strip()
    start_str, sep, end_str = port_str.partition('-')
    try:
        start = int(start_str)
        end = int(end_str) if sep else start
    except ValueError as e:
        raise ConfigurationError(f"Invalid port specification '{port_str}'.") from e

    if not (validate_port(start) and validate_port(end)):
        raise ConfigurationError(f"Port must be a number within 1-{MAX_SCAN_PORT}, got '{port_str}'.")
    if start > end:
        raise ConfigurationError(f"Invalid port range '{port_str}'.")
    return start, end


def format_duration(seconds: float) -> str:
    """Formats a duration as ``H hours, M mins, S secs``."""
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours} hours, {minutes} mins, {secs} secs"
