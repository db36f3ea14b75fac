import pytest

from tcpsweep.config import ScanConfig
from tcpsweep.errors import ConfigurationError
from tcpsweep.utils import format_duration, parse_host_spec, parse_port_range


def test_from_args_defaults() -> None:
    config = ScanConfig.from_args("192.168.0.0/24", "1-1000")
    assert (config.base_host, config.prefix) == ("192.168.0.0", 24)
    assert (config.first_port, config.last_port) == (1, 1000)
    assert config.sockets == 256
    assert config.timeout == 5
    assert config.poll_interval == 0.5
    assert config.total == 256_000


def test_single_port_and_single_host() -> None:
    config = ScanConfig.from_args("10.0.0.7", "22")
    assert config.prefix == 32
    assert (config.first_port, config.last_port) == (22, 22)
    assert config.total == 1


def test_capacity_is_clipped_to_target_count() -> None:
    config = ScanConfig.from_args("10.0.0.0/31", "80-81", sockets=512)
    assert config.capacity == 4


def test_estimate_seconds() -> None:
    config = ScanConfig.from_args("10.0.0.0/24", "1-10", sockets=256, timeout=2)
    assert config.estimate_seconds() == (2560 // 256) * 2 + 2


@pytest.mark.parametrize("hosts, ports, kwargs", [
    ("300.1.1.1", "80", {}),
    ("10.0.0.0/33", "80", {}),
    ("10.0.0.0/x", "80", {}),
    ("", "80", {}),
    ("10.0.0.1", "", {}),
    ("10.0.0.1", "0", {}),
    ("10.0.0.1", "65535", {}),
    ("10.0.0.1", "90-80", {}),
    ("10.0.0.1", "http", {}),
    ("10.0.0.1", "80", {"sockets": 1025}),
    ("10.0.0.1", "80", {"sockets": 0}),
    ("10.0.0.1", "80", {"timeout": 0}),
    ("10.0.0.1", "80", {"timeout": float("nan")}),
    ("10.0.0.1", "80", {"timeout": float("inf")}),
    ("10.0.0.1", "80", {"poll_interval_ms": float("nan")}),
    ("10.0.0.1", "80", {"timeout": 1, "poll_interval_ms": 1500}),
    ("10.0.0.1", "80", {"poll_interval_ms": 0}),
])
def test_invalid_configuration(hosts, ports, kwargs) -> None:
    with pytest.raises(ConfigurationError):
        ScanConfig.from_args(hosts, ports, **kwargs)


def test_poll_interval_equal_to_timeout_is_allowed() -> None:
    config = ScanConfig.from_args("10.0.0.1", "80", timeout=1, poll_interval_ms=1000)
    assert config.poll_interval == config.timeout


def test_configuration_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_port_range("5-1")


def test_parse_helpers() -> None:
    assert parse_host_spec(" 10.1.1.1/16 ") == ("10.1.1.1", 16)
    assert parse_port_range("1-65534") == (1, 65534)
    assert parse_port_range(443) == (443, 443)


def test_format_duration() -> None:
    assert format_duration(3725) == "1 hours, 2 mins, 5 secs"
    assert format_duration(59.9) == "0 hours, 0 mins, 59 secs"


@pytest.mark.parametrize("first, last", [(1, 65535), (65535, 65535), (0, 80)])
def test_direct_construction_enforces_port_ceiling(first, last) -> None:
    with pytest.raises(ConfigurationError):
        ScanConfig(base_host="10.0.0.1", prefix=32, first_port=first, last_port=last)


def test_total_is_computed_once(monkeypatch) -> None:
    config = ScanConfig.from_args("10.0.0.0/24", "1-100", sockets=64, timeout=2)
    built = []

    import tcpsweep.config as config_module
    real = config_module.AddressSpace
    monkeypatch.setattr(config_module, "AddressSpace", lambda *a: built.append(a) or real(*a))

    assert config.total == 25_600
    assert config.capacity == 64
    assert config.estimate_seconds() == (25_600 // 64) * 2 + 2
    assert built == []
