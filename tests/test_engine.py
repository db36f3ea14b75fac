import asyncio
import socket
import time

import pytest

from fakes import FakeSocketFactory, bound_closed_port, never_answer, open_only, refuse_all
from tcpsweep.config import ScanConfig
from tcpsweep.engine import ScanEngine
from tcpsweep.sinks import CollectingSink


def _config(hosts, ports, **kwargs) -> ScanConfig:
    kwargs.setdefault("timeout", 1)
    kwargs.setdefault("poll_interval_ms", 100)
    return ScanConfig.from_args(hosts, ports, **kwargs)


def test_refused_targets_resolve_and_scan_terminates() -> None:
    factory = FakeSocketFactory(refuse_all)
    sink = CollectingSink()
    engine = ScanEngine(_config("10.0.0.1", "80-82", sockets=2), sink=sink, socket_factory=factory)

    started = time.monotonic()
    summary = asyncio.run(engine.run())

    assert time.monotonic() - started < 1.0
    assert summary.issued == summary.total == 3
    assert summary.closed == 3
    assert summary.open_found == 0
    assert summary.resolved == 3
    assert not summary.cancelled
    assert sink.results == []
    assert factory.all_closed_once()


def test_single_open_port_is_reported() -> None:
    factory = FakeSocketFactory(open_only(("10.0.0.2", 81)))
    sink = CollectingSink()
    engine = ScanEngine(_config("10.0.0.0/30", "80-81", sockets=3), sink=sink, socket_factory=factory)

    summary = asyncio.run(engine.run())

    assert [(r.host, r.port) for r in sink.results] == [("10.0.0.2", 81)]
    assert summary.open_found == 1
    assert summary.closed == 7
    assert summary.resolved == summary.total == 8
    assert factory.connected == [(f"10.0.0.{h}", p) for h in range(4) for p in (80, 81)]


def test_unanswered_attempt_times_out() -> None:
    factory = FakeSocketFactory(never_answer)
    engine = ScanEngine(_config("10.255.255.1", "80"), socket_factory=factory)

    summary = asyncio.run(engine.run())

    assert summary.timed_out == 1
    assert summary.open_found == 0
    assert 0.9 <= summary.duration <= 1.5
    assert factory.all_closed_once()


def test_busy_never_exceeds_capacity() -> None:
    seen = []
    factory = FakeSocketFactory(never_answer)
    engine = ScanEngine(_config("10.0.0.0/29", "1-3", sockets=5, timeout=0.2, poll_interval_ms=50),
                        socket_factory=factory)
    engine.progress = lambda snapshot: seen.append((engine.pool.busy(), snapshot.issued))

    summary = asyncio.run(engine.run())

    assert all(busy <= 5 for busy, _ in seen)
    assert [issued for _, issued in seen] == sorted(issued for _, issued in seen)
    assert summary.issued == 24
    assert summary.timed_out == 24
    assert len(factory.created) == 24


def test_cancellation_drains_without_issuing_more() -> None:
    factory = FakeSocketFactory(never_answer)
    engine = ScanEngine(_config("10.0.0.0/24", "80-81", sockets=4, timeout=5, poll_interval_ms=500),
                        socket_factory=factory)
    engine.progress = lambda snapshot: engine.cancel()

    started = time.monotonic()
    summary = asyncio.run(engine.run())

    assert time.monotonic() - started < 0.5
    assert summary.cancelled
    assert summary.issued == 4
    assert summary.timed_out == 4
    assert engine.pool.busy() == 0
    assert len(factory.created) == 4
    assert factory.all_closed_once()


def test_task_cancellation_releases_handles() -> None:
    factory = FakeSocketFactory(never_answer)
    engine = ScanEngine(_config("10.0.0.0/24", "80", sockets=8, timeout=5, poll_interval_ms=500),
                        socket_factory=factory)

    async def scenario():
        task = asyncio.create_task(engine.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert engine.pool.busy() == 0
    assert len(factory.created) == 8
    assert factory.all_closed_once()


def test_resource_exhaustion_backs_off_and_retries() -> None:
    factory = FakeSocketFactory(refuse_all, fail_on=(2,))
    engine = ScanEngine(_config("10.0.0.1", "1-3", sockets=3), socket_factory=factory, backoff=0.05)

    summary = asyncio.run(engine.run())

    assert summary.issued == 3
    assert summary.closed == 3
    assert factory.connected == [("10.0.0.1", 1), ("10.0.0.1", 2), ("10.0.0.1", 3)]


def test_progress_snapshots() -> None:
    snapshots = []
    factory = FakeSocketFactory(refuse_all)
    engine = ScanEngine(_config("10.0.0.1", "1-5", sockets=2), progress=snapshots.append,
                        socket_factory=factory)

    asyncio.run(engine.run())

    assert [s.issued for s in snapshots] == [2, 4, 5]
    assert all(s.total == 5 for s in snapshots)
    assert snapshots[-1].percent == 100.0


def test_loopback_listener_is_open() -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        listener.bind(("127.0.0.1", 0))
        listener.listen(8)
        port = listener.getsockname()[1]

        sink = CollectingSink()
        summary = asyncio.run(ScanEngine(_config("127.0.0.1", str(port)), sink=sink).run())

    assert [(r.host, r.port) for r in sink.results] == [("127.0.0.1", port)]
    assert summary.open_found == 1


def test_loopback_refusal_is_closed() -> None:
    sock, port = bound_closed_port()
    try:
        summary = asyncio.run(ScanEngine(_config("127.0.0.1", str(port))).run())
    finally:
        sock.close()

    assert summary.open_found == 0
    assert summary.closed == 1
    assert summary.duration < 1.0


def test_cancel_after_run_is_harmless() -> None:
    engine = ScanEngine(_config("10.0.0.1", "80"), socket_factory=FakeSocketFactory(refuse_all))
    summary = asyncio.run(engine.run())

    engine.cancel()

    assert not summary.cancelled
    assert engine.cancelled


def test_cancel_from_another_thread() -> None:
    import threading

    factory = FakeSocketFactory(never_answer)
    engine = ScanEngine(_config("10.0.0.0/24", "80", sockets=4, timeout=5, poll_interval_ms=500),
                        socket_factory=factory)
    timer = threading.Timer(0.1, engine.cancel)
    timer.start()
    try:
        summary = asyncio.run(engine.run())
    finally:
        timer.join()

    assert summary.cancelled
    assert summary.issued == 4
    assert factory.all_closed_once()
