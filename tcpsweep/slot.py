# tcpsweep/slot.py
import errno
import logging
import socket
import time
from enum import Enum
from typing import Callable, Optional

from .errors import ResourceExhaustion
from .models import Target

logger = logging.getLogger(__name__)


def _errnos(*names: str) -> frozenset:
    # Windows spells some of these WSAE*, and not every platform defines all of them
    return frozenset(getattr(errno, name) for name in names if hasattr(errno, name))


# connect_ex() results that mean "already connected"
CONNECTED_ERRNOS = _errnos('EISCONN', 'WSAEISCONN')
# connect_ex() results that mean "handshake still running"
IN_PROGRESS_ERRNOS = _errnos(
    'EINPROGRESS', 'EALREADY',
    'WSAEINPROGRESS', 'WSAEALREADY', 'WSAEWOULDBLOCK',
)


class SlotState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"


class AttemptOutcome(Enum):
    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"
    TIMEOUT = "timeout"


def classify_connect_result(code: int) -> AttemptOutcome:
    """Map a non-blocking connect_ex() return code to an attempt outcome."""
    if code == 0 or code in CONNECTED_ERRNOS:
        return AttemptOutcome.OPEN
    if code in IN_PROGRESS_ERRNOS:
        return AttemptOutcome.PENDING
    return AttemptOutcome.CLOSED


def nonblocking_socket() -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


class AttemptSlot:
    """
    One unit of pool capacity: at most one outstanding non-blocking connect.

    The slot is IDLE or CONNECTING. ``assign`` moves it to CONNECTING,
    ``poll`` resolves it back to IDLE once the attempt is open, refused or
    timed out, and ``release`` forces it back to IDLE. Releasing an idle slot
    does nothing, so a handle is never closed twice.
    """
    def __init__(
        self,
        index: int,
        socket_factory: Callable[[], socket.socket] = nonblocking_socket,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.index = index
        self.state = SlotState.IDLE
        self.target: Optional[Target] = None
        self.started_at: Optional[float] = None
        self._sock: Optional[socket.socket] = None
        self._early_result: Optional[int] = None
        self._socket_factory = socket_factory
        self._clock = clock

    @property
    def idle(self) -> bool:
        return self.state is SlotState.IDLE

    def assign(self, target: Target) -> None:
        """
        Start a non-blocking connect to ``target``.

        Raises:
            ResourceExhaustion: the socket could not be created or configured.
                The slot is back to IDLE and the target counts as not attempted.
        """
        if not self.idle:
            raise RuntimeError(f"Slot {self.index} is busy with {self.target}")

        try:
            self._sock = self._socket_factory()
        except OSError as e:
            self.release()
            raise ResourceExhaustion(f"Cannot create socket: {e}", cause=e) from e

        self.target = target
        self.state = SlotState.CONNECTING
        self.started_at = self._clock()

        result = self._sock.connect_ex((target.host, target.port))
        # Loopback targets often answer on the first call; keep the answer for
        # the first poll so the timeout check still runs first.
        if classify_connect_result(result) is not AttemptOutcome.PENDING:
            self._early_result = result
        logger.debug(f"Slot {self.index}: connecting to {target} (connect_ex={result})")

    def elapsed(self) -> float:
        if self.started_at is None:
            return 0.0
        return self._clock() - self.started_at

    def poll(self, timeout: float) -> AttemptOutcome:
        """
        Check a CONNECTING slot once.

        Timeout is checked before the connection result. Any outcome other
        than PENDING releases the slot. Polling an idle slot returns PENDING
        and has no effect.
        """
        if self.idle:
            return AttemptOutcome.PENDING

        if self.elapsed() >= timeout:
            logger.debug(f"Slot {self.index}: {self.target} timed out after {self.elapsed():.2f}s")
            self.release()
            return AttemptOutcome.TIMEOUT

        if self._early_result is not None:
            result = self._early_result
        else:
            result = self._sock.connect_ex((self.target.host, self.target.port))

        outcome = classify_connect_result(result)
        if outcome is not AttemptOutcome.PENDING:
            logger.debug(f"Slot {self.index}: {self.target} -> {outcome.value} (connect_ex={result})")
            self.release()
        return outcome

    def evict(self) -> Optional[Target]:
        """Force a CONNECTING slot back to IDLE as a timeout. Returns the evicted target."""
        if self.idle:
            return None
        target = self.target
        self.release()
        return target

    def release(self) -> None:
        sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # never connected
            sock.close()
        self.state = SlotState.IDLE
        self.target = None
        self.started_at = None
        self._early_result = None

    def __repr__(self) -> str:
        return f"AttemptSlot({self.index}, {self.state.value}, {self.target})"
