# tcpsweep/pool.py
import logging
import socket
import time
from collections import Counter
from typing import Callable, List, Optional

from .address_space import AddressSpace
from .errors import ConfigurationError, ResourceExhaustion
from .models import OpenPort
from .slot import AttemptOutcome, AttemptSlot, nonblocking_socket

logger = logging.getLogger(__name__)

MAX_CAPACITY = 1024


class ScanPool:
    """
    Fixed-capacity set of attempt slots.

    Scheduling is three calls: ``fill_idle`` puts new targets into free
    slots, ``poll_all`` checks every busy slot once, and ``drain_all``
    forces whatever is left back to idle.
    """
    def __init__(
        self,
        capacity: int,
        socket_factory: Callable[[], socket.socket] = nonblocking_socket,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not (1 <= capacity <= MAX_CAPACITY):
            raise ConfigurationError(f"Pool capacity must be within 1-{MAX_CAPACITY}, got {capacity}.")
        self.capacity = capacity
        self.slots: List[AttemptSlot] = [
            AttemptSlot(i, socket_factory=socket_factory, clock=clock) for i in range(capacity)
        ]
        # terminal outcomes seen so far (OPEN / CLOSED / TIMEOUT)
        self.outcomes: Counter = Counter()

    def busy(self) -> int:
        return sum(1 for slot in self.slots if not slot.idle)

    def idle_count(self) -> int:
        return self.capacity - self.busy()

    def _next_idle(self, start: int = 0) -> Optional[AttemptSlot]:
        for slot in self.slots[start:]:
            if slot.idle:
                return slot
        return None

    def fill_idle(self, space: AddressSpace) -> int:
        """
        Assign targets from ``space`` to idle slots until the pool is full or the
        space is exhausted.

        Returns:
            Number of attempts issued by this call.

        Raises:
            ResourceExhaustion: a socket could not be created. ``issued`` on the
                exception carries the attempts issued before the failure; the
                failing target is left in ``space``.
        """
        issued = 0
        slot = self._next_idle()
        while slot is not None:
            target = space.peek()
            if target is None:
                break
            try:
                slot.assign(target)
            except ResourceExhaustion as e:
                e.issued = issued
                raise
            space.next_target()
            issued += 1
            slot = self._next_idle(slot.index + 1)
        return issued

    def poll_all(self, timeout: float) -> List[OpenPort]:
        """Poll each busy slot once and return the open ports found in this pass."""
        opened: List[OpenPort] = []
        for slot in self.slots:
            if slot.idle:
                continue
            target = slot.target
            elapsed = slot.elapsed()
            outcome = slot.poll(timeout)
            if outcome is AttemptOutcome.PENDING:
                continue
            self.outcomes[outcome] += 1
            if outcome is AttemptOutcome.OPEN:
                opened.append(OpenPort(host=target.host, port=target.port, latency=elapsed))
        return opened

    def drain_all(self) -> int:
        """Evict every busy slot as a timeout, closing its socket. Returns the number evicted."""
        evicted = 0
        for slot in self.slots:
            target = slot.evict()
            if target is not None:
                logger.debug(f"Drained {target} from slot {slot.index}")
                self.outcomes[AttemptOutcome.TIMEOUT] += 1
                evicted += 1
        return evicted

    def close(self) -> None:
        self.drain_all()
