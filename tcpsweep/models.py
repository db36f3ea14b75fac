# tcpsweep/models.py
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional


class Target(NamedTuple):
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass
class OpenPort:
    host: str
    port: int
    latency: Optional[float] = None  # seconds from connect() to the poll that saw it open


@dataclass
class ProgressSnapshot:
    issued: int
    total: int
    open_found: int

    @property
    def percent(self) -> float:
        if self.total <= 0:
            return 100.0
        return self.issued / self.total * 100


@dataclass
class ScanSummary:
    total: int
    issued: int
    open_found: int
    closed: int = 0
    timed_out: int = 0
    duration: float = 0.0
    cancelled: bool = False
    open_ports: List[OpenPort] = field(default_factory=list)

    @property
    def resolved(self) -> int:
        """Attempts that reached a terminal outcome (open, closed or timed out)."""
        return self.open_found + self.closed + self.timed_out
