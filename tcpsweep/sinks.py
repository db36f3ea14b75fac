# tcpsweep/sinks.py
import logging
import sys
from typing import List, Optional, TextIO

from .models import OpenPort, ProgressSnapshot

logger = logging.getLogger(__name__)


class ResultSink:
    """Receives one call per confirmed open port, in discovery order."""
    def emit(self, result: OpenPort) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class ConsoleSink(ResultSink):
    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def emit(self, result: OpenPort) -> None:
        print(f"Open {result.host}:{result.port}    ", file=self.stream, flush=True)


class CollectingSink(ResultSink):
    def __init__(self):
        self.results: List[OpenPort] = []

    def emit(self, result: OpenPort) -> None:
        self.results.append(result)


class FileSink(ResultSink):
    """
    Appends ``host:port`` lines to a log file, flushing after every line so a
    scan interrupted halfway still leaves everything found so far on disk.

    Args:
        path: Log file; opened in append mode and created if missing.
        echo: Optional sink that also gets every result (console in verbose mode).
    """
    def __init__(self, path: str, echo: Optional[ResultSink] = None):
        self.path = path
        self.echo = echo
        self._file = open(path, 'a+', encoding='utf-8')

    def emit(self, result: OpenPort) -> None:
        self._file.write(f"{result.host}:{result.port}\n")
        self._file.flush()
        if self.echo:
            self.echo.emit(result)

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.debug(f"Closed result log {self.path}")


class ProgressPrinter:
    """Rewrites a single ``Open N [xx.xx%]`` status line on stderr."""
    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stderr

    def __call__(self, snapshot: ProgressSnapshot) -> None:
        self.stream.write(f"Open {snapshot.open_found} [{snapshot.percent:0.2f}%]\r")
        self.stream.flush()
