# tcpsweep/cli.py
import asyncio
import logging
import signal

from .config import ScanConfig
from .engine import ScanEngine
from .models import ScanSummary
from .output_formatter import save_csv, save_json
from .sinks import ConsoleSink, FileSink, ProgressPrinter, ResultSink
from .utils import format_duration

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(levelname)s: %(message)s'


def configure_logging(verbose: bool = False, debug: bool = False):
    """Set the root log level from the command-line flags (WARNING by default)."""
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose:
        logging.getLogger().setLevel(logging.INFO)
    else:
        logging.getLogger().setLevel(logging.WARNING)


def build_sink(config: ScanConfig) -> ResultSink:
    # With a log file, open ports only reach the console in verbose mode
    if config.output:
        return FileSink(config.output, echo=ConsoleSink() if config.verbose else None)
    return ConsoleSink()


def _install_signal_handlers(engine: ScanEngine) -> list:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, engine.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError, ValueError) as e:
            # Without a loop-level handler, Ctrl+C cancels the task and run() still drains
            logger.debug(f"Could not install handler for {sig.name}: {e}")
    return installed


def print_plan(config: ScanConfig):
    space = config.address_space()
    print()
    print(f"Total hosts to scan {space.host_count} ({space.first_host} - {space.last_host})")
    print(f"Total ports to scan {space.total} (range {space.first_port} - {space.last_port})")
    print(f"Estimated time {format_duration(config.estimate_seconds())}.")
    print()


async def run_scan(config: ScanConfig) -> ScanSummary:
    """
    Main async scanning workflow: print the plan, run the engine with
    SIGINT/SIGTERM wired to cancellation, then write the result files.
    """
    if config.verbose:
        print_plan(config)

    with build_sink(config) as sink:
        engine = ScanEngine(config, sink=sink, progress=ProgressPrinter())
        installed = _install_signal_handlers(engine)
        try:
            summary = await engine.run()
        finally:
            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)

    print()
    if summary.cancelled:
        print(f"Open {summary.open_found} [Cancelled]")
    else:
        print(f"Open {summary.open_found} [Done]")
    if config.verbose:
        print(f"Scan completed in {format_duration(summary.duration)}.")

    if config.output_json:
        save_json(summary, config.output_json)
        logger.info(f"Results saved to {config.output_json}")
    if config.output_csv:
        save_csv(summary, config.output_csv)
        logger.info(f"Results saved to {config.output_csv}")

    return summary
