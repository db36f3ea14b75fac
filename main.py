#!/usr/bin/env python3
import asyncio
import logging
import sys
from typing import Optional

import typer

from tcpsweep.config import DEFAULT_POLL_INTERVAL_MS, DEFAULT_SOCKETS, DEFAULT_TIMEOUT, ScanConfig
from tcpsweep.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Initialize the Typer application
app = typer.Typer(help="Simple TCP port scanner using non-blocking sockets.")


@app.command()
def scan(
    hosts: str = typer.Option(..., "-h", "--hosts", help="Host or network to scan (e.g. 192.168.1.0/24)"),
    ports: str = typer.Option(..., "-p", "--ports", help="Port or inclusive port range (e.g. 22 or 1-1000)"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "-t", "--timeout", help="Timeout per connection attempt in seconds"),
    sockets: int = typer.Option(DEFAULT_SOCKETS, "-s", "--sockets", help="Parallel sockets (max 1024)"),
    poll_ms: int = typer.Option(DEFAULT_POLL_INTERVAL_MS, "-m", "--poll-ms", help="Internal sleep time between polls in ms"),
    output: Optional[str] = typer.Option(None, "-o", "--output", help="Append open host:port lines to this file"),
    output_json: Optional[str] = typer.Option(None, "-oJ", "--output-json", help="Write the scan summary to a JSON file"),
    output_csv: Optional[str] = typer.Option(None, "-oC", "--output-csv", help="Write open ports to a CSV file"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """Scan a host range for TCP ports accepting connections."""
    from tcpsweep.cli import configure_logging, run_scan

    configure_logging(verbose=verbose, debug=debug)

    try:
        config = ScanConfig.from_args(
            hosts,
            ports,
            sockets=sockets,
            timeout=timeout,
            poll_interval_ms=poll_ms,
            verbose=verbose,
            output=output,
            output_json=output_json,
            output_csv=output_csv,
        )
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(1)

    try:
        asyncio.run(run_scan(config))
    except OSError as e:
        logger.critical(f"Cannot run scan: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        # Only reached where the event loop cannot install a SIGINT handler
        logger.warning("Scan interrupted by user.")


@app.command()
def api(
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False
):
    """Run the scanner as an HTTP API"""
    logger.info(f"Starting API server on {host}:{port} (Debug: {debug})...")
    from api.server import start_api_server
    start_api_server(host, port, debug)


if __name__ == "__main__":
    app()
