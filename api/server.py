# api/server.py
from flask import Flask, request, jsonify
import asyncio # Required to run the asynchronous scan engine
import logging
from typing import Any, Dict

from tcpsweep.config import DEFAULT_POLL_INTERVAL_MS, DEFAULT_SOCKETS, DEFAULT_TIMEOUT, ScanConfig
from tcpsweep.engine import ScanEngine
from tcpsweep.errors import ConfigurationError
from tcpsweep.output_formatter import summary_to_dict
from tcpsweep.sinks import CollectingSink

app = Flask(__name__)
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def run_async_in_sync(coro):
    """Runs an asynchronous coroutine in a synchronous context."""
    return asyncio.run(coro)


@app.route("/api/scan", methods=["POST"])
def scan():
    """
    Handles POST requests to /api/scan.
    Expects a JSON body with 'hosts' and 'ports' and optional
    'timeout', 'sockets' and 'poll_interval_ms'.
    """
    data: Dict[str, Any] = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({"error": "Request must be a non-empty JSON object."}), 400

    hosts = data.get("hosts")
    ports = data.get("ports")
    if not hosts or ports is None:
        return jsonify({"error": "The 'hosts' and 'ports' parameters are required in the request body."}), 400

    try:
        config = ScanConfig.from_args(
            str(hosts),
            str(ports),
            sockets=int(data.get("sockets", DEFAULT_SOCKETS)),
            timeout=float(data.get("timeout", DEFAULT_TIMEOUT)),
            poll_interval_ms=int(data.get("poll_interval_ms", DEFAULT_POLL_INTERVAL_MS)),
        )
    except (ConfigurationError, TypeError, ValueError) as e:
        logger.warning(f"Rejected scan request {data!r}: {e}")
        return jsonify({"error": f"Invalid scan parameters: {e}"}), 400

    logger.info(f"API Scan Request: {hosts} ports {ports} ({config.total} attempts).")
    sink = CollectingSink()
    engine = ScanEngine(config, sink=sink)
    try:
        summary = run_async_in_sync(engine.run())
    except OSError as e:
        logger.error(f"Scan of {hosts} failed: {e}", exc_info=True)
        return jsonify({"error": f"Scan failed: {e}"}), 500

    logger.info(f"Completed scan for {hosts}. Found {summary.open_found} open ports.")
    return jsonify({
        "status": "success",
        "hosts": hosts,
        "ports": ports,
        "summary": summary_to_dict(summary),
    }), 200


def start_api_server(host: str = "127.0.0.1", port: int = 8000, debug: bool = False):
    """Starts the Flask API server."""
    logger.info(f"Starting Flask API server on http://{host}:{port} (Debug mode: {debug})...")
    # In a production deployment, use a production-ready WSGI server like Gunicorn or uWSGI.
    app.run(host=host, port=port, debug=debug)
