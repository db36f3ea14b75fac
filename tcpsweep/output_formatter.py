# tcpsweep/output_formatter.py
import csv
import json
import logging
from dataclasses import asdict
from typing import Any, Dict, List

from .models import ScanSummary

logger = logging.getLogger(__name__)

CSV_HEADERS = ['host', 'port', 'latency']


def summary_to_dict(summary: ScanSummary) -> Dict[str, Any]:
    data = asdict(summary)
    data['resolved'] = summary.resolved
    return data


def save_json(summary: ScanSummary, filename: str):
    """
    Saves a scan summary, open ports included, to a JSON file.

    Args:
        summary: The finished scan.
        filename: The name of the JSON file to save to.
    """
    try:
        with open(filename, 'w', encoding='utf-8') as f:
            json.dump(summary_to_dict(summary), f, indent=4)
    except OSError as e:
        logger.error(f"Error saving JSON to {filename}: {e}")


def save_csv(summary: ScanSummary, filename: str):
    """Saves the open ports of a scan to a CSV file, one row per port."""
    rows: List[Dict[str, Any]] = [asdict(p) for p in summary.open_ports]
    if not rows:
        logger.info(f"No open ports to save to CSV for {filename}.")

    try:
        with open(filename, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=CSV_HEADERS)
            writer.writeheader()
            for row in rows:
                writer.writerow({key: row.get(key, '') for key in CSV_HEADERS})
    except OSError as e:
        logger.error(f"Error saving CSV to {filename}: {e}")
