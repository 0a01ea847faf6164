"""
Network Disconnect Analyzer - CSV Export
"""

import csv
import logging
import os
from typing import Sequence, Tuple

from netdisconnect.correlation import CorrelationResult

logger = logging.getLogger(__name__)

EVENTS_CSV_HEADER = [
    "Timestamp", "EventId", "Description", "Severity", "Adapter",
    "AdapterType", "CorrelatedEvents", "Message",
]


def adapter_type_label(result: CorrelationResult) -> str:
    if not result.is_attributed:
        return "Unattributed"
    return "Physical" if result.is_physical else "Virtual/Other"


def export_events_csv(results: Sequence[CorrelationResult], filepath: str) -> Tuple[bool, str]:
    """Write one row per disconnect event with its correlated context."""
    if not results:
        return False, "No disconnect events to export"

    try:
        os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
        with open(filepath, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(EVENTS_CSV_HEADER)
            for r in results:
                event = r.anchor
                context = "; ".join(
                    f"{c.event_id}@{c.timestamp.strftime('%H:%M:%S')}"
                    for c in r.correlated
                )
                writer.writerow([
                    event.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
                    event.event_id,
                    event.description,
                    event.severity,
                    r.adapter_label,
                    adapter_type_label(r),
                    context,
                    event.first_line,
                ])
    except OSError as e:
        logger.warning(f"CSV export failed: {e}")
        return False, f"Export failed: {e}"

    logger.info(f"Exported {len(results)} disconnect events to {filepath}")
    return True, f"Exported {len(results)} events to {filepath}"
