"""
Network Disconnect Analyzer - Event Collector
Pulls adapter-related entries out of the Windows System event log and
normalizes them into NetworkEvent records.

Each event id is queried separately.  A failing query is logged and recorded
but never stops the other ids from being collected.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from netdisconnect.errors import EventLogUnavailableError, EventQueryError
from netdisconnect.system_utils import IS_WINDOWS, PowerShellError, run_powershell_json

logger = logging.getLogger(__name__)


# ── Event Catalogue ──────────────────────────────────────────────────────────

NETWORK_EVENT_IDS: Dict[int, str] = {
    27: "Network adapter disabled / link disconnected",
    32: "Network link established",
    4201: "Network adapter connected (TCP/IP)",
    4202: "Network adapter disconnected (TCP/IP)",
    10400: "Network interface reset started (NDIS)",
    10401: "Network interface reset completed (NDIS)",
    10317: "Network miniport stopped responding",
    1129: "Group Policy failed: no network connectivity",
    6062: "Lower-layer network event",
    1014: "DNS name resolution timed out",
}

# Event ids that indicate an adapter actually lost its link
DISCONNECT_EVENT_IDS = frozenset({27, 4202, 10400, 10317})

DEFAULT_LOOKBACK_HOURS = 24

_LEVEL_NAMES = {
    0: "Information",
    1: "Critical",
    2: "Error",
    3: "Warning",
    4: "Information",
    5: "Verbose",
}

# Signature: query(event_id, since) -> raw records
EventQuery = Callable[[int, datetime], List[dict]]


# ── Data Structures ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class NetworkEvent:
    """One event log record reduced to what the analyzer needs."""
    timestamp: datetime
    event_id: int
    description: str
    severity: str = "Information"
    message: str = ""
    provider: str = ""

    @property
    def is_disconnect(self) -> bool:
        return self.event_id in DISCONNECT_EVENT_IDS

    @property
    def first_line(self) -> str:
        return self.message.strip().splitlines()[0] if self.message.strip() else ""


# ── Normalization ────────────────────────────────────────────────────────────

_MS_DATE = re.compile(r"/Date\((-?\d+)\)/")


def parse_event_time(value) -> datetime:
    """
    Parse a TimeCreated value.  Accepts datetime objects, ISO 8601 strings
    and the legacy "/Date(ms)/" form older ConvertTo-Json versions emit.
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unusable event timestamp: {value!r}")
    match = _MS_DATE.search(value)
    if match:
        return datetime.fromtimestamp(int(match.group(1)) / 1000)
    return datetime.fromisoformat(value.strip())


def normalize_event(raw: dict, event_id: int, description: str) -> NetworkEvent:
    """Map one raw event log record into a NetworkEvent."""
    level = raw.get("LevelDisplayName")
    if not level:
        level = _LEVEL_NAMES.get(raw.get("Level"), "Information")
    return NetworkEvent(
        timestamp=parse_event_time(raw.get("TimeCreated")),
        event_id=int(raw.get("Id", event_id)),
        description=description,
        severity=str(level),
        message=str(raw.get("Message") or ""),
        provider=str(raw.get("ProviderName") or ""),
    )


# ── Event Log Backend ────────────────────────────────────────────────────────

def query_windows_event_log(event_id: int, since: datetime) -> List[dict]:
    """Query the System log for one event id since a point in time."""
    if not IS_WINDOWS:
        raise EventLogUnavailableError("The Windows event log is only available on Windows")

    start = since.strftime("%Y-%m-%dT%H:%M:%S")
    command = (
        "try { "
        f"Get-WinEvent -FilterHashtable @{{LogName='System'; Id={int(event_id)}; "
        f"StartTime=[datetime]'{start}'}} -ErrorAction Stop "
        "| Select-Object @{n='TimeCreated';e={$_.TimeCreated.ToString('yyyy-MM-ddTHH:mm:ss.fff')}}, "
        "Id, Level, LevelDisplayName, ProviderName, Message "
        "| ConvertTo-Json -Depth 2 "
        "} catch { "
        "if ($_.Exception.Message -match 'No events were found') { exit 0 } "
        "Write-Error $_.Exception.Message; exit 1 }"
    )
    try:
        return run_powershell_json(command, timeout=60)
    except PowerShellError as e:
        raise EventQueryError(event_id, e.stderr or str(e)) from e
    except OSError as e:
        raise EventQueryError(event_id, str(e)) from e


# ── Collector ────────────────────────────────────────────────────────────────

@dataclass
class CollectionFailure:
    event_id: int
    description: str
    error: str


@dataclass
class CollectionResult:
    """Everything one collection pass produced."""
    events: List[NetworkEvent] = field(default_factory=list)
    failures: List[CollectionFailure] = field(default_factory=list)
    since: Optional[datetime] = None
    counts: Dict[int, int] = field(default_factory=dict)

    @property
    def disconnect_events(self) -> List[NetworkEvent]:
        return [e for e in self.events if e.is_disconnect]


class EventCollector:
    """
    Collects network events for a fixed set of ids over a trailing window.

    Usage:
        collector = EventCollector()
        result = collector.collect(hours=24)
    """

    def __init__(self, query: Optional[EventQuery] = None,
                 event_ids: Optional[Dict[int, str]] = None):
        self.query = query or query_windows_event_log
        self.event_ids = dict(event_ids or NETWORK_EVENT_IDS)

    def collect(self, hours: float = DEFAULT_LOOKBACK_HOURS,
                now: Optional[datetime] = None) -> CollectionResult:
        """Query every event id and return all events, newest first."""
        since = (now or datetime.now()) - timedelta(hours=hours)
        result = CollectionResult(since=since)

        for event_id, description in self.event_ids.items():
            try:
                raw_records = self.query(event_id, since)
            except Exception as e:
                logger.warning(f"Event query for id {event_id} failed: {e}")
                result.failures.append(CollectionFailure(event_id, description, str(e)))
                continue

            count = 0
            for raw in raw_records:
                try:
                    result.events.append(normalize_event(raw, event_id, description))
                    count += 1
                except (ValueError, TypeError) as e:
                    logger.warning(f"Skipping malformed event {event_id} record: {e}")
            result.counts[event_id] = count
            logger.info(f"Event {event_id} ({description}): {count} records")

        result.events.sort(key=lambda e: e.timestamp, reverse=True)
        return result
