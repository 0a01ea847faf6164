"""
Network Disconnect Analyzer - Live State-Change Monitor
Polls the physical adapters every few seconds for a bounded time and logs
every link state change it sees.

Writes two CSV logs:
  - state log: one row per adapter per tick, changed or not
  - event log: one row per detected state change

A physical disconnect triggers one quick re-check so a flapping cable or
switch port (link drops and comes straight back) can be told apart from a
link that stays down.
"""

import csv
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from netdisconnect.adapters import (
    TRACKED_FIELDS, Adapter, AdapterState, get_adapter_state,
)
from netdisconnect.errors import AdapterQueryError

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 5.0
RECHECK_DELAY_SECONDS = 2.0
DEFAULT_MONITOR_MINUTES = 5.0

CRITICAL = "CRITICAL"
WARNING = "WARNING"
INFO = "INFO"

STATE_LOG_HEADER = ["Timestamp", "Adapter"] + list(TRACKED_FIELDS.values())
EVENT_LOG_HEADER = ["Timestamp", "Adapter", "Severity", "Description",
                    "Changes", "RecoveredOnRecheck"]


# ── Data Structures ──────────────────────────────────────────────────────────

@dataclass
class StateChangeRecord:
    """One detected change in an adapter's tracked state."""
    timestamp: datetime
    adapter_name: str
    changes: Dict[str, Tuple[str, str]]     # attr -> (old, new)
    severity: str
    description: str
    recovered_on_recheck: bool = False      # Link came back on the re-check

    @property
    def changes_text(self) -> str:
        return "; ".join(
            f"{TRACKED_FIELDS.get(attr, attr)}: {old} -> {new}"
            for attr, (old, new) in self.changes.items()
        )


# ── Transition Rules ─────────────────────────────────────────────────────────

def classify_transition(previous: AdapterState, current: AdapterState) -> Tuple[str, str]:
    """Return (severity, description) for a change between two snapshots."""
    if (previous.media_connect_state == "Connected"
            and current.media_connect_state == "Disconnected"
            and previous.admin_status == "Up"):
        return CRITICAL, "physical disconnect"

    if (current.admin_status not in ("Up", "Unknown")
            and previous.media_connect_state == "Connected"
            and current.media_connect_state in ("Connected", "Unknown")):
        return WARNING, "software-level disconnect"

    if previous.admin_status != "Up" and current.admin_status == "Up":
        return INFO, "reconnected"

    if (previous.media_connect_state == "Disconnected"
            and current.media_connect_state == "Connected"
            and current.admin_status == "Up"):
        return INFO, "reconnected"

    return INFO, "state change"


# ── CSV Logs ─────────────────────────────────────────────────────────────────

class MonitorLog:
    """Append-only CSV file.  The header is written once, at creation."""

    def __init__(self, path: str, header: Sequence[str]):
        self.path = path
        self.header = list(header)
        self.row_count = 0
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(self.header)

    def append(self, row: Sequence) -> None:
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            csv.writer(f).writerow(list(row))
        self.row_count += 1


def _fmt_time(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def monitor_log_paths(output_dir: str, started: Optional[datetime] = None) -> Tuple[str, str]:
    """Timestamped (state_log, event_log) paths for one invocation."""
    stamp = (started or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return (
        os.path.join(output_dir, f"AdapterStates_{stamp}.csv"),
        os.path.join(output_dir, f"AdapterEvents_{stamp}.csv"),
    )


# ── Monitor ──────────────────────────────────────────────────────────────────

class AdapterMonitor:
    """
    Sequential polling loop over a fixed set of adapters.

    Usage:
        monitor = AdapterMonitor(partition.physical, state_csv, event_csv)
        monitor.set_on_change(print_change)
        records = monitor.run(duration_minutes=5)
    """

    def __init__(
        self,
        adapters: Sequence[Adapter],
        state_log_path: str,
        event_log_path: str,
        fetch_state: Callable[[str], AdapterState] = get_adapter_state,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        recheck_delay: float = RECHECK_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.adapters = list(adapters)
        self.fetch_state = fetch_state
        self.poll_interval = poll_interval
        self.recheck_delay = recheck_delay
        self._sleep = sleep
        self._clock = clock

        self.state_log = MonitorLog(state_log_path, STATE_LOG_HEADER)
        self.event_log = MonitorLog(event_log_path, EVENT_LOG_HEADER)

        self.last_state: Dict[str, AdapterState] = {}
        self.records: List[StateChangeRecord] = []
        self.errors: List[Tuple[str, str]] = []
        self.tick_count = 0
        self.interrupted = False

        self._on_change: Optional[Callable[[StateChangeRecord], None]] = None
        self._on_error: Optional[Callable[[str, str], None]] = None

    def set_on_change(self, callback: Callable[[StateChangeRecord], None]):
        """Set callback fired for every detected state change."""
        self._on_change = callback

    def set_on_error(self, callback: Callable[[str, str], None]):
        """Set callback fired as (adapter_name, message) when a poll fails."""
        self._on_error = callback

    # ── Poll Loop ────────────────────────────────────────────────────────

    def run(self, duration_minutes: float = DEFAULT_MONITOR_MINUTES) -> List[StateChangeRecord]:
        """Tick until the duration has elapsed or the operator interrupts."""
        duration = duration_minutes * 60
        start = self._clock()
        logger.info(f"Monitoring {len(self.adapters)} adapters for "
                    f"{duration_minutes} min (interval={self.poll_interval}s)")
        try:
            while self._clock() - start < duration:
                cycle_start = self._clock()
                self.tick()
                elapsed = self._clock() - cycle_start
                sleep_time = max(0.0, self.poll_interval - elapsed)
                if sleep_time > 0:
                    self._sleep(sleep_time)
        except KeyboardInterrupt:
            self.interrupted = True
            logger.info("Monitoring interrupted by operator")

        logger.info(f"Monitor finished: {self.tick_count} ticks, "
                    f"{len(self.records)} state changes")
        return list(self.records)

    def tick(self) -> List[StateChangeRecord]:
        """Poll every adapter once and return the changes found this tick."""
        self.tick_count += 1
        changes = []
        for adapter in self.adapters:
            try:
                current = self.fetch_state(adapter.name)
            except (AdapterQueryError, OSError) as e:
                self._report_error(adapter.name, str(e))
                continue

            self.state_log.append(
                [_fmt_time(current.timestamp), adapter.name]
                + [getattr(current, attr) for attr in TRACKED_FIELDS]
            )

            previous = self.last_state.get(adapter.name)
            if previous is None:
                # First observation is the baseline
                self.last_state[adapter.name] = current
                continue

            diff = previous.diff(current)
            if not diff:
                continue

            record = self._record_change(adapter.name, previous, current, diff)
            self.last_state[adapter.name] = current
            changes.append(record)
        return changes

    def _record_change(self, name: str, previous: AdapterState,
                       current: AdapterState, diff: Dict[str, Tuple[str, str]]) -> StateChangeRecord:
        severity, description = classify_transition(previous, current)
        record = StateChangeRecord(
            timestamp=current.timestamp,
            adapter_name=name,
            changes=diff,
            severity=severity,
            description=description,
        )
        if severity == CRITICAL:
            record.recovered_on_recheck = self._recheck(name)

        self.event_log.append([
            _fmt_time(record.timestamp), name, record.severity,
            record.description, record.changes_text,
            int(record.recovered_on_recheck),
        ])
        self.records.append(record)
        logger.info(f"{severity} {name}: {description} ({record.changes_text})")

        if self._on_change:
            try:
                self._on_change(record)
            except Exception as e:
                logger.debug(f"Change callback error: {e}")
        return record

    def _recheck(self, name: str) -> bool:
        """Re-poll once after a short delay; True if the link is back."""
        self._sleep(self.recheck_delay)
        try:
            state = self.fetch_state(name)
        except (AdapterQueryError, OSError) as e:
            self._report_error(name, f"re-check failed: {e}")
            return False
        recovered = state.media_connect_state == "Connected"
        if recovered:
            logger.warning(f"{name}: link recovered within {self.recheck_delay}s (flapping)")
        return recovered

    def _report_error(self, name: str, message: str):
        logger.warning(f"Poll failed for {name}: {message}")
        self.errors.append((name, message))
        if self._on_error:
            try:
                self._on_error(name, message)
            except Exception as e:
                logger.debug(f"Error callback error: {e}")

    # ── Summary ──────────────────────────────────────────────────────────

    def counts_by_severity(self) -> Dict[str, int]:
        counts = {CRITICAL: 0, WARNING: 0, INFO: 0}
        for r in self.records:
            counts[r.severity] = counts.get(r.severity, 0) + 1
        return counts

    @property
    def flapping_adapters(self) -> List[str]:
        return sorted({r.adapter_name for r in self.records if r.recovered_on_recheck})
