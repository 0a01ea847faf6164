"""
Network Disconnect Analyzer - Correlation Engine
Ties each disconnect event on a physical adapter to the other events that
happened within 30 seconds of it.

The adapter a disconnect belongs to is guessed from the event message text.
That guess is best-effort: messages without a quoted adapter name are kept
as "unattributed" and shown, but they do not count as real disconnects.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Sequence

from netdisconnect.adapters import Adapter, AdapterPartition
from netdisconnect.events import NetworkEvent

logger = logging.getLogger(__name__)

CORRELATION_WINDOW = timedelta(seconds=30)


# ── Data Structures ──────────────────────────────────────────────────────────

@dataclass
class CorrelationResult:
    """One disconnect event and the events surrounding it."""
    anchor: NetworkEvent
    adapter_name: Optional[str] = None      # Name pulled out of the message
    adapter: Optional[Adapter] = None       # Adapter it matched, if any
    correlated: List[NetworkEvent] = field(default_factory=list)

    @property
    def is_attributed(self) -> bool:
        return self.adapter_name is not None

    @property
    def is_physical(self) -> bool:
        return bool(self.adapter and self.adapter.is_physical)

    @property
    def adapter_label(self) -> str:
        if self.adapter:
            return self.adapter.name
        return self.adapter_name or "(unknown adapter)"


@dataclass
class CorrelationSummary:
    total_disconnects: int = 0
    physical: int = 0
    virtual: int = 0          # Attributed, but not to a physical adapter
    unattributed: int = 0

    @property
    def real_disconnects(self) -> int:
        """Attributed disconnects on physical adapters."""
        return self.physical


# ── Entity Extraction ────────────────────────────────────────────────────────

def extract_adapter_name(message) -> Optional[str]:
    """
    Pull an adapter name out of free-text event message.

    Splits on the double-quote character and returns the first quoted
    segment.  Returns None when there is nothing usable; never raises.
    """
    if not isinstance(message, str) or '"' not in message:
        return None
    parts = message.split('"')
    if len(parts) < 3:
        # Unbalanced quote, no closed segment
        return None
    candidate = parts[1].strip()
    return candidate or None


def match_adapter(name: Optional[str], adapters: Sequence[Adapter]) -> Optional[Adapter]:
    """
    Find the adapter an extracted name refers to.

    Case-insensitive, against both the adapter name and description.  An
    exact match anywhere beats a substring match; within each pass the
    first adapter in enumeration order wins.
    """
    if not name:
        return None
    needle = name.casefold()
    values = [(adapter, value.casefold())
              for adapter in adapters
              for value in (adapter.name, adapter.description) if value]
    for adapter, hay in values:
        if needle == hay:
            return adapter
    for adapter, hay in values:
        if needle in hay:
            return adapter
    return None


# ── Correlation ──────────────────────────────────────────────────────────────

def find_correlated(anchor: NetworkEvent, events: Sequence[NetworkEvent],
                    window: timedelta = CORRELATION_WINDOW) -> List[NetworkEvent]:
    """Events of a different id whose time lies within +/- window of anchor."""
    related = []
    for event in events:
        if event is anchor or event.event_id == anchor.event_id:
            continue
        if abs(event.timestamp - anchor.timestamp) <= window:
            related.append(event)
    return related


def correlate(events: Sequence[NetworkEvent],
              partition: AdapterPartition) -> List[CorrelationResult]:
    """
    Build one CorrelationResult per disconnect-class event.

    Only events attributed to a physical adapter get a correlated set.
    Order follows the input (newest first when fed from EventCollector).
    """
    adapters = partition.all
    results = []
    for event in events:
        if not event.is_disconnect:
            continue
        name = extract_adapter_name(event.message)
        adapter = match_adapter(name, adapters)
        result = CorrelationResult(anchor=event, adapter_name=name, adapter=adapter)
        if result.is_physical:
            result.correlated = find_correlated(event, events)
        results.append(result)

    logger.info(f"Correlated {len(results)} disconnect events")
    return results


def summarize(results: Sequence[CorrelationResult]) -> CorrelationSummary:
    summary = CorrelationSummary(total_disconnects=len(results))
    for r in results:
        if not r.is_attributed:
            summary.unattributed += 1
        elif r.is_physical:
            summary.physical += 1
        else:
            summary.virtual += 1
    return summary
