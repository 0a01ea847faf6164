"""
Network Disconnect Analyzer - Error Types
"""


class NetDiagError(Exception):
    """Base class for all analyzer errors."""


class AdapterQueryError(NetDiagError):
    """An adapter could not be enumerated or its state could not be read."""

    def __init__(self, adapter_name: str, message: str):
        super().__init__(f"{adapter_name}: {message}")
        self.adapter_name = adapter_name


class EventLogUnavailableError(NetDiagError):
    """The system event log cannot be queried on this platform."""


class EventQueryError(NetDiagError):
    """A single event-id query against the event log failed."""

    def __init__(self, event_id: int, message: str):
        super().__init__(f"Event {event_id}: {message}")
        self.event_id = event_id
