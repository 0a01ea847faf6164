from datetime import datetime

import pytest

from netdisconnect.adapters import Adapter, AdapterState, classify_adapters
from netdisconnect.events import NETWORK_EVENT_IDS, NetworkEvent


def make_event(event_id, when, message="", severity="Warning"):
    return NetworkEvent(
        timestamp=when,
        event_id=event_id,
        description=NETWORK_EVENT_IDS.get(event_id, f"Event {event_id}"),
        severity=severity,
        message=message,
    )


def make_state(name, status="Up", media="Connected", oper="Up", admin="Up", when=None):
    return AdapterState(
        name=name,
        status=status,
        media_connect_state=media,
        operational_status=oper,
        admin_status=admin,
        timestamp=when or datetime(2026, 10, 16, 10, 0, 0),
    )


class QueuedStates:
    """fetch_state stand-in that replays queued snapshots per adapter."""

    def __init__(self, queues):
        self.queues = {name: list(states) for name, states in queues.items()}
        self.calls = []

    def __call__(self, name):
        self.calls.append(name)
        queue = self.queues[name]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeTime:
    """Deterministic clock + sleep pair for the monitor loop."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def clock(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def adapters():
    return [
        Adapter(name="Ethernet0", description="Intel(R) 82574L Gigabit Network Connection",
                media_type="802.3", mac_address="00-0C-29-AA-BB-CC", link_speed="1 Gbps"),
        Adapter(name="Wi-Fi", description="Intel(R) Wi-Fi 6 AX201 160MHz",
                media_type="Native 802.11"),
        Adapter(name="vEthernet (Default Switch)", description="Hyper-V Virtual Ethernet Adapter",
                media_type="802.3"),
    ]


@pytest.fixture()
def partition(adapters):
    return classify_adapters(adapters)


@pytest.fixture()
def fake_time():
    return FakeTime()
