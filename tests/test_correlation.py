from datetime import datetime, timedelta

import pytest

from netdisconnect.adapters import Adapter
from netdisconnect.correlation import (
    CORRELATION_WINDOW, correlate, extract_adapter_name, find_correlated,
    match_adapter, summarize,
)
from tests.conftest import make_event

T0 = datetime(2026, 10, 16, 10, 0, 0)


@pytest.mark.parametrize("message,expected", [
    ('Network link on "Ethernet0" is disconnected.', "Ethernet0"),
    ('"Intel(R) 82574L Gigabit Network Connection" : link down', "Intel(R) 82574L Gigabit Network Connection"),
    ('Adapter "  Ethernet0  " then "Wi-Fi"', "Ethernet0"),
    ("Network link is disconnected.", None),
    ('Unbalanced "quote', None),
    ('Empty "" quote', None),
    ("", None),
    (None, None),
    (42, None),
])
def test_extract_adapter_name(message, expected):
    assert extract_adapter_name(message) == expected


def test_match_adapter_exact_and_substring(adapters):
    assert match_adapter("Ethernet0", adapters).name == "Ethernet0"
    assert match_adapter("ethernet0", adapters).name == "Ethernet0"
    assert match_adapter("82574L", adapters).name == "Ethernet0"
    assert match_adapter("Hyper-V Virtual Ethernet Adapter", adapters).name == "vEthernet (Default Switch)"
    assert match_adapter("Bluetooth PAN", adapters) is None
    assert match_adapter(None, adapters) is None


def test_match_adapter_prefers_exact_name():
    eth = Adapter(name="Ethernet", description="Realtek PCIe GbE", media_type="802.3")
    eth2 = Adapter(name="Ethernet 2", description="Intel Ethernet", media_type="802.3")
    assert match_adapter("Ethernet 2", [eth, eth2]) is eth2
    assert match_adapter("Ethernet", [eth2, eth]) is eth


def test_match_adapter_substring_first_match_wins():
    first = Adapter(name="Ethernet 2", description="Realtek PCIe GbE", media_type="802.3")
    second = Adapter(name="Ethernet 3", description="Intel Ethernet", media_type="802.3")
    assert match_adapter("ethernet", [first, second]) is first
    assert match_adapter("ethernet", [second, first]) is second


def test_match_adapter_ignores_longer_name():
    eth = Adapter(name="Ethernet", description="Realtek PCIe GbE", media_type="802.3")
    assert match_adapter("Ethernet 2", [eth]) is None


def test_events_inside_window_are_correlated():
    anchor = make_event(27, T0)
    edge = make_event(4201, T0 + CORRELATION_WINDOW)
    before = make_event(1129, T0 - timedelta(seconds=10))
    outside = make_event(32, T0 + timedelta(seconds=31))
    same_kind = make_event(27, T0 + timedelta(seconds=5))
    related = find_correlated(anchor, [anchor, edge, before, outside, same_kind])
    assert related == [edge, before]


def test_correlation_is_symmetric_in_time():
    disabled = make_event(27, T0)
    gp_failure = make_event(1129, T0 + timedelta(seconds=15))
    events = [gp_failure, disabled]
    assert find_correlated(disabled, events) == [gp_failure]
    assert find_correlated(gp_failure, events) == [disabled]


def test_correlate_physical_anchor(partition):
    anchor = make_event(27, T0, message='Link on "Ethernet0" is down')
    gp = make_event(1129, T0 + timedelta(seconds=15))
    far = make_event(32, T0 + timedelta(minutes=5))
    results = correlate([far, gp, anchor], partition)
    assert len(results) == 1
    result = results[0]
    assert result.is_physical and result.is_attributed
    assert result.adapter.name == "Ethernet0"
    assert result.correlated == [gp]


def test_virtual_and_unattributed_anchors_get_no_context(partition):
    virtual = make_event(4202, T0, message='Adapter "Hyper-V Virtual Ethernet Adapter" down')
    unnamed = make_event(10400, T0 + timedelta(seconds=1), message="Interface reset")
    nearby = make_event(1129, T0 + timedelta(seconds=2))
    results = correlate([nearby, unnamed, virtual], partition)
    assert [r.anchor.event_id for r in results] == [10400, 4202]
    assert all(r.correlated == [] for r in results)
    assert results[0].adapter_label == "(unknown adapter)"
    assert not results[0].is_attributed
    assert results[1].is_attributed and not results[1].is_physical


def test_unknown_adapter_name_is_not_physical(partition):
    event = make_event(27, T0, message='Adapter "Some Other NIC" disabled')
    result = correlate([event], partition)[0]
    assert result.is_attributed
    assert result.adapter is None
    assert result.adapter_label == "Some Other NIC"
    assert not result.is_physical


def test_summary_tallies(partition):
    events = [
        make_event(27, T0, message='"Ethernet0"'),
        make_event(4202, T0 + timedelta(minutes=1), message='"Ethernet0"'),
        make_event(4202, T0 + timedelta(minutes=2), message='"Wi-Fi"'),
        make_event(10400, T0 + timedelta(minutes=3), message="no name"),
        make_event(32, T0 + timedelta(minutes=4), message='"Ethernet0"'),
    ]
    summary = summarize(correlate(events, partition))
    assert summary.total_disconnects == 4
    assert summary.physical == 2
    assert summary.virtual == 1
    assert summary.unattributed == 1
    assert summary.real_disconnects == 2
