from types import SimpleNamespace

import pytest

from netdisconnect import adapters as adapters_mod
from netdisconnect.adapters import (
    Adapter, AdapterState, classify_adapters, enumerate_adapters, is_physical_adapter,
)
from netdisconnect.errors import AdapterQueryError
from netdisconnect.monitor import WARNING, classify_transition


@pytest.mark.parametrize("name,description", [
    ("Ethernet", "Realtek PCIe GbE Family Controller"),
    ("Ethernet 2", "Intel(R) Ethernet Connection (7) I219-LM"),
    ("eno1", "e1000e"),
])
def test_wired_ethernet_is_physical(name, description):
    assert is_physical_adapter(name, description, "802.3") is True


@pytest.mark.parametrize("name,description", [
    ("vEthernet (WSL)", "Hyper-V Virtual Ethernet Adapter"),
    ("Ethernet 3", "TAP-Windows Adapter V9"),
    ("Ethernet 4", "VMware Virtual Ethernet Adapter for VMnet8"),
    ("Local Area Connection", "Cisco AnyConnect Secure Mobility Client"),
    ("docker0", "docker0"),
    ("Wi-Fi", "Intel(R) Wi-Fi 6 AX201"),
])
def test_virtual_patterns_win_over_ethernet_media(name, description):
    assert is_physical_adapter(name, description, "802.3") is False


@pytest.mark.parametrize("name,description,physical", [
    ("tun0", "tun0", False),
    ("Ethernet 5", "OpenVPN TAP-Windows6", False),
    ("Ethernet", "Fortune Systems Gigabit NIC", True),
    ("Ethernet", "Sata-Tuned Server Adapter", True),
])
def test_short_tokens_need_letter_boundaries(name, description, physical):
    assert is_physical_adapter(name, description, "802.3") is physical


def test_non_ethernet_media_is_virtual():
    assert is_physical_adapter("Cellular", "Qualcomm Modem", "Wireless WAN") is False
    assert is_physical_adapter("Ethernet", "Realtek PCIe GbE", "") is False


def test_pattern_match_is_case_insensitive():
    assert is_physical_adapter("ETHERNET", "HYPER-V VIRTUAL", "802.3") is False


def test_extra_patterns_mark_adapter_virtual():
    assert is_physical_adapter("Ethernet", "Acme Dock NIC", "802.3") is True
    assert is_physical_adapter("Ethernet", "Acme Dock NIC", "802.3", ["acme dock"]) is False


def test_classify_adapters_partitions(adapters):
    partition = classify_adapters(adapters)
    assert [a.name for a in partition.physical] == ["Ethernet0"]
    assert {a.name for a in partition.virtual} == {"Wi-Fi", "vEthernet (Default Switch)"}
    assert partition.has_physical
    assert all(a.kind in ("Physical", "Virtual") for a in partition.all)


def test_classification_is_not_recomputed(adapters):
    classify_adapters(adapters)
    # A later pass with extra patterns must not flip an existing classification
    again = classify_adapters(adapters, extra_patterns=["intel"])
    assert [a.name for a in again.physical] == ["Ethernet0"]


def test_no_physical_adapters():
    partition = classify_adapters([Adapter(name="Wi-Fi", media_type="Native 802.11")])
    assert not partition.has_physical


def test_state_diff_reports_changed_fields():
    old = AdapterState(name="Ethernet0", status="Up", media_connect_state="Connected",
                       operational_status="Up", admin_status="Up")
    new = AdapterState(name="Ethernet0", status="Disconnected", media_connect_state="Disconnected",
                       operational_status="Down", admin_status="Up")
    assert old.diff(new) == {
        "status": ("Up", "Disconnected"),
        "media_connect_state": ("Connected", "Disconnected"),
        "operational_status": ("Up", "Down"),
    }
    assert old.diff(old) == {}


def test_powershell_records_are_mapped():
    record = {
        "Name": "Ethernet0", "InterfaceDescription": "Intel(R) 82574L",
        "MediaType": "802.3", "Status": "Up", "ifIndex": 12,
        "MacAddress": "00-0C-29-AA-BB-CC", "LinkSpeed": "1 Gbps",
        "MediaConnectionState": "Connected", "AdminStatus": "Up", "ifOperStatus": "Up",
    }
    adapter = adapters_mod._adapter_from_ps(record)
    state = adapters_mod._state_from_ps(record)
    assert adapter.if_index == 12
    assert adapter.media_type == "802.3"
    assert state.media_connect_state == "Connected"
    assert state.operational_status == "Up"


def test_enumerate_drops_hidden_adapters(monkeypatch, adapters):
    monkeypatch.setattr(adapters_mod, "IS_WINDOWS", False)
    monkeypatch.setattr(adapters_mod, "_enumerate_psutil", lambda: list(adapters))
    result = enumerate_adapters(hidden={"Wi-Fi"})
    assert [a.name for a in result] == ["Ethernet0", "vEthernet (Default Switch)"]


def _fake_sysfs(values):
    return lambda ifname, attr: values.get((ifname, attr))


def test_psutil_state_link_down(monkeypatch):
    monkeypatch.setattr(adapters_mod.psutil, "net_if_stats",
                        lambda: {"eno1": SimpleNamespace(isup=True, speed=1000)})
    monkeypatch.setattr(adapters_mod, "read_sysfs", _fake_sysfs({
        ("eno1", "flags"): "0x1003",
        ("eno1", "carrier"): "0",
        ("eno1", "operstate"): "down",
    }))
    state = adapters_mod._state_psutil("eno1")
    assert state.admin_status == "Up"
    assert state.media_connect_state == "Disconnected"
    assert state.status == "Disconnected"
    assert state.operational_status == "Down"


def test_psutil_state_admin_down(monkeypatch):
    monkeypatch.setattr(adapters_mod.psutil, "net_if_stats",
                        lambda: {"eno1": SimpleNamespace(isup=False, speed=0)})
    monkeypatch.setattr(adapters_mod, "read_sysfs", _fake_sysfs({
        ("eno1", "flags"): "0x1002",
        ("eno1", "operstate"): "down",
    }))
    state = adapters_mod._state_psutil("eno1")
    assert state.admin_status == "Down"
    assert state.status == "Disabled"
    assert state.media_connect_state == "Unknown"


def test_psutil_admin_down_is_software_level(monkeypatch):
    sysfs = {
        ("eno1", "flags"): "0x1003",
        ("eno1", "carrier"): "1",
        ("eno1", "operstate"): "up",
    }
    monkeypatch.setattr(adapters_mod.psutil, "net_if_stats",
                        lambda: {"eno1": SimpleNamespace(isup=True, speed=1000)})
    monkeypatch.setattr(adapters_mod, "read_sysfs", _fake_sysfs(sysfs))
    before = adapters_mod._state_psutil("eno1")

    # ip link set eno1 down
    sysfs[("eno1", "flags")] = "0x1002"
    sysfs[("eno1", "operstate")] = "down"
    del sysfs[("eno1", "carrier")]
    after = adapters_mod._state_psutil("eno1")

    assert before.media_connect_state == "Connected"
    assert classify_transition(before, after) == (WARNING, "software-level disconnect")


def test_psutil_state_unknown_adapter(monkeypatch):
    monkeypatch.setattr(adapters_mod.psutil, "net_if_stats", lambda: {})
    with pytest.raises(AdapterQueryError):
        adapters_mod._state_psutil("eno9")
