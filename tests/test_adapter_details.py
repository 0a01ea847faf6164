import subprocess
from types import SimpleNamespace

from netdisconnect import adapter_details as details_mod
from netdisconnect import system_utils
from netdisconnect.adapters import Adapter

ETH0 = Adapter(name="Ethernet0", media_type="802.3", is_physical=True)


def test_counters_are_read(monkeypatch):
    monkeypatch.setattr(details_mod, "IS_WINDOWS", False)
    monkeypatch.setattr(details_mod.psutil, "net_io_counters", lambda pernic: {
        "Ethernet0": SimpleNamespace(errin=3, errout=1, dropin=7, dropout=0),
    })
    details = details_mod.get_adapter_details(ETH0)
    assert details.counters_available
    assert details.total_errors == 4
    assert details.total_drops == 7
    assert details.driver_version == details_mod.NOT_APPLICABLE
    assert not details.power_saving_enabled


def test_missing_lookups_are_not_applicable(monkeypatch):
    monkeypatch.setattr(details_mod, "IS_WINDOWS", True)
    monkeypatch.setattr(details_mod.psutil, "net_io_counters", lambda pernic: {})

    def unavailable(command, timeout=30.0):
        raise details_mod.PowerShellError("not found")

    monkeypatch.setattr(details_mod, "run_powershell_json", unavailable)
    details = details_mod.get_adapter_details(ETH0)
    assert details.allow_power_off == "N/A"
    assert details.driver_provider == "N/A"
    assert details.counters_available is False


def test_power_management_lookup(monkeypatch):
    monkeypatch.setattr(details_mod, "IS_WINDOWS", True)
    monkeypatch.setattr(details_mod.psutil, "net_io_counters", lambda pernic: {})
    responses = iter([
        [{"DriverVersion": "12.19.2.45", "DriverProvider": "Intel", "DriverDate": "2023-05-01"}],
        [{"AllowComputerToTurnOffDevice": "Enabled", "WakeOnMagicPacket": "Disabled"}],
    ])
    monkeypatch.setattr(details_mod, "run_powershell_json", lambda command, timeout=30.0: next(responses))
    details = details_mod.get_adapter_details(ETH0)
    assert details.driver_version == "12.19.2.45"
    assert details.power_saving_enabled



def test_powershell_timeout_reads_not_applicable(monkeypatch):
    def slow_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))

    monkeypatch.setattr(details_mod, "IS_WINDOWS", True)
    monkeypatch.setattr(system_utils.subprocess, "run", slow_run)
    monkeypatch.setattr(details_mod.psutil, "net_io_counters", lambda pernic: {})
    details = details_mod.get_adapter_details(ETH0)
    assert details.driver_version == "N/A"
    assert details.allow_power_off == "N/A"
