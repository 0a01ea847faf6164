"""
Network Disconnect Analyzer - Adapter Details
Driver, power-management and error-counter facts for a physical adapter.

None of these lookups are required: anything the platform cannot provide
is reported as "N/A".
"""

import logging
from dataclasses import dataclass
from typing import Dict

import psutil

from netdisconnect.adapters import Adapter
from netdisconnect.system_utils import IS_WINDOWS, PowerShellError, run_powershell_json

logger = logging.getLogger(__name__)

NOT_APPLICABLE = "N/A"


@dataclass
class AdapterDetails:
    name: str
    driver_version: str = NOT_APPLICABLE
    driver_provider: str = NOT_APPLICABLE
    driver_date: str = NOT_APPLICABLE
    allow_power_off: str = NOT_APPLICABLE     # "Enabled" / "Disabled" / N/A
    wake_on_magic_packet: str = NOT_APPLICABLE
    errors_in: int = 0
    errors_out: int = 0
    drops_in: int = 0
    drops_out: int = 0
    counters_available: bool = False

    @property
    def power_saving_enabled(self) -> bool:
        return self.allow_power_off.lower() == "enabled"

    @property
    def total_errors(self) -> int:
        return self.errors_in + self.errors_out

    @property
    def total_drops(self) -> int:
        return self.drops_in + self.drops_out


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _query_optional(command: str) -> Dict[str, str]:
    """First record of a PowerShell query, or {} if unavailable."""
    try:
        records = run_powershell_json(command, timeout=15)
    except (PowerShellError, OSError) as e:
        logger.debug(f"Optional lookup unavailable: {e}")
        return {}
    return records[0] if records else {}


def _windows_details(details: AdapterDetails):
    name = _ps_quote(details.name)
    driver = _query_optional(
        f"Get-NetAdapter -Name {name} -ErrorAction Stop "
        f"| Select-Object DriverVersion, DriverProvider, "
        f"@{{n='DriverDate';e={{\"$($_.DriverDate)\"}}}} | ConvertTo-Json"
    )
    details.driver_version = str(driver.get("DriverVersion") or NOT_APPLICABLE)
    details.driver_provider = str(driver.get("DriverProvider") or NOT_APPLICABLE)
    details.driver_date = str(driver.get("DriverDate") or NOT_APPLICABLE)

    power = _query_optional(
        f"Get-NetAdapterPowerManagement -Name {name} -ErrorAction Stop "
        f"| Select-Object @{{n='AllowComputerToTurnOffDevice';e={{\"$($_.AllowComputerToTurnOffDevice)\"}}}}, "
        f"@{{n='WakeOnMagicPacket';e={{\"$($_.WakeOnMagicPacket)\"}}}} | ConvertTo-Json"
    )
    details.allow_power_off = str(power.get("AllowComputerToTurnOffDevice") or NOT_APPLICABLE)
    details.wake_on_magic_packet = str(power.get("WakeOnMagicPacket") or NOT_APPLICABLE)


def get_adapter_details(adapter: Adapter) -> AdapterDetails:
    """Gather optional diagnostic facts for one adapter."""
    details = AdapterDetails(name=adapter.name)

    if IS_WINDOWS:
        _windows_details(details)

    try:
        counters = psutil.net_io_counters(pernic=True).get(adapter.name)
    except OSError as e:
        logger.debug(f"Interface counters unavailable: {e}")
        counters = None
    if counters is not None:
        details.errors_in = counters.errin
        details.errors_out = counters.errout
        details.drops_in = counters.dropin
        details.drops_out = counters.dropout
        details.counters_available = True

    return details
