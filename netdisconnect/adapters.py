"""
Network Disconnect Analyzer - Adapter Enumeration & Classification
Lists the local network adapters, decides which ones are real wired
Ethernet hardware, and reads the live link state of a single adapter.

On Windows the data comes from Get-NetAdapter (through PowerShell).
Everywhere else psutil and /sys/class/net are used instead.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import psutil

from netdisconnect.errors import AdapterQueryError
from netdisconnect.system_utils import (
    IS_WINDOWS, PowerShellError, read_sysfs, run_powershell_json, sysfs_has,
)

logger = logging.getLogger(__name__)


# ── Classification Rules ─────────────────────────────────────────────────────

ETHERNET_MEDIA_TYPE = "802.3"

# Substrings (matched case-insensitively against name and description) that
# mark an adapter as virtual, tunnel or wireless.
VIRTUAL_ADAPTER_PATTERNS: tuple = (
    "hyper-v", "vethernet", "virtual", "vmware", "virtualbox", "vbox",
    "vpn", "tunnel", "loopback", "pseudo",
    "wi-fi", "wifi", "wireless", "wlan", "wlp", "802.11", "bluetooth",
    "wan miniport", "teredo", "isatap", "6to4", "npcap",
    "docker", "wsl", "container", "virbr", "veth", "br-", "bridge",
    "zero tier", "zerotier", "tailscale", "wireguard", "fortinet",
    "cisco anyconnect", "anyconnect", "pangp",
)

# Short tokens that also occur inside ordinary words, so they only match
# when not surrounded by other letters ("TAP-Windows", "tun0").
VIRTUAL_ADAPTER_TOKENS: tuple = ("tap", "tun")
_TOKEN_RE = re.compile(
    r"(?<![a-z])(?:" + "|".join(VIRTUAL_ADAPTER_TOKENS) + r")(?![a-z])"
)

# Tracked state fields (attribute name -> log column name)
TRACKED_FIELDS: Dict[str, str] = {
    "status": "Status",
    "media_connect_state": "MediaConnectState",
    "operational_status": "OperationalStatus",
    "admin_status": "AdminStatus",
}


# ── Data Structures ──────────────────────────────────────────────────────────

@dataclass
class Adapter:
    """A local network adapter as enumerated at startup."""
    name: str
    description: str = ""
    media_type: str = ""
    if_index: Optional[int] = None
    mac_address: str = ""
    link_speed: str = ""
    is_physical: Optional[bool] = None   # Set once by classify_adapters()

    @property
    def kind(self) -> str:
        if self.is_physical is None:
            return "Unclassified"
        return "Physical" if self.is_physical else "Virtual"

    def __str__(self):
        if self.description and self.description != self.name:
            return f"{self.name} ({self.description})"
        return self.name


@dataclass
class AdapterState:
    """Snapshot of one adapter's link state at one poll tick."""
    name: str
    status: str = "Unknown"                 # Up / Disconnected / Disabled
    media_connect_state: str = "Unknown"    # Connected / Disconnected / Unknown
    operational_status: str = "Unknown"     # Up / Down / LowerLayerDown ...
    admin_status: str = "Unknown"           # Up / Down
    timestamp: datetime = field(default_factory=datetime.now)

    def tracked(self) -> Dict[str, str]:
        return {attr: getattr(self, attr) for attr in TRACKED_FIELDS}

    def diff(self, other: "AdapterState") -> Dict[str, tuple]:
        """Fields that differ between self (old) and other (new)."""
        changes = {}
        for attr in TRACKED_FIELDS:
            old, new = getattr(self, attr), getattr(other, attr)
            if old != new:
                changes[attr] = (old, new)
        return changes


@dataclass
class AdapterPartition:
    """Result of classification: physical and virtual adapters."""
    physical: List[Adapter] = field(default_factory=list)
    virtual: List[Adapter] = field(default_factory=list)

    @property
    def all(self) -> List[Adapter]:
        return self.physical + self.virtual

    @property
    def has_physical(self) -> bool:
        return bool(self.physical)


# ── Classification ───────────────────────────────────────────────────────────

def is_physical_adapter(name: str, description: str, media_type: str,
                        extra_patterns: Iterable[str] = ()) -> bool:
    """
    True when the adapter is backed by real wired Ethernet hardware.

    An adapter is virtual if its name or description contains any known
    virtualization / tunnel / wireless substring, or if its media type is
    anything other than 802.3.
    """
    haystack = f"{name or ''}\n{description or ''}".lower()
    patterns = list(VIRTUAL_ADAPTER_PATTERNS) + [p.lower() for p in extra_patterns if p]
    if any(p in haystack for p in patterns) or _TOKEN_RE.search(haystack):
        return False
    return (media_type or "").strip() == ETHERNET_MEDIA_TYPE


def classify_adapters(adapters: Sequence[Adapter],
                      extra_patterns: Iterable[str] = ()) -> AdapterPartition:
    """Split adapters into physical and virtual.  Classification is final."""
    extra = list(extra_patterns)
    partition = AdapterPartition()
    for adapter in adapters:
        if adapter.is_physical is None:
            adapter.is_physical = is_physical_adapter(
                adapter.name, adapter.description, adapter.media_type, extra)
        if adapter.is_physical:
            partition.physical.append(adapter)
        else:
            partition.virtual.append(adapter)
        logger.debug(f"Adapter {adapter} -> {adapter.kind} (media={adapter.media_type!r})")
    logger.info(f"Classified {len(partition.physical)} physical and "
                f"{len(partition.virtual)} virtual adapters")
    return partition


# ── Enumeration ──────────────────────────────────────────────────────────────

_PS_ADAPTER_FIELDS = (
    "Name, InterfaceDescription, MediaType, Status, ifIndex, MacAddress, LinkSpeed, "
    "@{n='MediaConnectionState';e={\"$($_.MediaConnectionState)\"}}, "
    "@{n='AdminStatus';e={\"$($_.AdminStatus)\"}}, "
    "@{n='ifOperStatus';e={\"$($_.ifOperStatus)\"}}"
)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _adapter_from_ps(record: dict) -> Adapter:
    if_index = record.get("ifIndex")
    return Adapter(
        name=record.get("Name") or "",
        description=record.get("InterfaceDescription") or "",
        media_type=record.get("MediaType") or "",
        if_index=int(if_index) if if_index is not None else None,
        mac_address=record.get("MacAddress") or "",
        link_speed=record.get("LinkSpeed") or "",
    )


def _state_from_ps(record: dict) -> AdapterState:
    return AdapterState(
        name=record.get("Name") or "",
        status=record.get("Status") or "Unknown",
        media_connect_state=record.get("MediaConnectionState") or "Unknown",
        operational_status=record.get("ifOperStatus") or "Unknown",
        admin_status=record.get("AdminStatus") or "Unknown",
    )


def _linux_media_type(ifname: str) -> str:
    """Map sysfs link type to the Windows MediaType vocabulary."""
    if sysfs_has(ifname, "wireless") or sysfs_has(ifname, "phy80211"):
        return "Native 802.11"
    if read_sysfs(ifname, "type") == "1":
        return ETHERNET_MEDIA_TYPE
    return "Other"


def _linux_driver(ifname: str) -> str:
    uevent = read_sysfs(ifname, "device/uevent") or ""
    for line in uevent.splitlines():
        if line.startswith("DRIVER="):
            return line.split("=", 1)[1]
    return ""


def _enumerate_windows() -> List[Adapter]:
    try:
        records = run_powershell_json(
            f"Get-NetAdapter | Select-Object {_PS_ADAPTER_FIELDS} | ConvertTo-Json -Depth 2"
        )
    except (PowerShellError, OSError) as e:
        raise AdapterQueryError("Get-NetAdapter", str(e)) from e
    return [_adapter_from_ps(r) for r in records]


def _enumerate_psutil() -> List[Adapter]:
    adapters = []
    addrs = psutil.net_if_addrs()
    for name, stat in psutil.net_if_stats().items():
        mac = ""
        for a in addrs.get(name, []):
            if a.family == psutil.AF_LINK:
                mac = a.address
                break
        adapters.append(Adapter(
            name=name,
            description=_linux_driver(name) or name,
            media_type=_linux_media_type(name),
            mac_address=mac,
            link_speed=f"{stat.speed} Mbps" if stat.speed else "",
        ))
    return adapters


def enumerate_adapters(hidden: Iterable[str] = ()) -> List[Adapter]:
    """Detect all network adapters, minus the ones the user has hidden."""
    adapters = _enumerate_windows() if IS_WINDOWS else _enumerate_psutil()
    hidden_set = set(hidden)
    result = [a for a in adapters if a.name not in hidden_set]
    for a in result:
        logger.info(f"Found adapter: {a} media={a.media_type or 'n/a'}")
    return result


# ── Live State ───────────────────────────────────────────────────────────────

def _state_windows(name: str) -> AdapterState:
    try:
        records = run_powershell_json(
            f"Get-NetAdapter -Name {_ps_quote(name)} -ErrorAction Stop "
            f"| Select-Object {_PS_ADAPTER_FIELDS} | ConvertTo-Json -Depth 2",
            timeout=15,
        )
    except (PowerShellError, OSError) as e:
        raise AdapterQueryError(name, str(e)) from e
    if not records:
        raise AdapterQueryError(name, "adapter not found")
    return _state_from_ps(records[0])


def _state_psutil(name: str) -> AdapterState:
    stat = psutil.net_if_stats().get(name)
    if stat is None:
        raise AdapterQueryError(name, "adapter not found")

    flags = read_sysfs(name, "flags")
    admin_up = bool(int(flags, 16) & 0x1) if flags else stat.isup
    carrier = read_sysfs(name, "carrier")
    if carrier == "1":
        media = "Connected"
    elif carrier == "0":
        media = "Disconnected"
    else:
        # carrier is unreadable while the interface is admin-down
        media = "Unknown"
    oper = (read_sysfs(name, "operstate") or "unknown").capitalize()

    if not admin_up:
        status = "Disabled"
    elif media == "Connected":
        status = "Up"
    else:
        status = "Disconnected"

    return AdapterState(
        name=name,
        status=status,
        media_connect_state=media,
        operational_status=oper,
        admin_status="Up" if admin_up else "Down",
    )


def get_adapter_state(name: str) -> AdapterState:
    """Read the current state of one adapter.  Raises AdapterQueryError."""
    return _state_windows(name) if IS_WINDOWS else _state_psutil(name)
