"""
Network Disconnect Analyzer - System Utilities
Thin wrappers around PowerShell and the Linux sysfs tree.
"""

import json
import logging
import os
import platform
import subprocess
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

IS_WINDOWS = platform.system().lower() == "windows"
_NOWND = subprocess.CREATE_NO_WINDOW if IS_WINDOWS else 0

SYSFS_NET = "/sys/class/net"


class PowerShellError(RuntimeError):
    """PowerShell exited with an error or returned unparseable output."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


def run_powershell_json(command: str, timeout: float = 30.0) -> List[Dict[str, Any]]:
    """
    Run a PowerShell pipeline that ends in ConvertTo-Json and return the
    parsed records.

    ConvertTo-Json emits a bare object when the pipeline yields one item and
    nothing at all when it yields none, so both are normalized to a list.
    """
    cmd = ["powershell", "-NoProfile", "-NonInteractive", "-Command", command]
    try:
        proc = subprocess.run(
            cmd, capture_output=True, text=True, timeout=timeout,
            creationflags=_NOWND,
        )
    except subprocess.TimeoutExpired as e:
        raise PowerShellError(f"PowerShell timed out after {timeout:g}s") from e
    if proc.returncode != 0:
        raise PowerShellError(
            f"PowerShell exited with code {proc.returncode}",
            stderr=proc.stderr.strip(),
        )

    out = proc.stdout.strip()
    if not out:
        return []
    try:
        data = json.loads(out)
    except json.JSONDecodeError as e:
        raise PowerShellError(f"Invalid JSON from PowerShell: {e}") from e

    if isinstance(data, dict):
        return [data]
    return list(data)


def read_sysfs(ifname: str, attribute: str) -> Optional[str]:
    """Read /sys/class/net/<ifname>/<attribute>, or None if unreadable."""
    path = os.path.join(SYSFS_NET, ifname, attribute)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read().strip()
    except OSError:
        # carrier raises EINVAL while the interface is admin-down
        return None


def sysfs_has(ifname: str, entry: str) -> bool:
    return os.path.exists(os.path.join(SYSFS_NET, ifname, entry))
