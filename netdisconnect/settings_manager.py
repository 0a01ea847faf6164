"""
Network Disconnect Analyzer - Settings Manager
Persists user settings to a JSON file in the user's settings folder.

Handles:
  - Default event log lookback and monitor duration
  - Output directory for logs and reports
  - Hidden network adapters (by adapter name)
  - Extra name patterns that mark an adapter as virtual
"""

import json
import logging
import os
import platform
from typing import Any, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

_DEFAULTS: Dict[str, Any] = {
    "lookback_hours": 24,
    "monitor_duration_minutes": 5,
    "output_dir": "",                  # Empty = ~/Documents/NetDisconnect
    "hidden_adapters": [],
    "extra_virtual_patterns": [],
}


def _settings_dir() -> str:
    """Get the platform-appropriate settings directory."""
    if platform.system() == "Windows":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
        return os.path.join(base, "NetDisconnect")
    elif platform.system() == "Darwin":
        return os.path.expanduser("~/Library/Application Support/NetDisconnect")
    else:
        return os.path.expanduser("~/.config/netdisconnect")


def _settings_path() -> str:
    return os.path.join(_settings_dir(), "settings.json")


def default_output_dir() -> str:
    return os.path.join(os.path.expanduser("~"), "Documents", "NetDisconnect")


class SettingsManager:
    """Singleton-style settings manager with JSON persistence."""

    def __init__(self, path: Optional[str] = None):
        self._data: Dict[str, Any] = {k: (list(v) if isinstance(v, list) else v)
                                      for k, v in _DEFAULTS.items()}
        self._path = path or _settings_path()
        self._load()

    # ── Core I/O ──────────────────────────────────────────────────────────

    def _load(self):
        """Load settings from disk, falling back to defaults."""
        try:
            if os.path.exists(self._path):
                with open(self._path, "r", encoding="utf-8") as f:
                    stored = json.load(f)
                for key, default in _DEFAULTS.items():
                    self._data[key] = stored.get(key, default)
                logger.info(f"Settings loaded from {self._path}")
            else:
                logger.info("No settings file found, using defaults")
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load settings: {e}")

    def save(self):
        """Persist current settings to disk."""
        try:
            os.makedirs(os.path.dirname(self._path), exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            logger.info(f"Settings saved to {self._path}")
        except OSError as e:
            logger.warning(f"Failed to save settings: {e}")

    @property
    def path(self) -> str:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        self._data[key] = value

    # ── Run Defaults ──────────────────────────────────────────────────────

    @property
    def lookback_hours(self) -> float:
        return float(self._data.get("lookback_hours") or _DEFAULTS["lookback_hours"])

    @property
    def monitor_duration_minutes(self) -> float:
        return float(self._data.get("monitor_duration_minutes")
                     or _DEFAULTS["monitor_duration_minutes"])

    @property
    def output_dir(self) -> str:
        return self._data.get("output_dir") or default_output_dir()

    # ── Adapter Filtering ─────────────────────────────────────────────────

    @property
    def hidden_adapters(self) -> Set[str]:
        """Set of adapter names that are skipped entirely."""
        return set(self._data.get("hidden_adapters", []))

    def set_adapter_hidden(self, adapter_name: str, hidden: bool):
        adapters = set(self._data.get("hidden_adapters", []))
        if hidden:
            adapters.add(adapter_name)
        else:
            adapters.discard(adapter_name)
        self._data["hidden_adapters"] = sorted(adapters)

    @property
    def extra_virtual_patterns(self) -> List[str]:
        return list(self._data.get("extra_virtual_patterns", []))


# Module-level singleton
_instance: Optional[SettingsManager] = None


def get_settings() -> SettingsManager:
    """Get the global settings manager instance."""
    global _instance
    if _instance is None:
        _instance = SettingsManager()
    return _instance
