"""
Network Disconnect Analyzer - Console Output
Colored status lines for the operator and a transcript of the whole run.
"""

import os
import re
import sys
from typing import Optional, TextIO

from colorama import Fore, Style, just_fix_windows_console

_STYLES = {
    "info":     Fore.CYAN + "[*] ",
    "success":  Fore.GREEN + "[+] ",
    "warning":  Fore.YELLOW + "[!] ",
    "error":    Fore.RED + "[!] ",
    "critical": Fore.RED + Style.BRIGHT + "[X] ",
    "muted":    Fore.LIGHTBLACK_EX + "[-] ",
    "plain":    "",
}

SEVERITY_STYLE = {
    "CRITICAL": "critical",
    "WARNING": "warning",
    "INFO": "info",
    "critical": "critical",
    "warning": "warning",
    "info": "info",
}

_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def init_console():
    """Enable ANSI colors on the Windows console."""
    just_fix_windows_console()


def print_message(message: str, msg_type: str = "info"):
    print(f"{_STYLES.get(msg_type, Fore.WHITE)}{message}{Style.RESET_ALL}")


def print_heading(title: str):
    print()
    print(Fore.CYAN + Style.BRIGHT + "=" * 70 + Style.RESET_ALL)
    print(Fore.CYAN + Style.BRIGHT + f" {title}" + Style.RESET_ALL)
    print(Fore.CYAN + Style.BRIGHT + "=" * 70 + Style.RESET_ALL)


def strip_ansi(text: str) -> str:
    return _ANSI.sub("", text)


class _Tee:
    """Writes to the real stream and, without color codes, to a file."""

    def __init__(self, stream: TextIO, log: TextIO):
        self._stream = stream
        self._log = log

    def write(self, data: str) -> int:
        self._stream.write(data)
        self._log.write(strip_ansi(data))
        return len(data)

    def flush(self):
        self._stream.flush()
        self._log.flush()

    def __getattr__(self, name):
        return getattr(self._stream, name)


class Transcript:
    """
    Capture everything printed to stdout into a text file.

    Usage:
        with Transcript(path):
            run()
    """

    def __init__(self, path: Optional[str]):
        self.path = path
        self._file: Optional[TextIO] = None
        self._original: Optional[TextIO] = None

    def __enter__(self) -> "Transcript":
        if self.path:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            self._file = open(self.path, "w", encoding="utf-8")
            self._original = sys.stdout
            sys.stdout = _Tee(self._original, self._file)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._file:
            sys.stdout.flush()
            sys.stdout = self._original
            self._file.close()
            self._file = None
        return False
