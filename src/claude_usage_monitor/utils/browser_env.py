"""Locate a Chromium-family executable and allocate debugging ports."""

import os
import socket
import sys
from pathlib import Path


def chrome_candidates() -> list[str]:
    """Return platform-specific Chrome/Chromium/Edge install locations."""
    if sys.platform == "win32":
        return [
            "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
            "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
            str(Path.home() / "AppData" / "Local" / "Google" / "Chrome" / "Application" / "chrome.exe"),
            "C:\\AppInstall\\scoop\\apps\\googlechrome\\current\\chrome.exe",
            # Edge is Chromium-based
            "C:\\Program Files\\Microsoft\\Edge\\Application\\msedge.exe",
            "C:\\Program Files (x86)\\Microsoft\\Edge\\Application\\msedge.exe",
        ]
    if sys.platform == "darwin":
        return [
            "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
            "/Applications/Chromium.app/Contents/MacOS/Chromium",
            "/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge",
        ]
    return [
        "/usr/bin/google-chrome",
        "/usr/bin/google-chrome-stable",
        "/usr/bin/chromium-browser",
        "/usr/bin/chromium",
        "/snap/bin/chromium",
        "/usr/bin/microsoft-edge",
        "/usr/bin/microsoft-edge-stable",
    ]


def find_chrome(candidates: list[str] | None = None) -> str | None:
    """Return the first existing browser executable, or None."""
    for path in candidates if candidates is not None else chrome_candidates():
        if os.path.exists(path):
            return path
    return None


def find_free_port() -> int:
    """Ask the OS for an unused local TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
