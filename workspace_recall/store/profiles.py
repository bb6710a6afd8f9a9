"""Profile discovery: where editor profiles and the Zed databases live."""

from __future__ import annotations

import os
import sys
from pathlib import Path

from loguru import logger


def expand_tilde(path: str | Path) -> Path:
    """Expand a leading ``~`` to the user's home directory."""
    return Path(path).expanduser()


def _config_dir() -> Path:
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    if sys.platform == "win32":
        return Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def default_profile_path() -> Path:
    """Default VS Code profile directory for the current platform."""
    return _config_dir() / "Code"


def default_zed_db_dir() -> Path:
    """Directory holding Zed's per-channel databases."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "Zed" / "db"
    if sys.platform == "win32":
        return Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local")) / "Zed" / "db"
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "zed" / "db"
    return Path.home() / ".local" / "share" / "zed" / "db"


def is_wsl() -> bool:
    """Running under Windows Subsystem for Linux?"""
    try:
        release = Path("/proc/version").read_text(encoding="utf-8").lower()
    except OSError:
        return False
    return "microsoft" in release or "wsl" in release


def known_profile_paths() -> list[Path]:
    """Existing profile directories of VS Code and its forks, sorted and deduplicated."""
    home = Path.home()
    candidates = [
        default_profile_path(),
        home / ".vscode",
        home / ".config" / "Code",
        home / ".config" / "Code - OSS",
        home / ".config" / "Cursor",
    ]

    if sys.platform == "darwin":
        support = home / "Library" / "Application Support"
        candidates += [support / "Code", support / "Code - Insiders", support / "Cursor"]

    if sys.platform == "win32":
        roaming = _config_dir()
        candidates += [roaming / "Code", roaming / "Code - Insiders", roaming / "Cursor"]

    if is_wsl():
        candidates += _wsl_windows_profiles(Path("/mnt/c/Users"))

    found = sorted({p for p in candidates if p.is_dir()})
    logger.debug("Found {} known profile paths", len(found))
    return found


def _wsl_windows_profiles(users_root: Path) -> list[Path]:
    """Profile directories of every Windows user visible through the WSL mount."""
    try:
        users = [p for p in users_root.iterdir() if p.is_dir()]
    except OSError:
        return []

    paths: list[Path] = []
    for user in users:
        paths += [
            user / "AppData" / "Roaming" / "Code",
            user / "AppData" / "Roaming" / "Code - Insiders",
            user / "AppData" / "Roaming" / "Cursor",
            user / ".vscode",
        ]
    return paths
