"""Resolve the per-user Factorio mods directory for each supported OS."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Literal, Mapping

from modzip.errors import InstallPathUnavailable

OsName = Literal["windows", "darwin", "linux"]
SUPPORTED_OS_NAMES: tuple[OsName, ...] = ("windows", "darwin", "linux")


def current_os_name(platform: str | None = None) -> str:
    """Map ``sys.platform`` style identifiers to ``windows``, ``darwin`` or ``linux``."""

    value = (platform or sys.platform).lower()
    if value.startswith(("win32", "cygwin", "msys")):
        return "windows"
    if value.startswith("darwin"):
        return "darwin"
    if value.startswith("linux"):
        return "linux"
    return value


def resolve_mods_dir(os_name: str, home: Path | None, *, appdata: str | None = None) -> Path:
    """Return the mods directory for ``os_name`` without touching the filesystem.

    Windows uses ``%APPDATA%`` and falls back to ``<home>/AppData/Roaming``.
    """

    if os_name == "windows":
        if appdata:
            return Path(appdata) / "Factorio" / "mods"
        if home is None:
            raise InstallPathUnavailable(None, "neither APPDATA nor a home directory is available")
        return home / "AppData" / "Roaming" / "Factorio" / "mods"

    if home is None:
        raise InstallPathUnavailable(None, "no home directory found")
    if os_name == "darwin":
        return home / "Library" / "Application Support" / "factorio" / "mods"
    if os_name == "linux":
        return home / ".factorio" / "mods"
    raise InstallPathUnavailable(None, f"unsupported operating system: {os_name}")


def _home_or_none() -> Path | None:
    try:
        return Path.home()
    except RuntimeError:
        return None


def default_mods_dir(environ: Mapping[str, str] | None = None) -> Path:
    """Resolve the mods directory from the live platform, home and environment."""

    env = os.environ if environ is None else environ
    return resolve_mods_dir(current_os_name(), _home_or_none(), appdata=env.get("APPDATA"))
