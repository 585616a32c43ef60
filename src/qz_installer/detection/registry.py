"""Windows uninstall-registry lookup."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path, PureWindowsPath

from qz_installer.models import InstallationRecord, InstallLayout

try:
    import winreg
except ImportError:  # not on Windows
    winreg = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

_UNINSTALL_KEYS = (
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall",
)


@dataclass(frozen=True)
class UninstallEntry:
    """The install-related values of one uninstall registry key."""

    display_name: str
    install_location: str = ""
    uninstall_string: str = ""
    display_icon: str = ""


def read_uninstall_entries() -> list[UninstallEntry]:
    """Read every uninstall entry from HKLM and HKCU, 64- and 32-bit views.

    Returns an empty list when the registry is unavailable.
    """
    if winreg is None:
        return []

    entries: list[UninstallEntry] = []
    for hive in (winreg.HKEY_LOCAL_MACHINE, winreg.HKEY_CURRENT_USER):
        for key_path in _UNINSTALL_KEYS:
            entries.extend(_read_key(hive, key_path))
    return entries


def _read_key(hive, key_path: str) -> Iterator[UninstallEntry]:
    try:
        root = winreg.OpenKey(hive, key_path)
    except OSError:
        return
    with root:
        index = 0
        while True:
            try:
                sub_name = winreg.EnumKey(root, index)
            except OSError:
                break
            index += 1
            try:
                with winreg.OpenKey(root, sub_name) as sub:
                    name = _value(sub, "DisplayName")
                    if not name:
                        continue
                    yield UninstallEntry(
                        display_name=name,
                        install_location=_value(sub, "InstallLocation"),
                        uninstall_string=_value(sub, "UninstallString"),
                        display_icon=_value(sub, "DisplayIcon"),
                    )
            except OSError as exc:
                logger.debug("Skipping registry key %s: %s", sub_name, exc)


def _value(key, name: str) -> str:
    try:
        value, _ = winreg.QueryValueEx(key, name)
    except OSError:
        return ""
    return str(value).strip() if value else ""


def executable_path(command: str) -> str:
    """Extract the executable path from a registry command value.

    Handles quoted paths, trailing arguments after ``.exe``, and the
    ``,N`` icon index used by ``DisplayIcon``.
    """
    text = command.strip()
    if text.startswith('"'):
        closing = text.find('"', 1)
        return text[1:closing] if closing > 0 else text[1:]
    lowered = text.lower()
    end = lowered.find(".exe")
    if end >= 0:
        return text[: end + len(".exe")]
    head, sep, tail = text.rpartition(",")
    if sep and tail.strip().lstrip("-").isdigit():
        return head
    return text


def candidate_dirs(entry: UninstallEntry) -> list[str]:
    """Return candidate install directories in preference order."""
    candidates: list[str] = []
    if entry.install_location:
        candidates.append(entry.install_location.strip('"').rstrip("\\/"))
    for command in (entry.uninstall_string, entry.display_icon):
        if command:
            exe = executable_path(command)
            if exe:
                candidates.append(str(PureWindowsPath(exe).parent))
    return candidates


def from_registry(display_name: str, layout: InstallLayout) -> InstallationRecord | None:
    """Locate the installation through its uninstall registry entry."""
    needle = display_name.lower()
    for entry in read_uninstall_entries():
        if needle not in entry.display_name.lower():
            continue
        for candidate in candidate_dirs(entry):
            install_dir = Path(candidate)
            if install_dir.is_dir():
                logger.debug("Registry entry %r points at %s", entry.display_name, install_dir)
                return layout.record_for_dir(install_dir, "registry")
    return None
