"""Windows backend: registry lookup, UAC elevation and NSIS ``.exe`` packages."""

from __future__ import annotations

import ctypes
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from qz_installer.commands import spawn_detached
from qz_installer.detection import (
    DetectionStrategy,
    from_bounded_search,
    from_known_locations,
    from_registry,
)
from qz_installer.host import Platform
from qz_installer.models import InstallationRecord, InstallLayout
from qz_installer.platforms.base import Launcher, PlatformBackend

logger = logging.getLogger(__name__)

_APP_NAME = "QZ Tray"
_SEARCH_DEPTH = 3

# Start-Process -PassThru reports no exit code for some elevated children
NO_EXIT_CODE = (-1, 0xFFFFFFFF)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


class WindowsBackend(PlatformBackend):
    """Drives QZ Tray on Windows."""

    platform = Platform.WINDOWS
    layout = InstallLayout(launch_relpath="qz-tray.exe", console_name="qz-tray-console.exe")
    success_codes = frozenset({0, *NO_EXIT_CODE})

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def launchers(self, record: InstallationRecord | None) -> list[Launcher]:
        exe = (record.install_dir if record else self.default_installation().install_dir) / "qz-tray.exe"
        return [Launcher("direct-spawn", lambda: exe.is_file() and spawn_detached([exe]))]

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def program_roots(self) -> list[Path]:
        """Return the program-files style roots present in the environment."""
        roots: list[Path] = []
        for var in ("ProgramFiles", "ProgramFiles(x86)"):
            value = os.environ.get(var)
            if value and Path(value) not in roots:
                roots.append(Path(value))
        local = os.environ.get("LOCALAPPDATA")
        if local:
            roots.append(Path(local) / "Programs")
        return roots

    def known_install_dirs(self) -> list[Path]:
        roots = self.program_roots() or [Path(r"C:\Program Files")]
        return [root / _APP_NAME for root in roots]

    def detection_strategies(self) -> list[DetectionStrategy]:
        return [
            *super().detection_strategies(),
            DetectionStrategy("registry", lambda: from_registry(_APP_NAME, self.layout)),
            DetectionStrategy(
                "known-location", lambda: from_known_locations(self.known_install_dirs(), self.layout)
            ),
            DetectionStrategy(
                "filesystem-search",
                lambda: from_bounded_search(self.program_roots(), self.layout, _SEARCH_DEPTH),
            ),
        ]

    # ------------------------------------------------------------------
    # Packaging and privileges
    # ------------------------------------------------------------------

    def install_command(self, package: Path) -> list[str]:
        return [str(package), "/S"]

    def is_elevated(self) -> bool:
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            return False

    def elevate(self, cmd: Sequence[str]) -> list[str]:
        """Run as-is when elevated, else through a UAC ``RunAs`` prompt."""
        argv = [str(part) for part in cmd]
        if self.is_elevated():
            return argv
        script = f"$p = Start-Process -FilePath {_ps_quote(argv[0])}"
        if len(argv) > 1:
            script += " -ArgumentList " + ",".join(_ps_quote(_quote_arg(arg)) for arg in argv[1:])
        script += " -Verb RunAs -Wait -PassThru; exit $p.ExitCode"
        return ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script]

    def copy_command(self, source: Path, dest: Path) -> list[str]:
        return ["cmd", "/c", "copy", "/Y", str(source), str(dest)]


def _quote_arg(arg: str) -> str:
    """Quote an argument that Start-Process will join into a command line."""
    if " " in arg or ";" in arg:
        return f'"{arg}"'
    return arg
