"""macOS backend: launch agent, app bundle and ``.pkg`` packages."""

from __future__ import annotations

import logging
from pathlib import Path

from qz_installer.commands import command_succeeds, run_command
from qz_installer.detection import DetectionStrategy, from_known_locations, from_spotlight
from qz_installer.host import Platform
from qz_installer.models import InstallationRecord, InstallLayout
from qz_installer.platforms.base import Launcher, PosixBackend

logger = logging.getLogger(__name__)

_APP_NAME = "QZ Tray"
_BUNDLE_NAME = f"{_APP_NAME}.app"
_LAUNCH_AGENT = Path.home() / "Library" / "LaunchAgents" / "qz-tray.plist"


class MacOSBackend(PosixBackend):
    """Drives QZ Tray on macOS."""

    platform = Platform.MACOS
    layout = InstallLayout(launch_relpath=f"Contents/MacOS/{_APP_NAME}", console_name=_APP_NAME)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def request_quit(self) -> bool:
        """Unload the launch agent, then ask the app to quit via AppleScript."""
        sent = False
        if _LAUNCH_AGENT.is_file():
            logger.info("Unloading launch agent %s", _LAUNCH_AGENT)
            sent = command_succeeds(["launchctl", "unload", str(_LAUNCH_AGENT)]) or sent
        result = run_command(["osascript", "-e", f'quit app "{_APP_NAME}"'])
        return sent or (result is not None and result.returncode == 0)

    def launchers(self, record: InstallationRecord | None) -> list[Launcher]:
        return [Launcher("open-app", lambda: command_succeeds(["open", "-a", _APP_NAME]))]

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def known_install_dirs(self) -> list[Path]:
        return [Path("/Applications") / _BUNDLE_NAME, Path.home() / "Applications" / _BUNDLE_NAME]

    def detection_strategies(self) -> list[DetectionStrategy]:
        return [
            *super().detection_strategies(),
            DetectionStrategy(
                "known-location", lambda: from_known_locations(self.known_install_dirs(), self.layout)
            ),
            DetectionStrategy("spotlight", lambda: from_spotlight(_BUNDLE_NAME, self.layout)),
        ]

    # ------------------------------------------------------------------
    # Packaging
    # ------------------------------------------------------------------

    def install_command(self, package: Path) -> list[str]:
        return ["installer", "-pkg", str(package), "-target", "/"]
