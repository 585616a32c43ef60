"""Linux backend: systemd user unit and makeself ``.run`` packages."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from qz_installer.commands import command_succeeds, run_command, spawn_detached
from qz_installer.detection import (
    DetectionStrategy,
    from_command_lookup,
    from_known_locations,
)
from qz_installer.host import Platform
from qz_installer.models import InstallationRecord, InstallLayout
from qz_installer.platforms.base import Launcher, PosixBackend

logger = logging.getLogger(__name__)

_SYSTEM_INSTALL_DIR = Path("/opt/qz-tray")


class LinuxBackend(PosixBackend):
    """Drives QZ Tray on Linux."""

    platform = Platform.LINUX
    layout = InstallLayout(launch_relpath="qz-tray", console_name="qz-tray")

    @property
    def unit_name(self) -> str:
        return f"{self.signature.service_name}.service"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def service_active(self) -> bool:
        """Return True if ``systemctl --user is-active`` reports the unit active."""
        return command_succeeds(["systemctl", "--user", "is-active", "--quiet", self.signature.service_name])

    def request_quit(self) -> bool:
        """Stop the user unit, if systemd knows about it."""
        if not self.has_user_unit():
            return False
        logger.info("Stopping %s user service", self.unit_name)
        return command_succeeds(["systemctl", "--user", "stop", self.signature.service_name])

    def has_user_unit(self) -> bool:
        """Return True if a ``qz-tray.service`` user unit file is installed."""
        result = run_command(["systemctl", "--user", "list-unit-files", self.unit_name])
        return result is not None and self.unit_name in result.stdout

    def launchers(self, record: InstallationRecord | None) -> list[Launcher]:
        launchers: list[Launcher] = []
        if self.has_user_unit():
            launchers.append(Launcher("systemd-user-unit", self._start_unit))

        exe = (record.install_dir if record else self.default_installation().install_dir) / "qz-tray"
        launchers.append(Launcher("direct-spawn", lambda: exe.is_file() and spawn_detached([exe])))
        return launchers

    def _start_unit(self) -> bool:
        logger.info("Starting %s user service", self.unit_name)
        return command_succeeds(["systemctl", "--user", "start", self.signature.service_name])

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def known_install_dirs(self) -> list[Path]:
        data_home = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
        return [_SYSTEM_INSTALL_DIR, Path(data_home) / "qz-tray"]

    def detection_strategies(self) -> list[DetectionStrategy]:
        return [
            *super().detection_strategies(),
            DetectionStrategy(
                "known-location", lambda: from_known_locations(self.known_install_dirs(), self.layout)
            ),
            DetectionStrategy("command-lookup", lambda: from_command_lookup(self.layout)),
        ]

    # ------------------------------------------------------------------
    # Packaging
    # ------------------------------------------------------------------

    def install_command(self, package: Path) -> list[str]:
        return ["bash", str(package), "--nox11", "--", "-y"]
