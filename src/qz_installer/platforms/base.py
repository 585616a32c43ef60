"""Common interface for per-OS installer backends."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from qz_installer.commands import run_command
from qz_installer.detection import DetectionStrategy, InstallPathResolver, from_running_process
from qz_installer.errors import InstallError
from qz_installer.host import Platform
from qz_installer.models import QZ_TRAY, InstallationRecord, InstallLayout, ProcessSignature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Launcher:
    """One way of starting QZ Tray.

    ``launch`` returns True if the start request was issued; whether the
    application actually came up is checked by the caller.
    """

    name: str
    launch: Callable[[], bool]


class PlatformBackend(ABC):
    """Capabilities the orchestrator needs from the host OS."""

    platform: Platform
    layout: InstallLayout
    success_codes: frozenset[int] = frozenset({0})

    def __init__(self, signature: ProcessSignature = QZ_TRAY) -> None:
        self.signature = signature

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def service_active(self) -> bool:
        """Return True if the OS service manager reports QZ Tray active."""
        return False

    def request_quit(self) -> bool:
        """Ask QZ Tray to quit through the OS. Returns True if a request was sent."""
        return False

    @abstractmethod
    def launchers(self, record: InstallationRecord | None) -> list[Launcher]:
        """Return the ordered start methods for this OS."""

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    @abstractmethod
    def known_install_dirs(self) -> list[Path]:
        """Return canonical install roots, most likely first."""

    def detection_strategies(self) -> list[DetectionStrategy]:
        """Return the ordered detection chain for this OS."""
        return [
            DetectionStrategy(
                "running-process", lambda: from_running_process(self.signature, self.layout)
            ),
        ]

    def locate_installation(self) -> InstallationRecord | None:
        """Run the detection chain and return the first hit."""
        return InstallPathResolver(self.detection_strategies()).resolve()

    def default_installation(self) -> InstallationRecord:
        """Return the record for the canonical install root, found or not."""
        root = self.known_install_dirs()[0]
        record = self.layout.record_for_root(root, "default")
        if record is not None:
            return record
        exe = root / self.layout.launch_relpath
        return InstallationRecord(
            install_dir=exe.parent,
            console_exe=exe.parent / self.layout.console_name,
            source="default",
        )

    # ------------------------------------------------------------------
    # Packaging and privileges
    # ------------------------------------------------------------------

    @abstractmethod
    def install_command(self, package: Path) -> list[str]:
        """Return the native installer invocation for *package*."""

    def install_package(self, package: Path) -> None:
        """Run the native installer with elevated privileges.

        Raises:
            InstallError: If the installer could not be run or exited non-zero.
        """
        logger.info("Installing %s", package.name)
        result = self.run_elevated(self.install_command(package), capture=False, timeout=None)
        if result is None:
            raise InstallError(f"Could not run installer for {package.name}", str(package))
        if result.returncode not in self.success_codes:
            raise InstallError(
                f"Installer exited with status {result.returncode}",
                str(package),
                result.returncode,
            )
        logger.info("Installed %s", package.name)

    @abstractmethod
    def is_elevated(self) -> bool:
        """Return True if this process already has administrative rights."""

    @abstractmethod
    def elevate(self, cmd: Sequence[str]) -> list[str]:
        """Wrap *cmd* so it runs with administrative rights."""

    def run_elevated(
        self,
        cmd: Sequence[str],
        *,
        capture: bool = False,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str] | None:
        """Run *cmd* with administrative rights."""
        return run_command(self.elevate(cmd), capture=capture, timeout=timeout)

    def copy_elevated(self, source: Path, dest: Path) -> bool:
        """Copy *source* to *dest*, elevating if needed.

        Returns:
            True if *dest* exists afterwards.
        """
        if self.is_elevated():
            try:
                shutil.copyfile(source, dest)
            except OSError as exc:
                logger.error("Failed to copy %s to %s: %s", source, dest, exc)
                return False
        else:
            result = self.run_elevated(self.copy_command(source, dest))
            if result is None or result.returncode not in self.success_codes:
                logger.error("Elevated copy to %s failed", dest)
                return False
        return dest.exists()

    @abstractmethod
    def copy_command(self, source: Path, dest: Path) -> list[str]:
        """Return the command that copies *source* to *dest*."""


class PosixBackend(PlatformBackend):
    """Elevation and copying shared by macOS and Linux."""

    def is_elevated(self) -> bool:
        return os.geteuid() == 0

    def elevate(self, cmd: Sequence[str]) -> list[str]:
        """Run as-is when root, else through ``sudo``, else ``su root -c``."""
        argv = [str(part) for part in cmd]
        if self.is_elevated():
            return argv
        if shutil.which("sudo"):
            return ["sudo", *argv]
        return ["su", "root", "-c", shlex.join(argv)]

    def copy_command(self, source: Path, dest: Path) -> list[str]:
        return ["cp", "-f", str(source), str(dest)]
