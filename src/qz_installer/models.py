"""Data models shared across the installer."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from urllib.parse import urlparse

from qz_installer.host import Architecture, Platform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessSignature:
    """Identifies QZ Tray among running processes.

    QZ Tray often runs on top of a bundled Java runtime, so the process name
    alone is not enough; the command line is matched against ``patterns``.
    """

    patterns: tuple[str, ...] = ("qz-tray.jar", "qz.App", "qz.ws.PrintSocketServer")
    process_names: tuple[str, ...] = ("qz-tray", "qz-tray.exe")
    service_name: str = "qz-tray"
    runtime_names: tuple[str, ...] = ("java", "java.exe", "javaw.exe")
    dir_hints: tuple[str, ...] = ("qz-tray", "qz tray")

    def matches_name(self, name: str | None) -> bool:
        """Return True if *name* is one of the native process names."""
        return bool(name) and name.lower() in self.process_names

    def matches_cmdline(self, cmdline: Sequence[str] | None) -> bool:
        """Return True if any signature pattern appears in *cmdline*."""
        if not cmdline:
            return False
        joined = " ".join(cmdline)
        return any(pattern in joined for pattern in self.patterns)

    def matches_dir(self, name: str) -> bool:
        """Return True if a directory name follows the QZ Tray naming convention."""
        lowered = name.lower()
        return any(hint in lowered for hint in self.dir_hints)


QZ_TRAY = ProcessSignature()


@dataclass(frozen=True)
class InstallationRecord:
    """A located QZ Tray installation."""

    install_dir: Path
    console_exe: Path | None = None
    source: str = ""


@dataclass(frozen=True)
class InstallLayout:
    """Where the executables sit inside an installation.

    ``launch_relpath`` is relative to the install root (the directory or app
    bundle the installer creates); the console executable lives next to the
    launch executable.
    """

    launch_relpath: str
    console_name: str

    @property
    def launch_name(self) -> str:
        return Path(self.launch_relpath).name

    def record_for_dir(self, install_dir: Path, source: str) -> InstallationRecord:
        console = install_dir / self.console_name
        return InstallationRecord(
            install_dir=install_dir,
            console_exe=console if console.is_file() else None,
            source=source,
        )

    def record_for_exe(self, exe: Path, source: str) -> InstallationRecord:
        return self.record_for_dir(exe.parent, source)

    def record_for_root(self, root: Path, source: str) -> InstallationRecord | None:
        """Return a record if *root* contains the launch executable."""
        exe = root / self.launch_relpath
        if not exe.is_file():
            return None
        return self.record_for_exe(exe, source)


@dataclass(frozen=True)
class ReleaseAsset:
    """A downloadable file attached to a release."""

    name: str
    url: str
    tag: str = ""

    @classmethod
    def from_url(cls, url: str, tag: str = "") -> ReleaseAsset:
        """Build an asset whose name is the last path component of *url*."""
        name = Path(urlparse(url).path).name
        return cls(name=name, url=url, tag=tag)


@dataclass(frozen=True)
class ReleaseTag:
    """A tagged release and its assets."""

    name: str
    prerelease: bool = False
    assets: tuple[ReleaseAsset, ...] = ()


class LifecycleState(StrEnum):
    """Where the target application is in the install run."""

    UNKNOWN = "unknown"
    RUNNING = "running"
    STOPPED = "stopped"
    STARTING = "starting"
    INSTALLING = "installing"


@dataclass
class OrchestrationContext:
    """State threaded through one install or detect run."""

    platform: Platform
    architecture: Architecture
    selector: str = "stable"
    asset: ReleaseAsset | None = None
    installation: InstallationRecord | None = None
    primary_ipv4: str | None = None
    was_running: bool = False
    state: LifecycleState = LifecycleState.UNKNOWN
    warnings: list[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        """Record a degraded outcome that left something for manual follow-up."""
        logger.warning(message)
        self.warnings.append(message)
