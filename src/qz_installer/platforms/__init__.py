"""Per-OS backends."""

from __future__ import annotations

from qz_installer.errors import UnsupportedPlatformError
from qz_installer.host import Platform
from qz_installer.platforms.base import Launcher, PlatformBackend, PosixBackend
from qz_installer.platforms.linux import LinuxBackend
from qz_installer.platforms.macos import MacOSBackend
from qz_installer.platforms.windows import WindowsBackend

_BACKENDS: dict[Platform, type[PlatformBackend]] = {
    Platform.WINDOWS: WindowsBackend,
    Platform.MACOS: MacOSBackend,
    Platform.LINUX: LinuxBackend,
}


def get_backend(platform: Platform) -> PlatformBackend:
    """Return the backend for *platform*.

    Raises:
        UnsupportedPlatformError: For :attr:`Platform.UNKNOWN`.
    """
    try:
        return _BACKENDS[platform]()
    except KeyError:
        raise UnsupportedPlatformError(str(platform)) from None


__all__ = [
    "Launcher",
    "LinuxBackend",
    "MacOSBackend",
    "PlatformBackend",
    "PosixBackend",
    "WindowsBackend",
    "get_backend",
]
