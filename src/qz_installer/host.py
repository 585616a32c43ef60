"""Host platform and CPU architecture detection."""

from __future__ import annotations

import logging
import platform
from enum import StrEnum
from functools import lru_cache

logger = logging.getLogger(__name__)


class Platform(StrEnum):
    """Operating systems the installer knows how to drive."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    UNKNOWN = "unknown"


class Architecture(StrEnum):
    """CPU architectures that QZ Tray publishes builds for."""

    AMD64 = "amd64"
    ARM64 = "arm64"
    RISCV = "riscv"


_SYSTEM_MAP = {
    "windows": Platform.WINDOWS,
    "darwin": Platform.MACOS,
    "linux": Platform.LINUX,
}

# POSIX layers on Windows report their own system names
_WINDOWS_PREFIXES = ("cygwin", "msys", "mingw")

_PACKAGE_EXTENSIONS = {
    Platform.WINDOWS: ".exe",
    Platform.MACOS: ".pkg",
}
_DEFAULT_EXTENSION = ".run"


def classify_system(system: str) -> Platform:
    """Map a ``platform.system()`` style string to a :class:`Platform`."""
    name = (system or "").strip().lower()
    if name in _SYSTEM_MAP:
        return _SYSTEM_MAP[name]
    if name.startswith(_WINDOWS_PREFIXES):
        return Platform.WINDOWS
    return Platform.UNKNOWN


def classify_architecture(machine: str) -> Architecture:
    """Map a CPU identification string to an :class:`Architecture`.

    Unrecognised strings (``x86_64``, ``AMD64``, empty) fall back to amd64.
    """
    name = (machine or "").lower()
    if "arm64" in name or "aarch64" in name:
        return Architecture.ARM64
    if "riscv" in name:
        return Architecture.RISCV
    return Architecture.AMD64


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    """Detect the running operating system.

    Returns:
        One of the four :class:`Platform` members. Never raises.
    """
    try:
        system = platform.system()
    except OSError:
        system = ""
    result = classify_system(system)
    logger.debug("Detected platform: %s (%s)", result, system or "empty")
    return result


@lru_cache(maxsize=1)
def detect_architecture() -> Architecture:
    """Detect the CPU architecture of the running host."""
    try:
        machine = platform.machine()
    except OSError:
        machine = ""
    result = classify_architecture(machine)
    logger.debug("Detected architecture: %s (%s)", result, machine or "empty")
    return result


def package_extension(target: Platform) -> str:
    """Return the installer package extension published for *target*."""
    return _PACKAGE_EXTENSIONS.get(target, _DEFAULT_EXTENSION)
