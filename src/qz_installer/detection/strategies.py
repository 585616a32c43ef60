"""Install-path detection strategies.

Every strategy returns an :class:`InstallationRecord` or ``None``; a missing
prerequisite (no process table access, no ``whereis``, no ``mdfind``) simply
means the strategy does not apply.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable, Sequence
from pathlib import Path

import psutil

from qz_installer.commands import run_command
from qz_installer.models import InstallationRecord, InstallLayout, ProcessSignature

logger = logging.getLogger(__name__)

_CLASSPATH_FLAGS = ("-cp", "-classpath", "--class-path")


# ------------------------------------------------------------------
# Running process
# ------------------------------------------------------------------


def from_running_process(
    signature: ProcessSignature, layout: InstallLayout
) -> InstallationRecord | None:
    """Locate the installation through a live QZ Tray process.

    A native ``qz-tray`` process yields the directory of its launch
    executable, taken from ``exe`` or, for a shell launcher whose ``exe`` is
    the interpreter, from the command line. A host runtime (Java) process
    whose command line names the QZ Tray jar or main class yields the
    nearest ancestor directory named like an install root.
    """
    try:
        for proc in psutil.process_iter(["name", "exe", "cmdline"]):
            info = getattr(proc, "info", None) or {}
            exe = info.get("exe")
            cmdline = info.get("cmdline") or []

            if signature.matches_name(info.get("name")):
                launcher = _launch_executable(layout, exe, cmdline)
                if launcher is not None:
                    return layout.record_for_exe(launcher, "running-process")

            if not signature.matches_cmdline(cmdline):
                continue
            for root in _install_roots(signature, exe, cmdline):
                record = layout.record_for_root(root, "running-process")
                if record is not None:
                    return record
    except (psutil.Error, OSError) as exc:
        logger.debug("Process inspection unavailable: %s", exc)
    return None


def _launch_executable(
    layout: InstallLayout, exe: str | None, cmdline: Sequence[str]
) -> Path | None:
    """Return the first absolute path among *exe* and *cmdline* naming the launch executable."""
    target = layout.launch_name.lower()
    for candidate in [exe, *cmdline]:
        if not candidate:
            continue
        path = Path(candidate)
        if path.is_absolute() and path.name.lower() == target and path.is_file():
            return path
    return None


def _install_roots(
    signature: ProcessSignature, exe: str | None, cmdline: Sequence[str]
) -> list[Path]:
    """Return candidate install roots for a host-runtime process."""
    candidates: list[str] = [exe] if exe else []
    candidates.extend(_jar_arguments(cmdline))

    roots: list[Path] = []
    for candidate in candidates:
        for parent in Path(candidate).parents:
            if signature.matches_dir(parent.name) and parent not in roots:
                roots.append(parent)
                break
    return roots


def _jar_arguments(cmdline: Sequence[str]) -> Iterable[str]:
    """Yield jar paths named on a Java command line."""
    for index, token in enumerate(cmdline):
        if token.endswith(".jar"):
            yield token
        elif token in _CLASSPATH_FLAGS and index + 1 < len(cmdline):
            yield from (entry for entry in cmdline[index + 1].split(os.pathsep) if entry)


# ------------------------------------------------------------------
# Filesystem
# ------------------------------------------------------------------


def from_known_locations(roots: Sequence[Path], layout: InstallLayout) -> InstallationRecord | None:
    """Check each canonical install root for the launch executable."""
    for root in roots:
        record = layout.record_for_root(root, "known-location")
        if record is not None:
            return record
        logger.debug("Not found at %s", root / layout.launch_relpath)
    return None


def from_bounded_search(
    roots: Sequence[Path], layout: InstallLayout, max_depth: int = 3
) -> InstallationRecord | None:
    """Search each root, at most *max_depth* directories deep, for the launch executable."""
    target = layout.launch_name.lower()
    for root in roots:
        if not root.is_dir():
            continue
        hit = _search(root, target, max_depth)
        if hit is not None:
            return layout.record_for_exe(hit, "filesystem-search")
    return None


def _search(root: Path, target: str, max_depth: int) -> Path | None:
    base_depth = len(root.parts)
    for dirpath, dirnames, filenames in os.walk(root):
        for filename in filenames:
            if filename.lower() == target:
                return Path(dirpath) / filename
        if len(Path(dirpath).parts) - base_depth >= max_depth:
            dirnames[:] = []
        else:
            dirnames.sort()
    return None


# ------------------------------------------------------------------
# System lookup
# ------------------------------------------------------------------


def from_command_lookup(layout: InstallLayout) -> InstallationRecord | None:
    """Resolve the launch executable through ``PATH`` and ``whereis``."""
    name = layout.launch_name
    candidates: list[str] = []
    found = shutil.which(name)
    if found:
        candidates.append(found)
    candidates.extend(_whereis(name))

    for candidate in candidates:
        exe = Path(candidate).resolve()
        if exe.is_file():
            return layout.record_for_exe(exe, "command-lookup")
    return None


def _whereis(name: str) -> list[str]:
    result = run_command(["whereis", "-b", name])
    if result is None or result.returncode != 0:
        return []
    _, _, paths = result.stdout.partition(":")
    return paths.split()


def from_spotlight(bundle_name: str, layout: InstallLayout) -> InstallationRecord | None:
    """Ask the macOS Spotlight index for the application bundle."""
    query = f'kMDItemContentType == "com.apple.application-bundle" && kMDItemFSName == "{bundle_name}"'
    result = run_command(["mdfind", query])
    if result is None or result.returncode != 0:
        return None
    for line in result.stdout.splitlines():
        if not line.strip():
            continue
        record = layout.record_for_root(Path(line.strip()), "spotlight")
        if record is not None:
            return record
    return None
