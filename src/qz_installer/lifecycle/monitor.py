"""Detects whether QZ Tray is running and signals its processes."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

import psutil

from qz_installer.models import QZ_TRAY, ProcessSignature

logger = logging.getLogger(__name__)

_PROCESS_ATTRS = ["pid", "name", "cmdline"]


class ProcessMonitor:
    """Answers "is QZ Tray running?" from the process table and service manager.

    Args:
        signature: Patterns identifying the target application.
        service_probe: Optional callable reporting whether the OS service
            for the application is active (Linux user unit).
    """

    def __init__(
        self,
        signature: ProcessSignature = QZ_TRAY,
        service_probe: Callable[[], bool] | None = None,
    ) -> None:
        self.signature = signature
        self._service_probe = service_probe

    def is_running(self) -> bool:
        """Return True if any detection method finds the application.

        Checks the native process name, then command lines, then the
        service manager, stopping at the first positive answer.
        """
        checks = (self._native_process_running, self._command_line_running, self._service_active)
        for check in checks:
            if check():
                logger.debug("QZ Tray detected by %s", check.__name__)
                return True
        return False

    def find_processes(self) -> list[psutil.Process]:
        """Return every process matching the signature by name or command line."""
        return [
            proc
            for proc, info in self._iter_processes()
            if self.signature.matches_name(info.get("name"))
            or self.signature.matches_cmdline(info.get("cmdline"))
        ]

    def terminate_all(self) -> int:
        """Send SIGTERM to every matching process.

        Returns:
            Number of processes signalled.
        """
        count = 0
        for proc in self.find_processes():
            logger.info("Terminating QZ Tray process (PID: %s)...", proc.pid)
            try:
                proc.terminate()
                count += 1
            except psutil.NoSuchProcess:
                logger.debug("Process %s already exited", proc.pid)
            except psutil.AccessDenied:
                logger.warning("Permission denied terminating PID %s", proc.pid)
        return count

    def kill_all(self) -> int:
        """Send SIGKILL to every matching process.

        Returns:
            Number of processes signalled.
        """
        count = 0
        for proc in self.find_processes():
            logger.info("Killing QZ Tray process (PID: %s)", proc.pid)
            try:
                proc.kill()
                count += 1
            except psutil.NoSuchProcess:
                logger.debug("Process %s already exited", proc.pid)
            except psutil.AccessDenied:
                logger.warning("Permission denied killing PID %s", proc.pid)
        return count

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _iter_processes(self):
        """Yield ``(process, info)`` pairs, skipping this installer's own PID."""
        own_pid = os.getpid()
        try:
            for proc in psutil.process_iter(_PROCESS_ATTRS):
                info = getattr(proc, "info", None) or {}
                if info.get("pid", proc.pid) == own_pid:
                    continue
                yield proc, info
        except (psutil.Error, OSError) as exc:
            logger.debug("Process enumeration unavailable: %s", exc)

    def _native_process_running(self) -> bool:
        return any(self.signature.matches_name(info.get("name")) for _, info in self._iter_processes())

    def _command_line_running(self) -> bool:
        return any(
            self.signature.matches_cmdline(info.get("cmdline")) for _, info in self._iter_processes()
        )

    def _service_active(self) -> bool:
        if self._service_probe is None:
            return False
        return self._service_probe()
