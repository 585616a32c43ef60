"""Stops and starts QZ Tray with bounded polling and kill escalation."""

from __future__ import annotations

import logging
import time

from qz_installer.lifecycle.monitor import ProcessMonitor
from qz_installer.models import InstallationRecord
from qz_installer.platforms.base import PlatformBackend

logger = logging.getLogger(__name__)


class LifecycleController:
    """Drives QZ Tray between running and stopped.

    Args:
        backend: Per-OS quit and launch mechanisms.
        monitor: Process monitor used to verify each transition.
        max_wait: Poll iterations to wait for a graceful exit.
        poll_interval: Seconds between polls.
        start_grace: Seconds to wait after a launch before verifying.
        quit_grace: Seconds to wait after an OS-level quit request.
    """

    def __init__(
        self,
        backend: PlatformBackend,
        monitor: ProcessMonitor,
        max_wait: int = 10,
        poll_interval: float = 1.0,
        start_grace: float = 3.0,
        quit_grace: float = 2.0,
    ) -> None:
        self.backend = backend
        self.monitor = monitor
        self.max_wait = max_wait
        self.poll_interval = poll_interval
        self.start_grace = start_grace
        self.quit_grace = quit_grace

    def stop(self, max_wait: int | None = None) -> bool:
        """Stop every QZ Tray process.

        Requests a graceful quit through the OS, signals SIGTERM, polls for
        exit and escalates to SIGKILL if processes survive the wait.

        Returns:
            Always True; a forced kill is the last resort and is not verified.
        """
        limit = self.max_wait if max_wait is None else max_wait
        logger.info("Stopping QZ Tray...")

        if self.backend.request_quit():
            time.sleep(self.quit_grace)

        self.monitor.terminate_all()

        for _ in range(limit):
            if not self.monitor.is_running():
                logger.info("QZ Tray stopped")
                return True
            time.sleep(self.poll_interval)

        if not self.monitor.is_running():
            logger.info("QZ Tray stopped")
            return True

        logger.warning("QZ Tray did not exit within %ss, forcing shutdown", limit * self.poll_interval)
        self.monitor.kill_all()
        return True

    def start(self, record: InstallationRecord | None = None) -> bool:
        """Start QZ Tray and confirm it is running.

        Launchers are tried in order; the first one confirmed by the process
        monitor wins.

        Returns:
            True if QZ Tray was confirmed running.
        """
        logger.info("Starting QZ Tray...")
        for launcher in self.backend.launchers(record):
            if not launcher.launch():
                logger.debug("Launcher %s could not be issued", launcher.name)
                continue
            time.sleep(self.start_grace)
            if self.monitor.is_running():
                logger.info("QZ Tray started via %s", launcher.name)
                return True
            logger.debug("QZ Tray not running after %s", launcher.name)

        logger.warning("QZ Tray did not start. Please launch it manually.")
        return False
