"""Process monitoring and stop/start control."""

from qz_installer.lifecycle.controller import LifecycleController
from qz_installer.lifecycle.monitor import ProcessMonitor

__all__ = ["LifecycleController", "ProcessMonitor"]
