"""Installer configuration system."""

from qz_installer.config.manager import ConfigManager
from qz_installer.config.schema import InstallerConfig

__all__ = ["ConfigManager", "InstallerConfig"]
