"""QZ Tray installer - release resolution, lifecycle control, and certificate setup."""

__version__ = "0.3.0"

from qz_installer.errors import (
    InstallerError,
    NoMatchingAssetError,
    NoReleaseTagError,
    UnsupportedPlatformError,
)
from qz_installer.host import Architecture, Platform, detect_architecture, detect_platform
from qz_installer.models import InstallationRecord, ReleaseAsset, ReleaseTag

__all__ = [
    "Architecture",
    "InstallationRecord",
    "InstallerError",
    "NoMatchingAssetError",
    "NoReleaseTagError",
    "Platform",
    "ReleaseAsset",
    "ReleaseTag",
    "UnsupportedPlatformError",
    "__version__",
    "detect_architecture",
    "detect_platform",
]
