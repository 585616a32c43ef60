"""Installer error hierarchy.

Only unrecoverable conditions are raised as exceptions. Degraded outcomes
(stop/start verification, certificate generation, override deployment) are
reported as return values and collected as warnings by the orchestrator.
"""

from __future__ import annotations


class InstallerError(Exception):
    """Base error for all fatal installer conditions."""

    code = "INSTALLER_ERROR"
    exit_code = 2

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class UnsupportedPlatformError(InstallerError):
    """The host operating system could not be identified."""

    code = "UNSUPPORTED_PLATFORM"
    exit_code = 1

    def __init__(self, platform: str):
        super().__init__(f"Unsupported platform: {platform}", {"platform": platform})
        self.platform = platform


# Resolution errors
class ResolutionError(InstallerError):
    """Base error for release, asset, and download-tool resolution failures."""

    code = "RESOLUTION_ERROR"


class ReleaseMetadataError(ResolutionError):
    """The release listing could not be fetched or parsed."""

    code = "RELEASE_METADATA"

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None):
        super().__init__(message, {"url": url, "status_code": status_code})
        self.url = url
        self.status_code = status_code


class NoReleaseTagError(ResolutionError):
    """No release tag matches the requested channel."""

    code = "NO_RELEASE_TAG"

    def __init__(self, channel: str):
        super().__init__("Unable to locate a tag for this release", {"channel": channel})
        self.channel = channel


class NoMatchingAssetError(ResolutionError):
    """The resolved tag has no asset for this platform and architecture."""

    code = "NO_MATCHING_ASSET"

    def __init__(self, tag: str, extension: str, architecture: str):
        super().__init__(
            "Unable to locate a download for this platform",
            {"tag": tag, "extension": extension, "architecture": architecture},
        )
        self.tag = tag
        self.extension = extension
        self.architecture = architecture


class MissingDownloadToolError(ResolutionError):
    """Neither supported download tool is on PATH."""

    code = "MISSING_DOWNLOAD_TOOL"

    def __init__(self, tools: tuple[str, ...]):
        quoted = " or ".join(f'"{tool}"' for tool in tools)
        super().__init__(f"Either {quoted} are required to use this installer", {"tools": tools})
        self.tools = tools


class DownloadError(ResolutionError):
    """An artifact download did not produce a file."""

    code = "DOWNLOAD_FAILED"

    def __init__(self, message: str, url: str | None = None, returncode: int | None = None):
        super().__init__(message, {"url": url, "returncode": returncode})
        self.url = url
        self.returncode = returncode


# Install errors
class InstallError(InstallerError):
    """The native package installer reported failure."""

    code = "INSTALL_FAILED"

    def __init__(self, message: str, package: str | None = None, returncode: int | None = None):
        super().__init__(message, {"package": package, "returncode": returncode})
        self.package = package
        self.returncode = returncode
