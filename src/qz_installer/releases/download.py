"""Artifact download through ``curl`` or ``wget``."""

from __future__ import annotations

import logging
import shutil
from enum import StrEnum
from pathlib import Path

from qz_installer.commands import run_command
from qz_installer.errors import DownloadError, MissingDownloadToolError

logger = logging.getLogger(__name__)

_DOWNLOAD_TIMEOUT = 600


class DownloadTool(StrEnum):
    """Supported download programs, in preference order."""

    CURL = "curl"
    WGET = "wget"


def detect_download_tool() -> DownloadTool:
    """Return the first download tool found on ``PATH``.

    Raises:
        MissingDownloadToolError: If neither tool is installed.
    """
    for tool in DownloadTool:
        if shutil.which(tool.value):
            logger.debug("Using %s for downloads", tool)
            return tool
    raise MissingDownloadToolError(tuple(tool.value for tool in DownloadTool))


class Downloader:
    """Fetches URLs to local files with the detected download tool."""

    def __init__(self, tool: DownloadTool | None = None) -> None:
        self.tool = tool or detect_download_tool()

    def command(self, url: str, dest: Path) -> list[str]:
        """Return the download command for *url*."""
        if self.tool is DownloadTool.CURL:
            return ["curl", "-fsSL", url, "--output", str(dest)]
        return ["wget", "-q", "-O", str(dest), url]

    def fetch(self, url: str, dest: Path) -> Path:
        """Download *url* to *dest*, replacing any previous copy.

        Raises:
            DownloadError: If the tool failed or produced no file.
        """
        if dest.exists():
            dest.unlink()
        dest.parent.mkdir(parents=True, exist_ok=True)

        logger.info("Downloading %s...", url)
        result = run_command(self.command(url, dest), timeout=_DOWNLOAD_TIMEOUT)
        returncode = result.returncode if result is not None else None
        if returncode != 0 or not dest.is_file():
            if dest.exists():
                dest.unlink()
            raise DownloadError(f"Failed to download {url}", url, returncode)
        return dest
