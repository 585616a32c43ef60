"""Release resolution and artifact download."""

from qz_installer.releases.download import DownloadTool, Downloader, detect_download_tool
from qz_installer.releases.resolver import (
    ReleaseResolver,
    ReleaseSelector,
    latest_tag,
    normalize_tag,
    parse_releases,
    select_asset,
)

__all__ = [
    "DownloadTool",
    "Downloader",
    "ReleaseResolver",
    "ReleaseSelector",
    "detect_download_tool",
    "latest_tag",
    "normalize_tag",
    "parse_releases",
    "select_asset",
]
