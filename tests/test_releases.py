"""Tests for release selection, asset bucketing and downloads."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from qz_installer.config.schema import ReleaseSection
from qz_installer.errors import (
    DownloadError,
    MissingDownloadToolError,
    NoMatchingAssetError,
    NoReleaseTagError,
    ReleaseMetadataError,
)
from qz_installer.host import Architecture, Platform
from qz_installer.models import ReleaseAsset, ReleaseTag
from qz_installer.releases import (
    Downloader,
    DownloadTool,
    ReleaseResolver,
    ReleaseSelector,
    detect_download_tool,
    latest_tag,
    normalize_tag,
    parse_releases,
    select_asset,
)

_BASE = "https://github.com/qzind/tray/releases/download"


def _release(tag: str, prerelease: bool = False, files: tuple[str, ...] = ()) -> dict:
    return {
        "tag_name": tag,
        "prerelease": prerelease,
        "assets": [
            {"name": name, "browser_download_url": f"{_BASE}/{tag}/{name}"} for name in files
        ],
    }


_LISTING = [
    _release("v1.9.0", files=("qz-tray-1.9.0-x86_64.run",)),
    _release(
        "v1.10.0",
        files=(
            "qz-tray-1.10.0-x86_64.run",
            "qz-tray-1.10.0-arm64.run",
            "qz-tray-1.10.0-x86_64.pkg",
            "qz-tray-1.10.0-x86_64.exe",
        ),
    ),
    _release("v2.0.0-beta", prerelease=True, files=("qz-tray-2.0.0-beta-x86_64.run",)),
]


def _response(payload, status: int = 200) -> httpx.Response:
    request = httpx.Request("GET", "https://api.github.com/repos/qzind/tray/releases")
    return httpx.Response(status, json=payload, request=request)


# ======================================================================
# Selector parsing
# ======================================================================


class TestReleaseSelector:
    def test_default_is_stable(self) -> None:
        assert ReleaseSelector.parse(None) == ReleaseSelector(channel="stable")
        assert ReleaseSelector.parse("") == ReleaseSelector(channel="stable")

    def test_unstable_is_beta(self) -> None:
        assert ReleaseSelector.parse("unstable").channel == "beta"
        assert ReleaseSelector.parse("BETA").channel == "beta"

    def test_version_is_normalised(self) -> None:
        selector = ReleaseSelector.parse("2.2.4")
        assert selector.is_explicit
        assert selector.tag == "v2.2.4"
        assert str(selector) == "v2.2.4"

    def test_normalize_keeps_prefix(self) -> None:
        assert normalize_tag("v2.2.4") == "v2.2.4"
        assert normalize_tag(" 2.1 ") == "v2.1"


# ======================================================================
# Tag ordering
# ======================================================================


class TestLatestTag:
    """Tags are ordered by version, not by string, with betas only on request."""

    def test_stable_and_beta(self) -> None:
        releases = parse_releases(_LISTING)
        assert latest_tag(releases, "stable").name == "v1.10.0"
        assert latest_tag(releases, "beta").name == "v2.0.0-beta"

    def test_semantic_ordering(self) -> None:
        releases = [ReleaseTag("v2.2.1"), ReleaseTag("v2.10.0"), ReleaseTag("v2.9.9")]
        assert latest_tag(releases, "stable").name == "v2.10.0"

    def test_invalid_versions_sort_last(self) -> None:
        releases = [ReleaseTag("nightly-build"), ReleaseTag("v0.1.0")]
        assert latest_tag(releases, "stable").name == "v0.1.0"

    def test_no_stable_tags(self) -> None:
        releases = [ReleaseTag("v3.0.0-rc1", prerelease=True)]
        assert latest_tag(releases, "stable") is None

    def test_parse_skips_malformed_entries(self) -> None:
        releases = parse_releases([{"prerelease": False}, "junk", _release("v1.0.0")])
        assert [r.name for r in releases] == ["v1.0.0"]


# ======================================================================
# Asset selection
# ======================================================================


class TestSelectAsset:
    def test_arm64_run_ignores_pkg(self) -> None:
        assets = [
            ReleaseAsset.from_url(".../app-amd64.run"),
            ReleaseAsset.from_url(".../app-arm64.run"),
            ReleaseAsset.from_url(".../app.pkg"),
        ]
        chosen = select_asset(assets, ".run", Architecture.ARM64)
        assert chosen is not None
        assert chosen.name == "app-arm64.run"

    def test_amd64_bucket_takes_unlabelled(self) -> None:
        assets = [
            ReleaseAsset.from_url(".../app-arm64.run"),
            ReleaseAsset.from_url(".../app.run"),
        ]
        assert select_asset(assets, ".run", Architecture.AMD64).name == "app.run"

    def test_first_match_wins(self) -> None:
        assets = [
            ReleaseAsset.from_url(".../first-x86_64.exe"),
            ReleaseAsset.from_url(".../second-x86_64.exe"),
        ]
        assert select_asset(assets, ".exe", Architecture.AMD64).name == "first-x86_64.exe"

    def test_aarch64_matches_arm64(self) -> None:
        assets = [ReleaseAsset.from_url(".../app-aarch64.run")]
        assert select_asset(assets, ".run", Architecture.ARM64) is not None

    def test_empty_bucket(self) -> None:
        assets = [ReleaseAsset.from_url(".../app-amd64.run")]
        assert select_asset(assets, ".run", Architecture.RISCV) is None


# ======================================================================
# Resolver
# ======================================================================


class TestReleaseResolver:
    @patch("httpx.get")
    def test_stable_linux_amd64(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(_LISTING)
        asset = ReleaseResolver().resolve_target("stable", Platform.LINUX, Architecture.AMD64)
        assert asset.tag == "v1.10.0"
        assert asset.name == "qz-tray-1.10.0-x86_64.run"
        args, kwargs = mock_get.call_args
        assert args[0] == "https://api.github.com/repos/qzind/tray/releases"
        assert kwargs["params"] == {"per_page": 100}

    @patch("httpx.get")
    def test_beta_channel(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(_LISTING)
        asset = ReleaseResolver().resolve_target("beta", Platform.LINUX, Architecture.AMD64)
        assert asset.tag == "v2.0.0-beta"

    @patch("httpx.get")
    def test_macos_picks_pkg(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(_LISTING)
        asset = ReleaseResolver().resolve_target("stable", Platform.MACOS, Architecture.AMD64)
        assert asset.name.endswith(".pkg")

    @patch("httpx.get")
    def test_fetches_listing_once(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(_LISTING)
        resolver = ReleaseResolver()
        resolver.fetch_releases()
        resolver.fetch_releases()
        assert mock_get.call_count == 1

    @patch("httpx.get")
    def test_explicit_version_from_listing(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(_LISTING)
        asset = ReleaseResolver().resolve_target("1.9.0", Platform.LINUX, Architecture.AMD64)
        assert asset.tag == "v1.9.0"

    @patch("httpx.get")
    def test_explicit_version_looked_up_by_tag(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = [
            _response(_LISTING),
            _response(_release("v1.0.0", files=("qz-tray-1.0.0.run",))),
        ]
        asset = ReleaseResolver().resolve_target("v1.0.0", Platform.LINUX, Architecture.AMD64)
        assert asset.tag == "v1.0.0"
        assert mock_get.call_args_list[1].args[0].endswith("/releases/tags/v1.0.0")

    @patch("httpx.get")
    def test_unknown_explicit_version(self, mock_get: MagicMock) -> None:
        mock_get.side_effect = [_response(_LISTING), _response({"message": "Not Found"}, 404)]
        with pytest.raises(NoReleaseTagError):
            ReleaseResolver().resolve_target("9.9.9", Platform.LINUX, Architecture.AMD64)

    @patch("httpx.get")
    def test_no_tag(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response([])
        with pytest.raises(NoReleaseTagError) as exc_info:
            ReleaseResolver().resolve_target("stable", Platform.LINUX, Architecture.AMD64)
        assert exc_info.value.message == "Unable to locate a tag for this release"
        assert exc_info.value.exit_code == 2

    @patch("httpx.get")
    def test_no_asset(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(_LISTING)
        with pytest.raises(NoMatchingAssetError) as exc_info:
            ReleaseResolver().resolve_target("stable", Platform.LINUX, Architecture.RISCV)
        assert exc_info.value.message == "Unable to locate a download for this platform"

    @patch("httpx.get")
    def test_http_error(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response({"message": "rate limited"}, 403)
        with pytest.raises(ReleaseMetadataError) as exc_info:
            ReleaseResolver().fetch_releases()
        assert exc_info.value.status_code == 403

    @patch("httpx.get", side_effect=httpx.ConnectError("offline"))
    def test_transport_error(self, mock_get: MagicMock) -> None:
        with pytest.raises(ReleaseMetadataError):
            ReleaseResolver().fetch_releases()

    @patch("httpx.get")
    def test_custom_repository(self, mock_get: MagicMock) -> None:
        mock_get.return_value = _response(_LISTING)
        settings = ReleaseSection(owner="acme", repo="tray-fork", per_page=10)
        ReleaseResolver(settings).fetch_releases()
        args, kwargs = mock_get.call_args
        assert args[0] == "https://api.github.com/repos/acme/tray-fork/releases"
        assert kwargs["params"] == {"per_page": 10}


# ======================================================================
# Downloads
# ======================================================================


class TestDownloadTool:
    @patch("qz_installer.releases.download.shutil.which")
    def test_prefers_curl(self, mock_which: MagicMock) -> None:
        mock_which.side_effect = lambda name: f"/usr/bin/{name}"
        assert detect_download_tool() is DownloadTool.CURL

    @patch("qz_installer.releases.download.shutil.which")
    def test_falls_back_to_wget(self, mock_which: MagicMock) -> None:
        mock_which.side_effect = lambda name: "/usr/bin/wget" if name == "wget" else None
        assert detect_download_tool() is DownloadTool.WGET

    @patch("qz_installer.releases.download.shutil.which", return_value=None)
    def test_missing(self, mock_which: MagicMock) -> None:
        with pytest.raises(MissingDownloadToolError) as exc_info:
            detect_download_tool()
        assert exc_info.value.message == 'Either "curl" or "wget" are required to use this installer'
        assert exc_info.value.exit_code == 2


class TestDownloader:
    def test_commands(self, tmp_path: Path) -> None:
        dest = tmp_path / "pkg.run"
        assert Downloader(DownloadTool.CURL).command("https://x/y", dest) == [
            "curl", "-fsSL", "https://x/y", "--output", str(dest),
        ]
        assert Downloader(DownloadTool.WGET).command("https://x/y", dest) == [
            "wget", "-q", "-O", str(dest), "https://x/y",
        ]

    def test_fetch_success(self, tmp_path: Path) -> None:
        dest = tmp_path / "pkg.run"

        def fake_run(cmd, **kwargs):
            dest.write_bytes(b"payload")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        with patch("qz_installer.releases.download.run_command", side_effect=fake_run):
            assert Downloader(DownloadTool.CURL).fetch("https://x/y", dest) == dest
        assert dest.read_bytes() == b"payload"

    def test_fetch_replaces_stale_copy(self, tmp_path: Path) -> None:
        dest = tmp_path / "pkg.run"
        dest.write_bytes(b"stale")
        seen = []

        def fake_run(cmd, **kwargs):
            seen.append(dest.exists())
            dest.write_bytes(b"fresh")
            return subprocess.CompletedProcess(cmd, 0, "", "")

        with patch("qz_installer.releases.download.run_command", side_effect=fake_run):
            Downloader(DownloadTool.CURL).fetch("https://x/y", dest)
        assert seen == [False]

    def test_fetch_failure(self, tmp_path: Path) -> None:
        dest = tmp_path / "pkg.run"
        failed = subprocess.CompletedProcess([], 22, "", "404")
        with patch("qz_installer.releases.download.run_command", return_value=failed):
            with pytest.raises(DownloadError) as exc_info:
                Downloader(DownloadTool.CURL).fetch("https://x/y", dest)
        assert exc_info.value.returncode == 22
        assert not dest.exists()
