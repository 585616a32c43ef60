"""Tests for the install and detect flows."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from qz_installer.config import InstallerConfig
from qz_installer.config.schema import InstallerSection
from qz_installer.errors import (
    InstallError,
    MissingDownloadToolError,
    NoMatchingAssetError,
    UnsupportedPlatformError,
)
from qz_installer.host import Architecture, Platform
from qz_installer.models import QZ_TRAY, InstallationRecord, LifecycleState
from qz_installer.orchestrator import Orchestrator
from qz_installer.platforms import Launcher
from qz_installer.releases import ReleaseResolver

_BASE = "https://github.com/qzind/tray/releases/download"
_LISTING = [
    {
        "tag_name": "v2.2.4",
        "prerelease": False,
        "assets": [
            {"name": "qz-tray-2.2.4-x86_64.run", "browser_download_url": f"{_BASE}/v2.2.4/qz-tray-2.2.4-x86_64.run"},
            {"name": "qz-tray-2.2.4-arm64.run", "browser_download_url": f"{_BASE}/v2.2.4/qz-tray-2.2.4-arm64.run"},
            {"name": "qz-tray-2.2.4-x86_64.pkg", "browser_download_url": f"{_BASE}/v2.2.4/qz-tray-2.2.4-x86_64.pkg"},
        ],
    },
    {"tag_name": "v2.3.0-rc1", "prerelease": True, "assets": []},
]


class FakeHost:
    """A QZ Tray host whose running state the fake backend and monitor share."""

    def __init__(self, install_dir: Path, running: bool = True) -> None:
        self.running = running
        console = install_dir / "qz-tray"
        console.write_text("")
        self.record = InstallationRecord(install_dir=install_dir, console_exe=console, source="known-location")

        self.backend = MagicMock()
        self.backend.signature = QZ_TRAY
        self.backend.success_codes = frozenset({0})
        self.backend.request_quit.return_value = True
        self.backend.locate_installation.return_value = self.record
        self.backend.default_installation.return_value = self.record
        self.backend.run_elevated.return_value = subprocess.CompletedProcess([], 0, "", "")
        self.backend.copy_elevated.return_value = True
        self.backend.launchers.return_value = [Launcher("direct-spawn", self._launch)]

        self.monitor = MagicMock()
        self.monitor.is_running.side_effect = lambda: self.running
        self.monitor.terminate_all.side_effect = self._terminate

    def _launch(self) -> bool:
        self.running = True
        return True

    def _terminate(self) -> int:
        self.running = False
        return 1


def _downloader() -> MagicMock:
    downloader = MagicMock()

    def fetch(url: str, dest: Path) -> Path:
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"installer")
        return dest

    downloader.fetch.side_effect = fetch
    return downloader


def _orchestrator(tmp_path: Path, host: FakeHost, **kwargs) -> Orchestrator:
    config = InstallerConfig(installer=InstallerSection(download_dir=str(tmp_path / "downloads")))
    kwargs.setdefault("downloader", _downloader())
    return Orchestrator(
        config,
        platform=kwargs.pop("platform", Platform.LINUX),
        architecture=kwargs.pop("architecture", Architecture.AMD64),
        backend=host.backend,
        monitor=host.monitor,
        resolver=ReleaseResolver(config.release),
        **kwargs,
    )


def _listing() -> httpx.Response:
    request = httpx.Request("GET", "https://api.github.com/repos/qzind/tray/releases")
    return httpx.Response(200, json=_LISTING, request=request)


@pytest.fixture
def no_sleep():
    with (
        patch("qz_installer.orchestrator.time") as orchestrator_time,
        patch("qz_installer.lifecycle.controller.time"),
    ):
        yield orchestrator_time.sleep


@pytest.fixture
def ipv4():
    with patch("qz_installer.orchestrator.detect_primary_ipv4", return_value="10.0.0.5") as mock:
        yield mock


# ======================================================================
# Install flow
# ======================================================================


@patch("httpx.get")
class TestRunInstall:
    def test_linux_amd64_stable_end_to_end(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock, ipv4: MagicMock
    ) -> None:
        mock_get.return_value = _listing()
        host = FakeHost(tmp_path, running=True)
        orchestrator = _orchestrator(tmp_path, host)

        ctx = orchestrator.run_install("stable")

        assert ctx.asset is not None
        assert ctx.asset.name == "qz-tray-2.2.4-x86_64.run"
        assert ctx.was_running is True
        assert ctx.installation == host.record
        assert ctx.primary_ipv4 == "10.0.0.5"
        assert ctx.state is LifecycleState.RUNNING
        assert ctx.warnings == []
        assert host.monitor.is_running() is True

        package = tmp_path / "downloads" / "tray-v2.2.4.run"
        host.backend.install_package.assert_called_once_with(package)
        assert not package.exists()
        host.backend.run_elevated.assert_called_once_with(
            [str(host.record.console_exe), "certgen", "--host", "localhost;10.0.0.5"]
        )
        assert host.backend.copy_elevated.call_args.args[1] == tmp_path / "override.crt"
        no_sleep.assert_called_once_with(2.0)

    def test_stop_precedes_install(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock, ipv4: MagicMock
    ) -> None:
        mock_get.return_value = _listing()
        host = FakeHost(tmp_path, running=True)
        order: list[str] = []
        host.backend.request_quit.side_effect = lambda: order.append("stop") or True
        host.backend.install_package.side_effect = lambda pkg: order.append("install")

        _orchestrator(tmp_path, host).run_install("stable")
        assert order == ["stop", "install"]

    def test_not_running_skips_stop(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock, ipv4: MagicMock
    ) -> None:
        mock_get.return_value = _listing()
        host = FakeHost(tmp_path, running=False)

        ctx = _orchestrator(tmp_path, host).run_install()
        assert ctx.was_running is False
        host.backend.request_quit.assert_not_called()
        assert ctx.state is LifecycleState.RUNNING

    def test_missing_download_tool_fails_first(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock, ipv4: MagicMock
    ) -> None:
        host = FakeHost(tmp_path)
        orchestrator = _orchestrator(tmp_path, host, downloader=None)
        with patch("qz_installer.releases.download.shutil.which", return_value=None):
            with pytest.raises(MissingDownloadToolError):
                orchestrator.run_install("stable")
        mock_get.assert_not_called()
        host.backend.install_package.assert_not_called()

    def test_no_asset_for_architecture(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock, ipv4: MagicMock
    ) -> None:
        mock_get.return_value = _listing()
        host = FakeHost(tmp_path)
        orchestrator = _orchestrator(tmp_path, host, architecture=Architecture.RISCV)
        with pytest.raises(NoMatchingAssetError):
            orchestrator.run_install("stable")
        host.monitor.terminate_all.assert_not_called()

    def test_install_failure_removes_package(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock, ipv4: MagicMock
    ) -> None:
        mock_get.return_value = _listing()
        host = FakeHost(tmp_path, running=False)
        host.backend.install_package.side_effect = InstallError("failed", "pkg", 1)
        with pytest.raises(InstallError):
            _orchestrator(tmp_path, host).run_install("stable")
        assert not (tmp_path / "downloads" / "tray-v2.2.4.run").exists()

    def test_degraded_steps_become_warnings(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock
    ) -> None:
        mock_get.return_value = _listing()
        host = FakeHost(tmp_path, running=False)
        host.backend.run_elevated.return_value = subprocess.CompletedProcess([], 1, "", "")
        host.backend.copy_elevated.return_value = False
        host.backend.launchers.return_value = []

        with patch("qz_installer.orchestrator.detect_primary_ipv4", return_value=None):
            ctx = _orchestrator(tmp_path, host).run_install("stable")

        assert len(ctx.warnings) == 4
        assert ctx.state is LifecycleState.STOPPED
        host.backend.run_elevated.assert_called_once_with(
            [str(host.record.console_exe), "certgen", "--host", "localhost"]
        )

    def test_falls_back_to_default_installation(
        self, mock_get: MagicMock, tmp_path: Path, no_sleep: MagicMock, ipv4: MagicMock
    ) -> None:
        mock_get.return_value = _listing()
        host = FakeHost(tmp_path, running=False)
        host.backend.locate_installation.return_value = None

        ctx = _orchestrator(tmp_path, host).run_install("stable")
        assert ctx.installation == host.record
        host.backend.default_installation.assert_called()


# ======================================================================
# Other flows
# ======================================================================


class TestOtherFlows:
    def test_unknown_platform(self, tmp_path: Path) -> None:
        with pytest.raises(UnsupportedPlatformError):
            Orchestrator(InstallerConfig(), platform=Platform.UNKNOWN)

    def test_detect_found(self, tmp_path: Path) -> None:
        host = FakeHost(tmp_path, running=True)
        ctx = _orchestrator(tmp_path, host).run_detect()
        assert ctx.installation == host.record
        assert ctx.state is LifecycleState.RUNNING

    def test_detect_not_found(self, tmp_path: Path) -> None:
        host = FakeHost(tmp_path, running=False)
        host.backend.locate_installation.return_value = None
        ctx = _orchestrator(tmp_path, host).run_detect()
        assert ctx.installation is None
        assert ctx.state is LifecycleState.STOPPED

    def test_start_when_running(self, tmp_path: Path) -> None:
        host = FakeHost(tmp_path, running=True)
        ctx = _orchestrator(tmp_path, host).run_start()
        assert ctx.was_running is True
        host.backend.launchers.assert_not_called()

    def test_stop(self, tmp_path: Path, no_sleep: MagicMock) -> None:
        host = FakeHost(tmp_path, running=True)
        ctx = _orchestrator(tmp_path, host).run_stop()
        assert ctx.was_running is True
        assert host.running is False

    def test_certgen(self, tmp_path: Path, ipv4: MagicMock) -> None:
        host = FakeHost(tmp_path, running=True)
        ctx = _orchestrator(tmp_path, host).run_certgen()
        assert ctx.warnings == []
        assert ctx.primary_ipv4 == "10.0.0.5"
