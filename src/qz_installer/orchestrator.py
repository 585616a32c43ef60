"""Sequences detection, download, stop, install, certificate setup and start."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from qz_installer.certificates import CertificateDeployer, CertificateResult
from qz_installer.config.schema import InstallerConfig
from qz_installer.errors import UnsupportedPlatformError
from qz_installer.host import (
    Architecture,
    Platform,
    detect_architecture,
    detect_platform,
    package_extension,
)
from qz_installer.lifecycle import LifecycleController, ProcessMonitor
from qz_installer.models import InstallationRecord, LifecycleState, OrchestrationContext
from qz_installer.network import detect_primary_ipv4
from qz_installer.platforms import PlatformBackend, get_backend
from qz_installer.releases import Downloader, ReleaseResolver, ReleaseSelector

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs the install and detect flows for one host.

    Collaborators default to the real implementations for the detected
    platform; each may be injected.
    """

    def __init__(
        self,
        config: InstallerConfig | None = None,
        *,
        platform: Platform | None = None,
        architecture: Architecture | None = None,
        backend: PlatformBackend | None = None,
        monitor: ProcessMonitor | None = None,
        resolver: ReleaseResolver | None = None,
        downloader: Downloader | None = None,
    ) -> None:
        self.config = config or InstallerConfig()
        self.platform = platform or detect_platform()
        self.architecture = architecture or detect_architecture()
        if self.platform is Platform.UNKNOWN:
            raise UnsupportedPlatformError(str(self.platform))

        self.backend = backend or get_backend(self.platform)
        self.monitor = monitor or ProcessMonitor(
            self.backend.signature, service_probe=self.backend.service_active
        )
        self.resolver = resolver or ReleaseResolver(self.config.release)
        self._downloader = downloader

        timing = self.config.lifecycle
        self.controller = LifecycleController(
            self.backend,
            self.monitor,
            max_wait=timing.stop_max_wait,
            poll_interval=timing.poll_interval,
            start_grace=timing.start_grace,
            quit_grace=timing.quit_grace,
        )

    @property
    def downloader(self) -> Downloader:
        """The download tool; raises MissingDownloadToolError if none is installed."""
        if self._downloader is None:
            self._downloader = Downloader()
        return self._downloader

    def new_context(self, selector: str = "stable") -> OrchestrationContext:
        return OrchestrationContext(
            platform=self.platform, architecture=self.architecture, selector=selector
        )

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def run_install(self, selector: str | None = None) -> OrchestrationContext:
        """Install or upgrade QZ Tray and leave it configured and running.

        Raises:
            MissingDownloadToolError: If neither curl nor wget is available.
            ResolutionError: If no tag or asset matches, or the download fails.
            InstallError: If the native installer fails.
        """
        parsed = ReleaseSelector.parse(selector)
        ctx = self.new_context(str(parsed))
        downloader = self.downloader

        ctx.asset = self.resolver.resolve_target(parsed, self.platform, self.architecture)
        package = self.package_path(ctx.asset.tag)
        downloader.fetch(ctx.asset.url, package)

        if self.monitor.is_running():
            ctx.was_running = True
            ctx.state = LifecycleState.RUNNING
            logger.info("QZ Tray is currently running, stopping it before installation")
            self.controller.stop()
            time.sleep(self.config.lifecycle.post_stop_settle)
            ctx.state = LifecycleState.STOPPED

        ctx.state = LifecycleState.INSTALLING
        try:
            self.backend.install_package(package)
        finally:
            package.unlink(missing_ok=True)

        ctx.installation = self.backend.locate_installation() or self.backend.default_installation()
        self.configure_certificates(ctx)

        ctx.state = LifecycleState.STARTING
        if self.controller.start(ctx.installation):
            ctx.state = LifecycleState.RUNNING
        else:
            ctx.state = LifecycleState.STOPPED
            ctx.warn("QZ Tray did not start; launch it manually")
        return ctx

    def run_detect(self) -> OrchestrationContext:
        """Locate an existing installation without changing anything."""
        ctx = self.new_context()
        ctx.installation = self.backend.locate_installation()
        ctx.state = LifecycleState.RUNNING if self.monitor.is_running() else LifecycleState.STOPPED
        return ctx

    def run_stop(self) -> OrchestrationContext:
        ctx = self.new_context()
        if self.monitor.is_running():
            ctx.was_running = True
            self.controller.stop()
        ctx.state = LifecycleState.STOPPED
        return ctx

    def run_start(self) -> OrchestrationContext:
        ctx = self.new_context()
        ctx.installation = self.backend.locate_installation()
        if self.monitor.is_running():
            ctx.was_running = True
            ctx.state = LifecycleState.RUNNING
            return ctx
        ctx.state = LifecycleState.STARTING
        if self.controller.start(ctx.installation):
            ctx.state = LifecycleState.RUNNING
        else:
            ctx.state = LifecycleState.STOPPED
            ctx.warn("QZ Tray did not start; launch it manually")
        return ctx

    def run_certgen(self) -> OrchestrationContext:
        """Regenerate the certificate and override file for an existing install."""
        ctx = self.new_context()
        ctx.installation = self.backend.locate_installation() or self.backend.default_installation()
        self.configure_certificates(ctx)
        return ctx

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def package_path(self, tag: str) -> Path:
        """Where the installer package for *tag* is downloaded to."""
        name = f"{self.config.release.repo}-{tag}{package_extension(self.platform)}"
        return self.config.get_download_dir() / name

    def configure_certificates(self, ctx: OrchestrationContext) -> CertificateResult:
        settings = self.config.certificate
        ctx.primary_ipv4 = detect_primary_ipv4(
            self.platform, settings.probe_host, settings.probe_port
        )
        if ctx.primary_ipv4 is None:
            ctx.warn("Unable to detect primary IPv4; certificate covers localhost only")

        record: InstallationRecord = ctx.installation or self.backend.default_installation()
        deployer = CertificateDeployer(
            self.backend,
            settings.override_url,
            settings.secure_port,
            downloader=self._downloader,
        )
        result = deployer.configure(record, ctx.primary_ipv4)
        if not result.generated:
            ctx.warn(
                f'Certificate not generated; run: "{record.console_exe}" certgen --host "{result.hosts}"'
            )
        if not result.override_deployed:
            ctx.warn(f"Override certificate not deployed; download it from {settings.override_url}")
        for endpoint in result.endpoints:
            logger.info("QZ Tray available at %s", endpoint)
        return result
