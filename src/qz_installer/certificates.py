"""Certificate generation and override deployment for QZ Tray."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from qz_installer.errors import ResolutionError
from qz_installer.models import InstallationRecord
from qz_installer.platforms.base import PlatformBackend
from qz_installer.releases.download import Downloader

logger = logging.getLogger(__name__)

LOCALHOST = "localhost"
OVERRIDE_FILENAME = "override.crt"


def build_host_list(ipv4: str | None) -> str:
    """Return the ``--host`` value for ``certgen``: ``localhost[;<ipv4>]``."""
    if ipv4:
        return f"{LOCALHOST};{ipv4}"
    return LOCALHOST


@dataclass
class CertificateResult:
    """Outcome of the two certificate sub-steps."""

    hosts: str
    generated: bool = False
    override_deployed: bool = False
    endpoints: list[str] = field(default_factory=list)


class CertificateDeployer:
    """Runs ``certgen`` and installs the override trust file.

    Args:
        backend: Provides elevation and elevated copy.
        override_url: Where ``override.crt`` is downloaded from.
        secure_port: QZ Tray's secure websocket port, used in the report.
        downloader: Downloader for the override file; detected lazily.
    """

    def __init__(
        self,
        backend: PlatformBackend,
        override_url: str,
        secure_port: int = 8181,
        downloader: Downloader | None = None,
    ) -> None:
        self.backend = backend
        self.override_url = override_url
        self.secure_port = secure_port
        self._downloader = downloader

    def generate(self, record: InstallationRecord, hosts: str) -> bool:
        """Run ``<console> certgen --host <hosts>`` elevated.

        Returns:
            True if the tool ran and reported success.
        """
        console = record.console_exe
        if console is None or not console.is_file():
            logger.warning("QZ Tray console executable not found in %s", record.install_dir)
            return False

        logger.info("Generating certificate for %s", hosts)
        result = self.backend.run_elevated([str(console), "certgen", "--host", hosts])
        if result is None:
            logger.warning("Could not run certgen")
            return False
        if result.returncode not in self.backend.success_codes:
            logger.warning("certgen exited with status %s", result.returncode)
            return False
        logger.info("Certificate generated")
        return True

    def deploy_override(self, record: InstallationRecord) -> bool:
        """Download ``override.crt`` and copy it into the install directory.

        Returns:
            True if the file exists in the install directory afterwards.
        """
        target = record.install_dir / OVERRIDE_FILENAME
        logger.info("Deploying %s to %s", OVERRIDE_FILENAME, target)
        try:
            downloader = self._downloader or Downloader()
            with tempfile.TemporaryDirectory(prefix="qz-installer-") as tmp:
                staged = downloader.fetch(self.override_url, Path(tmp) / OVERRIDE_FILENAME)
                deployed = self.backend.copy_elevated(staged, target)
        except ResolutionError as exc:
            logger.warning("Could not download %s: %s", OVERRIDE_FILENAME, exc.message)
            return False

        if not deployed:
            logger.warning("Could not deploy %s; download it manually from %s", OVERRIDE_FILENAME, self.override_url)
        return deployed

    def endpoints(self, ipv4: str | None) -> list[str]:
        """Return the HTTPS endpoints QZ Tray serves after configuration."""
        hosts = [LOCALHOST] + ([ipv4] if ipv4 else [])
        return [f"https://{host}:{self.secure_port}" for host in hosts]

    def configure(self, record: InstallationRecord, ipv4: str | None) -> CertificateResult:
        """Generate the certificate and deploy the override file.

        The two steps are independent; a failure in one does not skip the other.
        """
        if not ipv4:
            logger.warning("No primary IPv4 detected; certificate will cover localhost only")
        result = CertificateResult(hosts=build_host_list(ipv4))
        result.generated = self.generate(record, result.hosts)
        result.override_deployed = self.deploy_override(record)
        if result.generated:
            result.endpoints = self.endpoints(ipv4)
        return result
