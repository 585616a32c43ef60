"""Pydantic models for installer configuration.

Nested section models use plain ``BaseModel``; only the top-level
:class:`InstallerConfig` extends ``BaseSettings`` so that values can be
overridden with ``QZ_INSTALLER_<SECTION>__<FIELD>`` environment variables.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class InstallerSection(BaseModel):
    """General installer settings."""

    log_level: str = "info"
    download_dir: str = ""


class ReleaseSection(BaseModel):
    """Where release metadata comes from."""

    owner: str = "qzind"
    repo: str = "tray"
    api_url: str = "https://api.github.com"
    per_page: int = 100
    timeout: float = 30.0

    @property
    def releases_url(self) -> str:
        """Return the releases listing endpoint."""
        return f"{self.api_url.rstrip('/')}/repos/{self.owner}/{self.repo}/releases"

    def tag_url(self, tag: str) -> str:
        """Return the endpoint for a single release by tag name."""
        return f"{self.releases_url}/tags/{tag}"


class LifecycleSection(BaseModel):
    """Timing for stopping and starting QZ Tray (seconds)."""

    stop_max_wait: int = 10
    poll_interval: float = 1.0
    start_grace: float = 3.0
    quit_grace: float = 2.0
    post_stop_settle: float = 2.0


class CertificateSection(BaseModel):
    """Certificate generation and override deployment settings."""

    override_url: str = "https://aprilboiz.github.io/qz-installer/override.crt"
    secure_port: int = 8181
    probe_host: str = "google.com"
    probe_port: int = 443


class InstallerConfig(BaseSettings):
    """Top-level installer configuration model.

    Maps to the TOML structure:
        [installer] / [release] / [lifecycle] / [certificate]

    All fields are optional with sensible defaults. Config file lives at
    ``~/.config/qz-installer/config.toml``.
    """

    model_config = SettingsConfigDict(env_prefix="QZ_INSTALLER_", env_nested_delimiter="__")

    installer: InstallerSection = Field(default_factory=InstallerSection)
    release: ReleaseSection = Field(default_factory=ReleaseSection)
    lifecycle: LifecycleSection = Field(default_factory=LifecycleSection)
    certificate: CertificateSection = Field(default_factory=CertificateSection)

    def get_download_dir(self) -> Path:
        """Return the directory installer packages are downloaded into."""
        if self.installer.download_dir:
            return Path(self.installer.download_dir).expanduser()
        return Path(tempfile.gettempdir())
