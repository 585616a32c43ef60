"""Turns a channel name or version into one downloadable release asset."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import httpx
from packaging.version import InvalidVersion, Version

from qz_installer.config.schema import ReleaseSection
from qz_installer.errors import NoMatchingAssetError, NoReleaseTagError, ReleaseMetadataError
from qz_installer.host import Architecture, Platform, classify_architecture, package_extension
from qz_installer.models import ReleaseAsset, ReleaseTag

logger = logging.getLogger(__name__)

STABLE = "stable"
BETA = "beta"
_CHANNEL_ALIASES = {"stable": STABLE, "beta": BETA, "unstable": BETA}


@dataclass(frozen=True)
class ReleaseSelector:
    """A parsed release request: either a channel or an explicit tag."""

    channel: str | None = STABLE
    tag: str | None = None

    @classmethod
    def parse(cls, value: str | None) -> ReleaseSelector:
        """Parse ``stable``, ``beta``/``unstable`` or a version string.

        An empty value means ``stable``. Anything that is not a channel name
        is treated as a version and normalised to a tag.
        """
        text = (value or "").strip()
        if not text:
            return cls(channel=STABLE)
        channel = _CHANNEL_ALIASES.get(text.lower())
        if channel is not None:
            return cls(channel=channel)
        return cls(channel=None, tag=normalize_tag(text))

    @property
    def is_explicit(self) -> bool:
        return self.tag is not None

    def __str__(self) -> str:
        return self.tag or self.channel or STABLE


def normalize_tag(version: str) -> str:
    """Prefix ``v`` to a version string unless it already has one."""
    text = version.strip()
    return text if text.startswith("v") else f"v{text}"


# ------------------------------------------------------------------
# Metadata parsing and ordering
# ------------------------------------------------------------------


def parse_release(data: dict) -> ReleaseTag | None:
    """Build a :class:`ReleaseTag` from one release object of the listing."""
    name = data.get("tag_name")
    if not name:
        return None
    assets = tuple(
        ReleaseAsset(name=asset.get("name") or "", url=asset["browser_download_url"], tag=name)
        for asset in data.get("assets") or []
        if asset.get("browser_download_url")
    )
    return ReleaseTag(name=name, prerelease=bool(data.get("prerelease")), assets=assets)


def parse_releases(payload: Iterable[dict]) -> list[ReleaseTag]:
    """Build release tags from a releases listing, skipping malformed entries."""
    releases = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        release = parse_release(item)
        if release is not None:
            releases.append(release)
    return releases


def version_sort_key(tag: str) -> tuple[int, Version | str]:
    """Sort key ordering valid versions above tags that are not PEP 440."""
    try:
        return (1, Version(tag))
    except InvalidVersion:
        return (0, tag)


def latest_tag(releases: Sequence[ReleaseTag], channel: str) -> ReleaseTag | None:
    """Return the newest release in the partition *channel* maps to.

    ``stable`` considers only non-prerelease tags; ``beta`` considers all.
    """
    pool = [r for r in releases if channel != STABLE or not r.prerelease]
    if not pool:
        return None
    return max(pool, key=lambda r: version_sort_key(r.name))


# ------------------------------------------------------------------
# Asset selection
# ------------------------------------------------------------------


def classify_asset(asset: ReleaseAsset) -> Architecture:
    """Bucket an asset by the architecture named in its file name or URL."""
    return classify_architecture(asset.name or asset.url.rsplit("/", 1)[-1])


def select_asset(
    assets: Sequence[ReleaseAsset], extension: str, architecture: Architecture
) -> ReleaseAsset | None:
    """Return the first asset with *extension* built for *architecture*."""
    for asset in assets:
        filename = asset.name or asset.url
        if not filename.endswith(extension):
            continue
        if classify_asset(asset) == architecture:
            return asset
    return None


# ------------------------------------------------------------------
# Resolver
# ------------------------------------------------------------------


class ReleaseResolver:
    """Fetches release metadata and picks the asset to install.

    Args:
        settings: Release endpoint settings.
    """

    def __init__(self, settings: ReleaseSection | None = None) -> None:
        self.settings = settings or ReleaseSection()
        self._releases: list[ReleaseTag] | None = None

    def fetch_releases(self) -> list[ReleaseTag]:
        """Fetch the release listing once per resolver.

        Raises:
            ReleaseMetadataError: On transport failure, HTTP error or bad JSON.
        """
        if self._releases is None:
            url = self.settings.releases_url
            payload = self._get_json(url, params={"per_page": self.settings.per_page})
            if not isinstance(payload, list):
                raise ReleaseMetadataError("Unexpected release listing format", url)
            self._releases = parse_releases(payload)
            logger.debug("Fetched %d releases from %s", len(self._releases), url)
        return self._releases

    def fetch_release(self, tag: str) -> ReleaseTag | None:
        """Fetch a single release by tag. Returns None if it does not exist."""
        url = self.settings.tag_url(tag)
        try:
            payload = self._get_json(url)
        except ReleaseMetadataError as exc:
            if exc.status_code == 404:
                return None
            raise
        return parse_release(payload) if isinstance(payload, dict) else None

    def resolve_tag(self, selector: ReleaseSelector) -> ReleaseTag:
        """Resolve *selector* to a release tag.

        Raises:
            NoReleaseTagError: If no release matches.
        """
        if selector.is_explicit:
            for release in self.fetch_releases():
                if release.name == selector.tag:
                    return release
            release = self.fetch_release(selector.tag)
            if release is None:
                raise NoReleaseTagError(str(selector))
            return release

        channel = selector.channel or STABLE
        release = latest_tag(self.fetch_releases(), channel)
        if release is None:
            raise NoReleaseTagError(channel)
        logger.info("Latest %s version found: %s", channel, release.name)
        return release

    def resolve_target(
        self, selector: ReleaseSelector | str, platform: Platform, architecture: Architecture
    ) -> ReleaseAsset:
        """Resolve a channel or version to the asset for this host.

        Raises:
            ReleaseMetadataError: If release metadata cannot be fetched.
            NoReleaseTagError: If no tag matches the selector.
            NoMatchingAssetError: If the tag has no asset for this host.
        """
        if not isinstance(selector, ReleaseSelector):
            selector = ReleaseSelector.parse(selector)
        release = self.resolve_tag(selector)
        extension = package_extension(platform)
        logger.info(
            "Searching %s downloads for %s matching %s...", extension, release.name, architecture
        )
        asset = select_asset(release.assets, extension, architecture)
        if asset is None:
            raise NoMatchingAssetError(release.name, extension, str(architecture))
        return asset

    def _get_json(self, url: str, params: dict | None = None):
        try:
            response = httpx.get(
                url,
                params=params,
                timeout=self.settings.timeout,
                follow_redirects=True,
                headers={"Accept": "application/vnd.github+json"},
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("Release metadata returned HTTP %d: %s", status, url)
            raise ReleaseMetadataError(f"Release metadata returned HTTP {status}", url, status) from exc
        except httpx.RequestError as exc:
            logger.error("Failed to reach release metadata at %s: %s", url, exc)
            raise ReleaseMetadataError(f"Failed to fetch release metadata: {exc}", url) from exc
        except ValueError as exc:
            raise ReleaseMetadataError(f"Invalid release metadata: {exc}", url) from exc
