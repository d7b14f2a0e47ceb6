"""
Provider Harvesting

Builds provider CacheVersions from releases: one VersionDownloadDetail per
platform archive, with checksums read from the release's SHA256SUMS manifest
and protocol versions from its registry manifest.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from provider_registry.constants import (
    DEFAULT_PROTOCOLS,
    MANIFEST_SUFFIX,
    PROVIDER_REPO_PREFIX,
    SHASUMS_SIGNATURE_SUFFIX,
    SHASUMS_SUFFIX,
)
from provider_registry.exceptions import AssetResolutionGap

from .assets import (
    discover_platforms,
    find_asset_by_suffix,
    parse_protocols,
    parse_shasums,
    platform_archive_suffix,
)
from .base import BaseHarvester
from .context import RequestContext
from .interfaces import Asset, Release
from .records import CacheVersion, Platform, VersionDetails, VersionDownloadDetail
from .release_filter import version_from_tag


def provider_repo_name(provider_type: str) -> str:
    """Return the repository name for a provider type, e.g. "aws" -> "terraform-provider-aws"."""
    return f"{PROVIDER_REPO_PREFIX}{provider_type}"


def provider_cache_key(namespace: str, provider_type: str) -> str:
    return f"{namespace}/{provider_type}"


def _require_asset(assets: Sequence[Asset], suffix: str) -> Asset:
    asset = find_asset_by_suffix(assets, suffix)
    if asset is None:
        raise AssetResolutionGap(f"No asset matching {suffix}", suffix=suffix)
    return asset


class ProviderHarvester(BaseHarvester):
    """Harvests provider releases into per-platform download records."""

    def build_cache_version(
        self, release: Release, context: RequestContext
    ) -> Optional[CacheVersion]:
        """
        Resolve every platform a release ships.

        Platforms lacking an archive checksum are skipped individually. A release
        with no tag version, no checksum manifest or signature, or no resolvable
        platform yields None.
        """
        log = context.logger
        version = version_from_tag(release.tag_name)
        if version is None:
            log.info(f"Skipping release {release.tag_name}: tag is not a version tag")
            return None

        platforms = discover_platforms(release.assets)
        if not platforms:
            log.info(f"Skipping release {release.tag_name}: no platform archives")
            return None

        try:
            shasums, signature = self._checksum_assets(release.assets)
        except AssetResolutionGap as gap:
            log.info(f"Skipping release {release.tag_name}: {gap}")
            return None

        checksums = parse_shasums(self.download_text(shasums, context))
        details: List[VersionDownloadDetail] = []
        for platform in platforms:
            try:
                details.append(
                    self._resolve_detail(
                        release.assets, platform, shasums, signature, checksums
                    )
                )
            except AssetResolutionGap as gap:
                log.info(
                    f"Skipping platform {platform.os}/{platform.arch} of {release.tag_name}: {gap}"
                )

        if not details:
            log.info(f"Skipping release {release.tag_name}: no resolvable platforms")
            return None

        return CacheVersion(
            version=version,
            protocols=tuple(self._read_protocols(release, context)),
            download_details=tuple(details),
        )

    def find_version_details(
        self,
        owner: str,
        repo: str,
        version: str,
        os: str,
        arch: str,
        context: RequestContext,
    ) -> VersionDetails:
        """
        Resolve the download details of one version and platform from the live feed.

        The result carries no signing keys.

        Raises:
            NotFoundError: If the version does not exist.
            AssetResolutionGap: If the platform archive, checksum manifest, signature or checksum is missing.
        """
        context = context.bind(owner=owner, repo=repo, version=version)
        release = self.find_release(owner, repo, version, context)

        platform = Platform(os=os, arch=arch)
        _require_asset(release.assets, platform_archive_suffix(platform))
        shasums, signature = self._checksum_assets(release.assets)
        checksums = parse_shasums(self.download_text(shasums, context))
        detail = self._resolve_detail(
            release.assets, platform, shasums, signature, checksums
        )

        cache_version = CacheVersion(
            version=version,
            protocols=tuple(self._read_protocols(release, context)),
            download_details=(detail,),
        )
        details = cache_version.get_version_details(os, arch)
        assert details is not None
        return details

    def _checksum_assets(self, assets: Sequence[Asset]) -> Tuple[Asset, Asset]:
        return (
            _require_asset(assets, SHASUMS_SUFFIX),
            _require_asset(assets, SHASUMS_SIGNATURE_SUFFIX),
        )

    def _resolve_detail(
        self,
        assets: Sequence[Asset],
        platform: Platform,
        shasums: Asset,
        signature: Asset,
        checksums: Dict[str, str],
    ) -> VersionDownloadDetail:
        archive = _require_asset(assets, platform_archive_suffix(platform))
        shasum = checksums.get(archive.name)
        if shasum is None:
            raise AssetResolutionGap(
                f"No checksum for {archive.name}", suffix=SHASUMS_SUFFIX
            )
        return VersionDownloadDetail(
            platform=platform,
            filename=archive.name,
            download_url=archive.download_url,
            shasums_url=shasums.download_url,
            shasums_signature_url=signature.download_url,
            shasum=shasum,
        )

    def _read_protocols(self, release: Release, context: RequestContext) -> List[str]:
        manifest = find_asset_by_suffix(release.assets, MANIFEST_SUFFIX)
        if manifest is None:
            return list(DEFAULT_PROTOCOLS)
        return parse_protocols(self.download_text(manifest, context))
