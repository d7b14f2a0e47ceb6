"""
Module Harvesting

Modules are distributed as the source archive of their tagged commit, so a
module version only needs the tag and the archive URL.
"""

from typing import Optional

from provider_registry.constants import MODULE_REPO_PREFIX
from provider_registry.exceptions import AssetResolutionGap

from .base import BaseHarvester
from .context import RequestContext
from .interfaces import Release
from .records import CacheVersion
from .release_filter import version_from_tag


def module_repo_name(system: str, name: str) -> str:
    """Return the repository name for a module, e.g. ("aws", "vpc") -> "terraform-aws-vpc"."""
    return f"{MODULE_REPO_PREFIX}{system}-{name}"


def module_cache_key(namespace: str, name: str, system: str) -> str:
    return f"{namespace}/{name}/{system}"


class ModuleHarvester(BaseHarvester):
    """Harvests module releases into version entries with source archive URLs."""

    def build_cache_version(
        self, release: Release, context: RequestContext
    ) -> Optional[CacheVersion]:
        version = version_from_tag(release.tag_name)
        if version is None:
            context.logger.info(
                f"Skipping release {release.tag_name}: tag is not a version tag"
            )
            return None
        if not release.source_archive_url:
            context.logger.info(
                f"Skipping release {release.tag_name}: no source archive"
            )
            return None
        return CacheVersion(version=version, source_archive_url=release.source_archive_url)

    def find_download_location(
        self, owner: str, repo: str, version: str, context: RequestContext
    ) -> str:
        """
        Return the source archive URL of one module version from the live feed.

        Raises:
            NotFoundError: If the version does not exist or has no source archive.
        """
        context = context.bind(owner=owner, repo=repo, version=version)
        release = self.find_release(owner, repo, version, context)
        if not release.source_archive_url:
            raise AssetResolutionGap(
                "Release has no source archive", details=release.tag_name
            )
        return release.source_archive_url
