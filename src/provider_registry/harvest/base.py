"""
Base Harvester

Shared pipeline for turning an upstream release feed into CacheVersions:
paginate, filter, then normalize each accepted release.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional

from provider_registry.exceptions import NotFoundError

from .context import RequestContext
from .interfaces import Asset, Release, ReleaseFeed
from .records import CacheVersion
from .release_filter import SINCE_PADDING, collect_releases, find_release


class BaseHarvester(ABC):
    """
    Abstract base class for release harvesters.

    Subclasses decide how one release becomes a CacheVersion; the base class
    owns pagination, filtering and asset downloads.
    """

    def __init__(self, feed: ReleaseFeed, since_padding: timedelta = SINCE_PADDING):
        """
        Parameters:
            feed (ReleaseFeed): Upstream release source.
            since_padding (timedelta): Grace period applied to incremental harvests.
        """
        self.feed = feed
        self.since_padding = since_padding

    @abstractmethod
    def build_cache_version(
        self, release: Release, context: RequestContext
    ) -> Optional[CacheVersion]:
        """
        Normalize one release.

        Returns:
            Optional[CacheVersion]: The version, or None if the release cannot be offered.
        """

    def harvest_versions(
        self,
        owner: str,
        repo: str,
        context: RequestContext,
        since: Optional[datetime] = None,
    ) -> List[CacheVersion]:
        """
        Harvest installable versions, newest first.

        Parameters:
            owner (str): Repository owner on the release-hosting service.
            repo (str): Repository name.
            context (RequestContext): Deadline and logging context.
            since (Optional[datetime]): Only harvest releases created after this time (minus padding).

        Returns:
            List[CacheVersion]: Normalized versions of every accepted release that could be resolved.
        """
        context = context.bind(owner=owner, repo=repo)
        context.logger.info(
            f"Harvesting releases since {since.isoformat()}" if since else "Harvesting all releases"
        )
        releases = collect_releases(
            self.feed.iter_pages(owner, repo, context), since, self.since_padding
        )

        versions: List[CacheVersion] = []
        for release in releases:
            context.check()
            cache_version = self.build_cache_version(release, context)
            if cache_version is not None:
                versions.append(cache_version)

        context.logger.info(f"Harvested {len(versions)} versions")
        return versions

    def find_release(
        self, owner: str, repo: str, version: str, context: RequestContext
    ) -> Release:
        """
        Find the installable release for `version`.

        Raises:
            NotFoundError: If no such release exists.
        """
        release = find_release(self.feed.iter_pages(owner, repo, context), version)
        if release is None:
            raise NotFoundError(
                "Version not found", details=f"{owner}/{repo} {version}"
            )
        return release

    def download_text(self, asset: Asset, context: RequestContext) -> str:
        """Download an asset and return its content as text."""
        with self.feed.download_asset(asset.download_url, context) as response:
            return response.text
