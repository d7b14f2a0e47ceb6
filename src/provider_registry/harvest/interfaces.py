"""
Core Interfaces for the Harvesting Subsystem

This module defines the release feed data contract and the abstract seams
(release feed, cache store) that the filter, harvesters and orchestrator are
written against.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Iterator, Optional, Tuple

from .context import RequestContext

if TYPE_CHECKING:
    import requests

    from .records import CacheRecord


@dataclass(frozen=True)
class Asset:
    """Represents a downloadable asset attached to a release."""

    id: str
    """Upstream identifier of the asset"""

    name: str
    """The display name (filename) of the asset"""

    download_url: str
    """Direct URL to download the asset"""


@dataclass(frozen=True)
class Release:
    """Represents an upstream release of a repository."""

    id: str
    """Upstream identifier of the release"""

    tag_name: str
    """The release tag (e.g., 'v1.2.0')"""

    created_at: datetime
    """Timezone-aware creation time; the feed is ordered by this, newest first"""

    draft: bool = False
    prerelease: bool = False
    latest: bool = False

    assets: Tuple[Asset, ...] = field(default_factory=tuple)
    """Downloadable assets for this release"""

    source_archive_url: Optional[str] = None
    """URL of the tarball for the tagged commit"""

    @property
    def is_candidate(self) -> bool:
        """Whether the release may be offered as an installable version."""
        return not (self.draft or self.prerelease)


@dataclass(frozen=True)
class ReleaseQuery:
    """One page request against the upstream release feed."""

    owner: str
    name: str
    page_size: int
    cursor: Optional[str] = None


@dataclass(frozen=True)
class ReleasePage:
    """One page of releases, newest first, plus the cursor for the next page."""

    releases: Tuple[Release, ...]
    next_cursor: Optional[str] = None
    """None when this is the last page"""


class ReleaseFeed(ABC):
    """
    Abstract base class for upstream release sources.

    A ReleaseFeed answers paginated release queries, repository existence
    checks and asset content downloads for one release-hosting service.
    """

    @abstractmethod
    def fetch_page(self, query: ReleaseQuery, context: RequestContext) -> ReleasePage:
        """
        Fetch one page of releases ordered by creation time descending.

        Raises:
            UpstreamQueryError: On transport or query failure.
        """

    @abstractmethod
    def iter_pages(
        self,
        owner: str,
        name: str,
        context: RequestContext,
        cursor: Optional[str] = None,
    ) -> Iterator[ReleasePage]:
        """
        Lazily yield pages, requesting the next page only when the previous one is consumed.

        Parameters:
            cursor (Optional[str]): Resume after this cursor instead of starting at the newest release.
        """

    @abstractmethod
    def repository_exists(self, owner: str, name: str, context: RequestContext) -> bool:
        """
        Check whether the repository exists.

        Returns:
            bool: False only for a definite "not found".

        Raises:
            UpstreamQueryError: For any other failure.
        """

    @abstractmethod
    def download_asset(self, url: str, context: RequestContext) -> "requests.Response":
        """
        Open a streamed download of an asset's content.

        Raises:
            AssetDownloadError: On transport failure or a non-200 status.
        """


class CacheStore(ABC):
    """
    Abstract base class for CacheRecord persistence.

    Both operations raise CacheUnavailableError on backend failure; it is the
    caller's policy whether that is fatal.
    """

    @abstractmethod
    def get(self, key: str) -> Optional["CacheRecord"]:
        """
        Read the record stored under `key`.

        Returns:
            Optional[CacheRecord]: The record, or None if nothing is stored.

        Raises:
            CacheUnavailableError: If the backend is unreachable or the record cannot be decoded.
        """

    @abstractmethod
    def put(self, key: str, record: "CacheRecord") -> None:
        """
        Replace the record stored under `key` atomically and wholesale.

        Raises:
            CacheUnavailableError: If the record cannot be written.
        """
