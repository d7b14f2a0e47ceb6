"""
Release Filtering

Consumes release pages, drops drafts and prereleases, and stops pulling pages
as soon as the stopping condition is met. Both functions accept any iterable of
pages; with a lazy iterator (GithubReleaseSource.iter_pages) stopping early
means the remaining pages are never requested.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from provider_registry.constants import (
    DEFAULT_SINCE_PADDING_MINUTES,
    RELEASE_TAG_PREFIX,
)
from provider_registry.log_utils import logger

from .interfaces import Release, ReleasePage

SINCE_PADDING = timedelta(minutes=DEFAULT_SINCE_PADDING_MINUTES)


def version_tag(version: str) -> str:
    """Return the release tag for a version number, e.g. "1.2.0" -> "v1.2.0"."""
    return f"{RELEASE_TAG_PREFIX}{version}"


def version_from_tag(tag_name: str) -> Optional[str]:
    """
    Return the version number encoded in a release tag.

    Returns:
        Optional[str]: "1.2.0" for "v1.2.0"; None for tags not following the v-prefix convention.
    """
    if not tag_name.startswith(RELEASE_TAG_PREFIX):
        return None
    version = tag_name[len(RELEASE_TAG_PREFIX) :]
    return version or None


def find_release(pages: Iterable[ReleasePage], version: str) -> Optional[Release]:
    """
    Find the installable release tagged `v<version>`.

    Parameters:
        pages (Iterable[ReleasePage]): Release pages, newest first.
        version (str): Version number without the tag prefix.

    Returns:
        Optional[Release]: The matching release, or None if pagination is exhausted without a match.
    """
    wanted = version_tag(version)
    for page in pages:
        for release in page.releases:
            if not release.is_candidate:
                continue
            if release.tag_name == wanted:
                logger.debug(f"Release found: {release.tag_name}")
                return release

    logger.info(f"Release {wanted} not found")
    return None


def collect_releases(
    pages: Iterable[ReleasePage],
    since: Optional[datetime] = None,
    padding: timedelta = SINCE_PADDING,
) -> List[Release]:
    """
    Collect installable releases created at or after `since - padding`.

    Pages must be ordered by creation time descending: the first candidate older
    than the cutoff proves that every later release is older too, so collection
    stops there without requesting another page. The padding covers the window
    in which a release can be created while the previous pass is recording its
    `since` timestamp.

    Parameters:
        pages (Iterable[ReleasePage]): Release pages, newest first.
        since (Optional[datetime]): Timezone-aware cutoff; None collects every installable release.
        padding (timedelta): Grace period subtracted from `since`.

    Returns:
        List[Release]: Accepted releases, newest first.
    """
    cutoff = since - padding if since is not None else None
    releases: List[Release] = []

    for page in pages:
        logger.debug(f"Checking {len(page.releases)} possible new releases")
        for release in page.releases:
            if not release.is_candidate:
                continue

            if cutoff is not None and release.created_at < cutoff:
                logger.info(
                    f"Release {release.tag_name} was created before {cutoff.isoformat()}, "
                    "stopping reading releases"
                )
                return releases

            releases.append(release)

    logger.info(f"Collected {len(releases)} releases")
    return releases
