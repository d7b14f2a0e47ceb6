"""
GitHub Release Source

This module provides the ReleaseFeed implementation backed by the GitHub
GraphQL API for release pages and the REST API for repository existence
checks, plus streamed asset downloads.
"""

from typing import Any, Dict, Iterator, Optional

import requests  # type: ignore[import-untyped]

from provider_registry.constants import (
    ASSET_DOWNLOAD_TIMEOUT,
    GITHUB_API_BASE,
    GITHUB_API_TIMEOUT,
    GITHUB_GRAPHQL_URL,
    GITHUB_MAX_PER_PAGE,
    RELEASE_ASSETS_PER_RELEASE,
)
from provider_registry.exceptions import AssetDownloadError, UpstreamQueryError
from provider_registry.utils import (
    get_user_agent,
    make_github_api_request,
    make_github_graphql_request,
)

from .context import RequestContext
from .interfaces import Asset, Release, ReleaseFeed, ReleasePage, ReleaseQuery
from .records import parse_iso_datetime_utc

RELEASES_QUERY = (
    """
query($owner: String!, $name: String!, $perPage: Int!, $endCursor: String) {
  repository(owner: $owner, name: $name) {
    releases(first: $perPage, orderBy: {field: CREATED_AT, direction: DESC}, after: $endCursor) {
      pageInfo {
        hasNextPage
        endCursor
      }
      nodes {
        id
        tagName
        isDraft
        isLatest
        isPrerelease
        createdAt
        releaseAssets(first: %d) {
          nodes {
            id
            name
            downloadUrl
          }
        }
        tagCommit {
          tarballUrl
        }
      }
    }
  }
}
"""
    % RELEASE_ASSETS_PER_RELEASE
)


class GithubReleaseSource(ReleaseFeed):
    """
    Release feed for repositories hosted on GitHub.

    The source keeps no memory of earlier pages: each page request is fully
    described by its ReleaseQuery, so iteration can resume from any cursor.

    Usage:
        source = GithubReleaseSource(github_token=token)
        for page in source.iter_pages("hashicorp", "terraform-provider-aws", context):
            ...
    """

    def __init__(
        self,
        github_token: Optional[str] = None,
        allow_env_token: bool = True,
        page_size: int = GITHUB_MAX_PER_PAGE,
        api_timeout: float = GITHUB_API_TIMEOUT,
        asset_download_timeout: float = ASSET_DOWNLOAD_TIMEOUT,
    ):
        """
        Initialize the GitHub release source.

        Parameters:
            github_token (Optional[str]): Token for API authentication.
            allow_env_token (bool): Whether the GITHUB_TOKEN environment variable may be used when no token is given.
            page_size (int): Releases per page (at most 100).
            api_timeout (float): Timeout for API calls, in seconds.
            asset_download_timeout (float): Timeout for asset downloads, in seconds.
        """
        self.github_token = github_token
        self.allow_env_token = allow_env_token
        self.page_size = page_size
        self.api_timeout = api_timeout
        self.asset_download_timeout = asset_download_timeout

    def fetch_page(self, query: ReleaseQuery, context: RequestContext) -> ReleasePage:
        """
        Fetch one page of releases ordered by creation time descending.

        Parameters:
            query (ReleaseQuery): Owner, repository name, page size and cursor.
            context (RequestContext): Deadline and logging context.

        Returns:
            ReleasePage: The page's releases and the cursor of the next page (None at the end).

        Raises:
            UpstreamQueryError: On transport failure, GraphQL errors or a malformed payload.
        """
        variables = {
            "owner": query.owner,
            "name": query.name,
            "perPage": query.page_size,
            "endCursor": query.cursor,
        }
        try:
            body = make_github_graphql_request(
                RELEASES_QUERY,
                variables,
                github_token=self.github_token,
                allow_env_token=self.allow_env_token,
                timeout=context.timeout_for(self.api_timeout),
            )
        except (requests.RequestException, ValueError) as exc:
            context.logger.error(f"Failed to query for releases: {exc}")
            raise UpstreamQueryError(
                "Failed to query for releases",
                endpoint=GITHUB_GRAPHQL_URL,
                status_code=_status_code_of(exc),
                details=str(exc),
            ) from exc

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e)
                for e in errors
            )
            context.logger.error(f"GraphQL query for releases failed: {messages}")
            raise UpstreamQueryError(
                "GraphQL query for releases failed",
                endpoint=GITHUB_GRAPHQL_URL,
                details=messages,
            )

        try:
            return parse_release_page(body["data"])
        except (KeyError, TypeError, ValueError) as exc:
            context.logger.error(f"Malformed releases payload: {exc}")
            raise UpstreamQueryError(
                "Malformed releases payload",
                endpoint=GITHUB_GRAPHQL_URL,
                details=str(exc),
            ) from exc

    def iter_pages(
        self,
        owner: str,
        name: str,
        context: RequestContext,
        cursor: Optional[str] = None,
    ) -> Iterator[ReleasePage]:
        """
        Lazily yield release pages for a repository, newest first.

        The next page is only requested once the consumer asks for it, so a
        consumer that stops iterating stops pagination.

        Parameters:
            cursor (Optional[str]): Resume after this cursor.
        """
        while True:
            query = ReleaseQuery(
                owner=owner, name=name, page_size=self.page_size, cursor=cursor
            )
            page = self.fetch_page(query, context)
            context.logger.debug(f"Fetched release page with {len(page.releases)} releases")
            yield page
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    def repository_exists(self, owner: str, name: str, context: RequestContext) -> bool:
        """
        Check whether a repository exists.

        Returns:
            bool: True if GitHub returns the repository, False on a 404.

        Raises:
            UpstreamQueryError: For any failure other than "not found".
        """
        url = f"{GITHUB_API_BASE}/{owner}/{name}"
        context.logger.info("Checking if repository exists")
        try:
            make_github_api_request(
                url,
                github_token=self.github_token,
                allow_env_token=self.allow_env_token,
                timeout=context.timeout_for(self.api_timeout),
            )
        except requests.HTTPError as exc:
            if _status_code_of(exc) == 404:
                context.logger.info("Repository does not exist")
                return False
            context.logger.error(f"Failed to get repository: {exc}")
            raise UpstreamQueryError(
                "Failed to get repository",
                endpoint=url,
                status_code=_status_code_of(exc),
                details=str(exc),
            ) from exc
        except requests.RequestException as exc:
            context.logger.error(f"Failed to get repository: {exc}")
            raise UpstreamQueryError(
                "Failed to get repository", endpoint=url, details=str(exc)
            ) from exc

        context.logger.info("Repository exists")
        return True

    def download_asset(self, url: str, context: RequestContext) -> requests.Response:
        """
        Open a streamed GET of an asset URL.

        The caller owns the returned response and must close it (it supports
        the context-manager protocol).

        Raises:
            AssetDownloadError: On transport failure or any status other than 200.
        """
        context.logger.info(f"Downloading asset {url}")
        try:
            response = requests.get(
                url,
                stream=True,
                timeout=context.timeout_for(self.asset_download_timeout),
                headers={"User-Agent": get_user_agent()},
            )
        except requests.RequestException as exc:
            context.logger.error(f"Error downloading asset: {exc}")
            raise AssetDownloadError(
                "Error downloading asset", endpoint=url, details=str(exc)
            ) from exc

        if response.status_code != 200:
            response.close()
            context.logger.error(
                f"Unexpected status code when downloading asset: {response.status_code}"
            )
            raise AssetDownloadError(
                "Unexpected status code when downloading asset",
                endpoint=url,
                status_code=response.status_code,
            )

        return response


def _status_code_of(exc: Exception) -> Optional[int]:
    response = getattr(exc, "response", None)
    return getattr(response, "status_code", None)


def parse_release_page(data: Dict[str, Any]) -> ReleasePage:
    """
    Build a ReleasePage from the `data` member of a releases query response.

    Raises:
        KeyError, TypeError, ValueError: If the payload does not have the expected shape.
    """
    repository = data["repository"]
    if repository is None:
        raise ValueError("repository not present in response")
    releases_data = repository["releases"]
    page_info = releases_data["pageInfo"]

    releases = tuple(
        create_release_from_github_data(node) for node in releases_data["nodes"]
    )
    next_cursor = page_info["endCursor"] if page_info["hasNextPage"] else None
    return ReleasePage(releases=releases, next_cursor=next_cursor)


def create_release_from_github_data(node: Dict[str, Any]) -> Release:
    """
    Create a Release from one GraphQL release node.

    Raises:
        KeyError, TypeError, ValueError: If required fields are missing or invalid.
    """
    tag_name = node["tagName"]
    if not isinstance(tag_name, str) or not tag_name.strip():
        raise ValueError("release with missing or invalid tagName")

    created_at = parse_iso_datetime_utc(node.get("createdAt"))
    if created_at is None:
        raise ValueError(f"release {tag_name} has invalid createdAt")

    asset_nodes = (node.get("releaseAssets") or {}).get("nodes") or []
    assets = tuple(
        Asset(
            id=str(asset["id"]),
            name=str(asset["name"]),
            download_url=str(asset["downloadUrl"]),
        )
        for asset in asset_nodes
    )

    tag_commit = node.get("tagCommit") or {}
    return Release(
        id=str(node["id"]),
        tag_name=tag_name,
        created_at=created_at,
        draft=bool(node.get("isDraft")),
        prerelease=bool(node.get("isPrerelease")),
        latest=bool(node.get("isLatest")),
        assets=assets,
        source_archive_url=tag_commit.get("tarballUrl"),
    )
