"""In-memory release feed and cache store for harvesting tests."""

import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from provider_registry.exceptions import AssetDownloadError, CacheUnavailableError
from provider_registry.harvest.context import RequestContext
from provider_registry.harvest.interfaces import (
    Asset,
    CacheStore,
    Release,
    ReleaseFeed,
    ReleasePage,
    ReleaseQuery,
)
from provider_registry.harvest.records import CacheRecord

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
DEFAULT_PLATFORMS = (("linux", "amd64"), ("darwin", "arm64"))
MANIFEST_CONTENT = json.dumps({"version": 1, "metadata": {"protocol_versions": ["6.0"]}})


def shasum_of(filename: str) -> str:
    return hashlib.sha256(filename.encode("utf-8")).hexdigest()


def make_release(
    tag_name: str,
    created_at: Optional[datetime] = None,
    draft: bool = False,
    prerelease: bool = False,
    assets: Sequence[Asset] = (),
    source_archive_url: Optional[str] = None,
) -> Release:
    return Release(
        id=f"R_{tag_name}",
        tag_name=tag_name,
        created_at=created_at or BASE_TIME,
        draft=draft,
        prerelease=prerelease,
        assets=tuple(assets),
        source_archive_url=source_archive_url,
    )


def make_asset(name: str, tag_name: str = "v1.0.0") -> Asset:
    return Asset(
        id=f"A_{name}",
        name=name,
        download_url=f"https://github.com/example/releases/download/{tag_name}/{name}",
    )


def make_provider_release(
    version: str,
    created_at: Optional[datetime] = None,
    platforms: Iterable[Tuple[str, str]] = DEFAULT_PLATFORMS,
    project: str = "terraform-provider-example",
    with_manifest: bool = True,
    with_shasums: bool = True,
    with_signature: bool = True,
    **kwargs,
) -> Release:
    """Build a provider release following the `<project>_<version>_<os>_<arch>.zip` layout."""
    tag = f"v{version}"
    names = [f"{project}_{version}_{os}_{arch}.zip" for os, arch in platforms]
    if with_shasums:
        names.append(f"{project}_{version}_SHA256SUMS")
    if with_signature:
        names.append(f"{project}_{version}_SHA256SUMS.sig")
    if with_manifest:
        names.append(f"{project}_{version}_manifest.json")
    return make_release(
        tag,
        created_at=created_at,
        assets=[make_asset(name, tag) for name in names],
        **kwargs,
    )


def shasums_content(release: Release, skip: Iterable[str] = ()) -> str:
    skipped = set(skip)
    return "".join(
        f"{shasum_of(asset.name)}  {asset.name}\n"
        for asset in release.assets
        if asset.name.endswith(".zip") and asset.name not in skipped
    )


class FakeResponse:
    """Minimal stand-in for a streamed requests.Response."""

    def __init__(self, text: str):
        self.text = text
        self.status_code = 200
        self.closed = False

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *_exc):
        self.close()
        return False


class FakeReleaseFeed(ReleaseFeed):
    """
    ReleaseFeed over in-memory repositories.

    Releases must be added newest first. SHA256SUMS and manifest contents are
    generated automatically for provider releases; `contents` can override them.
    """

    def __init__(self, page_size: int = 100):
        self.page_size = page_size
        self.repos: Dict[Tuple[str, str], List[Release]] = {}
        self.contents: Dict[str, str] = {}
        self.pages_fetched = 0
        self.exists_calls: List[Tuple[str, str]] = []
        self.downloads: List[str] = []

    def add_repository(self, owner: str, name: str, releases: Iterable[Release] = ()):
        self.repos[(owner, name)] = []
        for release in releases:
            self.add_release(owner, name, release)

    def add_release(self, owner: str, name: str, release: Release) -> None:
        self.repos.setdefault((owner, name), []).append(release)
        for asset in release.assets:
            if asset.name.endswith("SHA256SUMS"):
                self.contents.setdefault(asset.download_url, shasums_content(release))
            elif asset.name.endswith("_manifest.json"):
                self.contents.setdefault(asset.download_url, MANIFEST_CONTENT)

    def fetch_page(self, query: ReleaseQuery, context: RequestContext) -> ReleasePage:
        context.check()
        self.pages_fetched += 1
        releases = self.repos.get((query.owner, query.name), [])
        start = int(query.cursor) if query.cursor else 0
        end = start + query.page_size
        next_cursor = str(end) if end < len(releases) else None
        return ReleasePage(releases=tuple(releases[start:end]), next_cursor=next_cursor)

    def iter_pages(
        self,
        owner: str,
        name: str,
        context: RequestContext,
        cursor: Optional[str] = None,
    ) -> Iterator[ReleasePage]:
        while True:
            page = self.fetch_page(
                ReleaseQuery(owner=owner, name=name, page_size=self.page_size, cursor=cursor),
                context,
            )
            yield page
            if page.next_cursor is None:
                return
            cursor = page.next_cursor

    def repository_exists(self, owner: str, name: str, context: RequestContext) -> bool:
        self.exists_calls.append((owner, name))
        return (owner, name) in self.repos

    def download_asset(self, url: str, context: RequestContext) -> FakeResponse:
        self.downloads.append(url)
        if url not in self.contents:
            raise AssetDownloadError(
                "Unexpected status code when downloading asset",
                endpoint=url,
                status_code=404,
            )
        return FakeResponse(self.contents[url])


class MemoryCacheStore(CacheStore):
    """CacheStore backed by a dict, with switches to simulate backend failures."""

    def __init__(self):
        self.records: Dict[str, CacheRecord] = {}
        self.fail_get = False
        self.fail_put = False
        self.puts: List[str] = []

    def get(self, key: str) -> Optional[CacheRecord]:
        if self.fail_get:
            raise CacheUnavailableError("Cache backend unreachable", key=key)
        return self.records.get(key)

    def put(self, key: str, record: CacheRecord) -> None:
        if self.fail_put:
            raise CacheUnavailableError("Cache backend unreachable", key=key)
        self.puts.append(key)
        self.records[key] = record


def fresh_timestamp() -> datetime:
    return datetime.now(timezone.utc) - timedelta(minutes=1)


def stale_timestamp() -> datetime:
    return datetime.now(timezone.utc) - timedelta(hours=2)
