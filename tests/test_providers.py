from datetime import timedelta

import pytest

from provider_registry.exceptions import (
    AssetDownloadError,
    AssetResolutionGap,
    DeadlineExceededError,
    NotFoundError,
)
from provider_registry.harvest.context import RequestContext
from provider_registry.harvest.providers import (
    ProviderHarvester,
    provider_cache_key,
    provider_repo_name,
)
from provider_registry.harvest.records import Platform
from tests.feed_test_utils import (
    BASE_TIME,
    make_provider_release,
    make_release,
    shasum_of,
    shasums_content,
)

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]

OWNER = "hashicorp"
REPO = "terraform-provider-example"


@pytest.fixture
def harvester(feed):
    return ProviderHarvester(feed)


def test_naming():
    assert provider_repo_name("aws") == "terraform-provider-aws"
    assert provider_cache_key("hashicorp", "aws") == "hashicorp/aws"


class TestBuildCacheVersion:
    def test_resolves_every_platform(self, feed, harvester, provider_release):
        feed.add_release(OWNER, REPO, provider_release)

        cache_version = harvester.build_cache_version(provider_release, RequestContext())

        assert cache_version.version == "1.2.0"
        assert cache_version.protocols == ("6.0",)
        assert [d.platform for d in cache_version.download_details] == [
            Platform("linux", "amd64"),
            Platform("darwin", "arm64"),
        ]
        detail = cache_version.download_details[0]
        assert detail.filename == "terraform-provider-example_1.2.0_linux_amd64.zip"
        assert detail.shasum == shasum_of(detail.filename)
        assert detail.shasums_url.endswith("_SHA256SUMS")
        assert detail.shasums_signature_url.endswith("_SHA256SUMS.sig")

    def test_missing_manifest_uses_default_protocols(self, feed, harvester):
        release = make_provider_release("1.0.0", with_manifest=False)
        feed.add_release(OWNER, REPO, release)

        cache_version = harvester.build_cache_version(release, RequestContext())

        assert cache_version.protocols == ("5.0",)

    def test_platform_without_checksum_is_skipped(self, feed, harvester, provider_release):
        linux_zip = "terraform-provider-example_1.2.0_linux_amd64.zip"
        shasums = next(a for a in provider_release.assets if a.name.endswith("SHA256SUMS"))
        feed.contents[shasums.download_url] = shasums_content(provider_release, skip=[linux_zip])
        feed.add_release(OWNER, REPO, provider_release)

        cache_version = harvester.build_cache_version(provider_release, RequestContext())

        assert [d.platform for d in cache_version.download_details] == [
            Platform("darwin", "arm64")
        ]

    @pytest.mark.parametrize("missing", ["with_shasums", "with_signature"])
    def test_release_without_checksum_assets_is_skipped(self, feed, harvester, missing):
        release = make_provider_release("1.0.0", **{missing: False})
        feed.add_release(OWNER, REPO, release)

        assert harvester.build_cache_version(release, RequestContext()) is None
        assert feed.downloads == []

    def test_release_without_archives_is_skipped(self, harvester):
        assert harvester.build_cache_version(make_release("v1.0.0"), RequestContext()) is None

    def test_non_version_tag_is_skipped(self, harvester):
        assert harvester.build_cache_version(make_release("nightly"), RequestContext()) is None

    def test_checksum_download_failure_propagates(self, feed, harvester, provider_release):
        feed.add_release(OWNER, REPO, provider_release)
        feed.contents.clear()

        with pytest.raises(AssetDownloadError):
            harvester.build_cache_version(provider_release, RequestContext())


class TestHarvestVersions:
    def test_newest_first_skipping_prereleases(self, feed, harvester):
        feed.add_repository(
            OWNER,
            REPO,
            [
                make_provider_release("2.0.0-rc1", created_at=BASE_TIME, prerelease=True),
                make_provider_release("1.1.0", created_at=BASE_TIME - timedelta(days=1)),
                make_provider_release("1.0.0", created_at=BASE_TIME - timedelta(days=2)),
            ],
        )

        versions = harvester.harvest_versions(OWNER, REPO, RequestContext())

        assert [v.version for v in versions] == ["1.1.0", "1.0.0"]

    def test_since_limits_harvest(self, feed, harvester):
        feed.add_repository(
            OWNER,
            REPO,
            [
                make_provider_release("1.1.0", created_at=BASE_TIME),
                make_provider_release("1.0.0", created_at=BASE_TIME - timedelta(days=2)),
            ],
        )

        versions = harvester.harvest_versions(
            OWNER, REPO, RequestContext(), since=BASE_TIME - timedelta(days=1)
        )

        assert [v.version for v in versions] == ["1.1.0"]

    def test_expired_deadline_aborts(self, feed, harvester):
        feed.add_repository(OWNER, REPO, [make_provider_release("1.0.0")])
        expired = RequestContext(deadline=0.0)

        with pytest.raises(DeadlineExceededError):
            harvester.harvest_versions(OWNER, REPO, expired)


class TestFindVersionDetails:
    def test_resolves_single_platform(self, feed, harvester, provider_release):
        feed.add_repository(OWNER, REPO, [provider_release])

        details = harvester.find_version_details(
            OWNER, REPO, "1.2.0", "darwin", "arm64", RequestContext()
        )

        assert details.os == "darwin"
        assert details.arch == "arm64"
        assert details.filename == "terraform-provider-example_1.2.0_darwin_arm64.zip"
        assert details.protocols == ("6.0",)
        assert details.signing_keys.gpg_public_keys == ()

    def test_unknown_version(self, feed, harvester, provider_release):
        feed.add_repository(OWNER, REPO, [provider_release])

        with pytest.raises(NotFoundError):
            harvester.find_version_details(
                OWNER, REPO, "9.9.9", "linux", "amd64", RequestContext()
            )

    def test_prerelease_version_is_not_found(self, feed, harvester):
        feed.add_repository(
            OWNER, REPO, [make_provider_release("2.0.0", prerelease=True)]
        )

        with pytest.raises(NotFoundError):
            harvester.find_version_details(
                OWNER, REPO, "2.0.0", "linux", "amd64", RequestContext()
            )

    def test_unbuilt_platform_checked_before_downloads(self, feed, harvester, provider_release):
        feed.add_repository(OWNER, REPO, [provider_release])

        with pytest.raises(AssetResolutionGap) as exc_info:
            harvester.find_version_details(
                OWNER, REPO, "1.2.0", "windows", "amd64", RequestContext()
            )

        assert exc_info.value.suffix == "_windows_amd64.zip"
        assert feed.downloads == []

    def test_missing_checksum_entry(self, feed, harvester, provider_release):
        shasums = next(a for a in provider_release.assets if a.name.endswith("SHA256SUMS"))
        feed.contents[shasums.download_url] = ""
        feed.add_repository(OWNER, REPO, [provider_release])

        with pytest.raises(AssetResolutionGap):
            harvester.find_version_details(
                OWNER, REPO, "1.2.0", "linux", "amd64", RequestContext()
            )
