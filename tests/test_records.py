from datetime import datetime, timedelta, timezone

import pytest

from provider_registry.harvest.records import (
    CacheRecord,
    CacheVersion,
    Platform,
    SigningKey,
    SigningKeys,
    VersionDownloadDetail,
    module_download_response,
    module_versions_response,
    parse_iso_datetime_utc,
    provider_versions_response,
)

pytestmark = [pytest.mark.unit, pytest.mark.core_downloads]

TTL = timedelta(minutes=55)
WRITTEN = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _detail(os="linux", arch="amd64"):
    return VersionDownloadDetail(
        platform=Platform(os=os, arch=arch),
        filename=f"terraform-provider-aws_1.0.0_{os}_{arch}.zip",
        download_url=f"https://example.com/aws_1.0.0_{os}_{arch}.zip",
        shasums_url="https://example.com/aws_1.0.0_SHA256SUMS",
        shasums_signature_url="https://example.com/aws_1.0.0_SHA256SUMS.sig",
        shasum="a" * 64,
    )


def _record(versions=None, last_updated=WRITTEN):
    versions = versions or (
        CacheVersion(
            version="1.0.0",
            protocols=("5.0",),
            download_details=(_detail(), _detail("darwin", "arm64")),
        ),
    )
    return CacheRecord(key="hashicorp/aws", versions=tuple(versions), last_updated=last_updated)


class TestIsStale:
    def test_exactly_at_ttl_is_fresh(self):
        assert _record().is_stale(TTL, now=WRITTEN + TTL) is False

    def test_one_second_under_ttl_is_fresh(self):
        assert _record().is_stale(TTL, now=WRITTEN + TTL - timedelta(seconds=1)) is False

    def test_one_second_over_ttl_is_stale(self):
        assert _record().is_stale(TTL, now=WRITTEN + TTL + timedelta(seconds=1)) is True


class TestCacheRecord:
    def test_duplicate_versions_rejected(self):
        with pytest.raises(ValueError):
            _record(versions=[CacheVersion("1.0.0"), CacheVersion("1.0.0")])

    def test_build_keeps_first_occurrence(self):
        newest = CacheVersion("1.0.0", protocols=("6.0",))
        older = CacheVersion("1.0.0", protocols=("5.0",))

        record = CacheRecord.build("hashicorp/aws", [newest, CacheVersion("0.9.0"), older])

        assert [v.version for v in record.versions] == ["1.0.0", "0.9.0"]
        assert record.versions[0].protocols == ("6.0",)
        assert record.last_updated.tzinfo is not None

    def test_get_version_details(self):
        details = _record().get_version_details("1.0.0", "darwin", "arm64")

        assert details.os == "darwin"
        assert details.arch == "arm64"
        assert details.protocols == ("5.0",)
        assert details.signing_keys == SigningKeys()

    def test_get_version_details_missing_platform(self):
        assert _record().get_version_details("1.0.0", "windows", "amd64") is None
        assert _record().get_version_details("9.9.9", "linux", "amd64") is None

    def test_to_versions_lists_platforms(self):
        (version,) = _record().to_versions()
        assert version.to_dict() == {
            "version": "1.0.0",
            "protocols": ["5.0"],
            "platforms": [
                {"os": "linux", "arch": "amd64"},
                {"os": "darwin", "arch": "arm64"},
            ],
        }

    def test_wire_format_round_trip(self):
        record = _record()
        data = record.to_dict()

        assert data["key"] == "hashicorp/aws"
        assert data["last_updated"] == "2024-06-01T12:00:00+00:00"
        assert data["versions"][0]["download_details"][0]["platform"] == {
            "os": "linux",
            "arch": "amd64",
        }
        assert CacheRecord.from_dict(data) == record

    def test_from_dict_rejects_bad_timestamp(self):
        data = _record().to_dict()
        data["last_updated"] = "yesterday"
        with pytest.raises(ValueError):
            CacheRecord.from_dict(data)


class TestResponses:
    def test_version_details_with_signing_keys(self):
        keys = SigningKeys(gpg_public_keys=(SigningKey("ABCD", "-----BEGIN"),))
        details = _record().get_version_details("1.0.0", "linux", "amd64")

        data = details.with_signing_keys(keys).to_dict()

        assert data["signing_keys"] == {
            "gpg_public_keys": [{"key_id": "ABCD", "ascii_armor": "-----BEGIN"}]
        }
        assert data["shasum"] == "a" * 64
        assert data["filename"] == "terraform-provider-aws_1.0.0_linux_amd64.zip"

    def test_provider_versions_response(self):
        response = provider_versions_response(_record().to_versions())
        assert response["versions"][0]["version"] == "1.0.0"

    def test_module_responses(self):
        assert module_versions_response(["1.1.0", "1.0.0"]) == {
            "modules": [{"versions": [{"version": "1.1.0"}, {"version": "1.0.0"}]}]
        }
        assert module_download_response("https://example.com/a.tar.gz") == {
            "location": "https://example.com/a.tar.gz"
        }


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2024-06-01T12:00:00Z", WRITTEN),
        ("2024-06-01T14:00:00+02:00", WRITTEN),
        ("2024-06-01T12:00:00", WRITTEN),
        ("", None),
        ("not a date", None),
    ],
)
def test_parse_iso_datetime_utc(value, expected):
    assert parse_iso_datetime_utc(value) == expected
