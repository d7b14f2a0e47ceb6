"""
Version cache records and API response shapes.

A CacheRecord is the normalized snapshot of every installable version of one
provider or module. It is built wholesale by a harvest, stored by a CacheStore
and converted into listing (Version) or download (VersionDetails) responses.
Signing keys are never part of a record; they are attached to VersionDetails
at response time.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple


def parse_iso_datetime_utc(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp and normalize it to UTC.

    Parameters:
        value (Any): An ISO 8601 datetime representation (commonly a string). Falsey values or unparsable values are treated as absent.

    Returns:
        A timezone-aware datetime in UTC if parsing succeeds, `None` otherwise.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class Platform:
    """An (operating system, architecture) pair."""

    os: str
    arch: str

    def to_dict(self) -> Dict[str, str]:
        return {"os": self.os, "arch": self.arch}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Platform":
        return cls(os=str(data["os"]), arch=str(data["arch"]))


@dataclass(frozen=True)
class VersionDownloadDetail:
    """The resolved artifact of one platform for one version."""

    platform: Platform
    filename: str
    download_url: str
    shasums_url: str
    shasums_signature_url: str
    shasum: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "platform": self.platform.to_dict(),
            "filename": self.filename,
            "download_url": self.download_url,
            "shasums_url": self.shasums_url,
            "shasums_signature_url": self.shasums_signature_url,
            "shasum": self.shasum,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionDownloadDetail":
        return cls(
            platform=Platform.from_dict(data["platform"]),
            filename=str(data["filename"]),
            download_url=str(data["download_url"]),
            shasums_url=str(data["shasums_url"]),
            shasums_signature_url=str(data["shasums_signature_url"]),
            shasum=str(data["shasum"]),
        )


@dataclass(frozen=True)
class SigningKey:
    """A GPG public key used to verify checksum manifest signatures."""

    key_id: str
    ascii_armor: str

    def to_dict(self) -> Dict[str, str]:
        return {"key_id": self.key_id, "ascii_armor": self.ascii_armor}


@dataclass(frozen=True)
class SigningKeys:
    gpg_public_keys: Tuple[SigningKey, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"gpg_public_keys": [key.to_dict() for key in self.gpg_public_keys]}


@dataclass(frozen=True)
class Version:
    """One entry of a provider version listing."""

    version: str
    protocols: Tuple[str, ...]
    platforms: Tuple[Platform, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "protocols": list(self.protocols),
            "platforms": [p.to_dict() for p in self.platforms],
        }


@dataclass(frozen=True)
class VersionDetails:
    """Download details for one version and platform."""

    protocols: Tuple[str, ...]
    os: str
    arch: str
    filename: str
    download_url: str
    shasums_url: str
    shasums_signature_url: str
    shasum: str
    signing_keys: SigningKeys = field(default_factory=SigningKeys)

    def with_signing_keys(self, signing_keys: SigningKeys) -> "VersionDetails":
        return replace(self, signing_keys=signing_keys)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocols": list(self.protocols),
            "os": self.os,
            "arch": self.arch,
            "filename": self.filename,
            "download_url": self.download_url,
            "shasums_url": self.shasums_url,
            "shasums_signature_url": self.shasums_signature_url,
            "shasum": self.shasum,
            "signing_keys": self.signing_keys.to_dict(),
        }


@dataclass(frozen=True)
class CacheVersion:
    """The full download surface of one version."""

    version: str
    protocols: Tuple[str, ...] = ()
    download_details: Tuple[VersionDownloadDetail, ...] = ()
    source_archive_url: Optional[str] = None
    """Tarball of the tagged commit; populated for module records"""

    def to_version(self) -> Version:
        """Convert to a listing entry."""
        return Version(
            version=self.version,
            protocols=self.protocols,
            platforms=tuple(d.platform for d in self.download_details),
        )

    def get_version_details(self, os: str, arch: str) -> Optional[VersionDetails]:
        """
        Build the download details for one platform.

        The result carries no signing keys; those are attached by the caller.

        Returns:
            Optional[VersionDetails]: Details for the platform, or None if it was not built.
        """
        for detail in self.download_details:
            if detail.platform.os == os and detail.platform.arch == arch:
                return VersionDetails(
                    protocols=self.protocols,
                    os=detail.platform.os,
                    arch=detail.platform.arch,
                    filename=detail.filename,
                    download_url=detail.download_url,
                    shasums_url=detail.shasums_url,
                    shasums_signature_url=detail.shasums_signature_url,
                    shasum=detail.shasum,
                )
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "protocols": list(self.protocols),
            "download_details": [d.to_dict() for d in self.download_details],
            "source_archive_url": self.source_archive_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheVersion":
        return cls(
            version=str(data["version"]),
            protocols=tuple(str(p) for p in data.get("protocols") or ()),
            download_details=tuple(
                VersionDownloadDetail.from_dict(d)
                for d in data.get("download_details") or ()
            ),
            source_archive_url=data.get("source_archive_url"),
        )


@dataclass(frozen=True)
class CacheRecord:
    """
    All known versions of one provider or module.

    Version strings are unique within a record. Records are replaced wholesale
    on every successful harvest, never edited in place.
    """

    key: str
    versions: Tuple[CacheVersion, ...]
    last_updated: datetime

    def __post_init__(self) -> None:
        seen = set()
        for cache_version in self.versions:
            if cache_version.version in seen:
                raise ValueError(
                    f"Duplicate version {cache_version.version} in record {self.key}"
                )
            seen.add(cache_version.version)

    @classmethod
    def build(
        cls,
        key: str,
        versions: Iterable[CacheVersion],
        last_updated: Optional[datetime] = None,
    ) -> "CacheRecord":
        """
        Build a record, keeping the first occurrence of each version string.

        Parameters:
            key (str): Record identity, e.g. "hashicorp/aws".
            versions (Iterable[CacheVersion]): Versions ordered newest first.
            last_updated (Optional[datetime]): Write timestamp; defaults to now (UTC).
        """
        unique: Dict[str, CacheVersion] = {}
        for cache_version in versions:
            unique.setdefault(cache_version.version, cache_version)
        return cls(
            key=key,
            versions=tuple(unique.values()),
            last_updated=last_updated or datetime.now(timezone.utc),
        )

    def is_stale(self, ttl: timedelta, now: Optional[datetime] = None) -> bool:
        """
        Return True if the record is older than `ttl`.

        Parameters:
            ttl (timedelta): Allowed age.
            now (Optional[datetime]): Reference time; defaults to the current UTC time.
        """
        now = now or datetime.now(timezone.utc)
        return now - self.last_updated > ttl

    def find_version(self, version: str) -> Optional[CacheVersion]:
        for cache_version in self.versions:
            if cache_version.version == version:
                return cache_version
        return None

    def get_version_details(
        self, version: str, os: str, arch: str
    ) -> Optional[VersionDetails]:
        cache_version = self.find_version(version)
        if cache_version is None:
            return None
        return cache_version.get_version_details(os, arch)

    def to_versions(self) -> List[Version]:
        return [v.to_version() for v in self.versions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "versions": [v.to_dict() for v in self.versions],
            "last_updated": self.last_updated.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheRecord":
        """
        Decode a record from its wire form.

        Raises:
            KeyError, TypeError, ValueError: If the data does not have the record shape.
        """
        last_updated = parse_iso_datetime_utc(data["last_updated"])
        if last_updated is None:
            raise ValueError(f"Invalid last_updated value: {data['last_updated']!r}")
        return cls(
            key=str(data["key"]),
            versions=tuple(CacheVersion.from_dict(v) for v in data["versions"]),
            last_updated=last_updated,
        )


def provider_versions_response(versions: Iterable[Version]) -> Dict[str, Any]:
    """Render a provider version listing: {"versions": [...]}."""
    return {"versions": [v.to_dict() for v in versions]}


def module_versions_response(versions: Iterable[str]) -> Dict[str, Any]:
    """Render a module version listing: {"modules": [{"versions": [{"version": ...}]}]}."""
    return {"modules": [{"versions": [{"version": v} for v in versions]}]}


def module_download_response(location: str) -> Dict[str, str]:
    return {"location": location}
