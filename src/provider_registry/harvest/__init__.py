"""
Release harvesting and version cache for the provider registry.

This package turns the upstream release history of provider and module
repositories into normalized, cacheable version records.
"""

from .base import BaseHarvester
from .cache import FileCacheStore
from .context import RequestContext
from .github_source import GithubReleaseSource
from .interfaces import (
    Asset,
    CacheStore,
    Release,
    ReleaseFeed,
    ReleasePage,
    ReleaseQuery,
)
from .keys import SigningKeyTable
from .modules import ModuleHarvester
from .orchestrator import LookupOrchestrator
from .populate import CachePopulator
from .providers import ProviderHarvester
from .records import (
    CacheRecord,
    CacheVersion,
    Platform,
    SigningKey,
    SigningKeys,
    Version,
    VersionDetails,
    VersionDownloadDetail,
)

__all__ = [
    "Asset",
    "BaseHarvester",
    "CachePopulator",
    "CacheRecord",
    "CacheStore",
    "CacheVersion",
    "FileCacheStore",
    "GithubReleaseSource",
    "LookupOrchestrator",
    "ModuleHarvester",
    "Platform",
    "ProviderHarvester",
    "Release",
    "ReleaseFeed",
    "ReleasePage",
    "ReleaseQuery",
    "RequestContext",
    "SigningKey",
    "SigningKeyTable",
    "SigningKeys",
    "Version",
    "VersionDetails",
    "VersionDownloadDetail",
]
