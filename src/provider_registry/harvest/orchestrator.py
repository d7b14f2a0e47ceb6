"""
Lookup Orchestrator

Request-time policy for resolving versions and downloads: consult the cache
first, fall back to a live harvest when the record is missing, stale or the
store cannot be read, and attach signing keys to download responses last.
"""

from typing import List, Optional

from provider_registry.config import RegistryConfig
from provider_registry.exceptions import CacheUnavailableError, NotFoundError
from provider_registry.log_utils import logger

from .cache import FileCacheStore
from .context import RequestContext
from .github_source import GithubReleaseSource
from .interfaces import CacheStore, ReleaseFeed
from .keys import SigningKeyTable
from .modules import ModuleHarvester, module_cache_key, module_repo_name
from .providers import ProviderHarvester, provider_cache_key, provider_repo_name
from .records import CacheRecord, Version, VersionDetails


def build_release_source(config: RegistryConfig) -> GithubReleaseSource:
    return GithubReleaseSource(
        github_token=config.github_token,
        allow_env_token=config.allow_env_token,
        page_size=config.page_size,
        api_timeout=config.api_timeout,
        asset_download_timeout=config.asset_download_timeout,
    )


def build_cache_store(config: RegistryConfig) -> Optional[CacheStore]:
    """
    Create the file cache store for the configured directory.

    Returns:
        Optional[CacheStore]: The store, or None if the cache directory is unusable; lookups then always harvest live.
    """
    try:
        return FileCacheStore(config.resolved_cache_dir())
    except CacheUnavailableError as e:
        logger.warning(f"Cache disabled: {e}")
        return None


class LookupOrchestrator:
    """
    Serves version listings and download details for providers and modules.

    Cache hits are served without re-checking that the repository still
    exists. A fresh record that lacks the requested version or platform is a
    definite NotFoundError; there is no live fallback for it.

    Usage:
        orchestrator = LookupOrchestrator.from_config(load_config())
        versions = orchestrator.list_provider_versions("hashicorp", "aws")
    """

    def __init__(
        self,
        feed: ReleaseFeed,
        store: Optional[CacheStore] = None,
        config: Optional[RegistryConfig] = None,
        signing_keys: Optional[SigningKeyTable] = None,
    ):
        """
        Parameters:
            feed (ReleaseFeed): Upstream release source used for live harvests.
            store (Optional[CacheStore]): Record store; None disables caching.
            config (Optional[RegistryConfig]): Settings; defaults are used when omitted.
            signing_keys (Optional[SigningKeyTable]): Keys attached to download responses; built from config when omitted.
        """
        self.feed = feed
        self.store = store
        self.config = config or RegistryConfig()
        self.signing_keys = signing_keys or SigningKeyTable.from_config(
            self.config.signing_keys
        )
        self.providers = ProviderHarvester(feed, self.config.since_padding)
        self.modules = ModuleHarvester(feed, self.config.since_padding)

    @classmethod
    def from_config(cls, config: RegistryConfig) -> "LookupOrchestrator":
        return cls(
            feed=build_release_source(config),
            store=build_cache_store(config),
            config=config,
        )

    def new_context(self, **fields) -> RequestContext:
        """Create a request context bounded by the configured request timeout."""
        return RequestContext.with_timeout(self.config.request_timeout, **fields)

    # Providers

    def list_provider_versions(
        self,
        namespace: str,
        provider_type: str,
        context: Optional[RequestContext] = None,
    ) -> List[Version]:
        """
        List every installable version of a provider, newest first.

        Raises:
            NotFoundError: If the provider's repository does not exist.
            UpstreamQueryError: If the live harvest fails.
            DeadlineExceededError: If the request deadline passes.
        """
        key = provider_cache_key(namespace, provider_type)
        context = (context or self.new_context()).bind(
            namespace=namespace, type=provider_type
        )

        record = self._fresh_record(key, context)
        if record is not None:
            return record.to_versions()

        owner = self.config.effective_provider_namespace(namespace)
        repo = provider_repo_name(provider_type)
        self._require_repository(owner, repo, context)

        record = CacheRecord.build(
            key, self.providers.harvest_versions(owner, repo, context)
        )
        self._store_opportunistically(key, record, context)
        return record.to_versions()

    def get_provider_download(
        self,
        namespace: str,
        provider_type: str,
        version: str,
        os: str,
        arch: str,
        context: Optional[RequestContext] = None,
    ) -> VersionDetails:
        """
        Resolve the download details of one provider version and platform.

        Signing keys for `namespace` are attached whether the details came from
        the cache or from a live lookup.

        Raises:
            NotFoundError: If the repository, version or platform does not exist.
            UpstreamQueryError: If the live lookup fails.
            DeadlineExceededError: If the request deadline passes.
        """
        key = provider_cache_key(namespace, provider_type)
        context = (context or self.new_context()).bind(
            namespace=namespace, type=provider_type, version=version, os=os, arch=arch
        )

        record = self._fresh_record(key, context)
        if record is not None:
            details = record.get_version_details(version, os, arch)
            if details is None:
                context.logger.info("Version or platform not found in cache")
                raise NotFoundError(
                    "Version not found", details=f"{key} {version} {os}/{arch}"
                )
        else:
            owner = self.config.effective_provider_namespace(namespace)
            repo = provider_repo_name(provider_type)
            self._require_repository(owner, repo, context)
            details = self.providers.find_version_details(
                owner, repo, version, os, arch, context
            )

        return details.with_signing_keys(self.signing_keys.keys_for(namespace))

    # Modules

    def list_module_versions(
        self,
        namespace: str,
        name: str,
        system: str,
        context: Optional[RequestContext] = None,
    ) -> List[str]:
        """
        List every installable version of a module, newest first.

        Raises:
            NotFoundError: If the module's repository does not exist.
        """
        key = module_cache_key(namespace, name, system)
        context = (context or self.new_context()).bind(
            namespace=namespace, name=name, system=system
        )

        record = self._fresh_record(key, context)
        if record is None:
            repo = module_repo_name(system, name)
            self._require_repository(namespace, repo, context)
            record = CacheRecord.build(
                key, self.modules.harvest_versions(namespace, repo, context)
            )
            self._store_opportunistically(key, record, context)

        return [v.version for v in record.versions]

    def get_module_download(
        self,
        namespace: str,
        name: str,
        system: str,
        version: str,
        context: Optional[RequestContext] = None,
    ) -> str:
        """
        Return the source archive location of one module version.

        Raises:
            NotFoundError: If the repository or version does not exist.
        """
        key = module_cache_key(namespace, name, system)
        context = (context or self.new_context()).bind(
            namespace=namespace, name=name, system=system, version=version
        )

        record = self._fresh_record(key, context)
        if record is not None:
            cache_version = record.find_version(version)
            if cache_version is None or not cache_version.source_archive_url:
                context.logger.info("Version not found in cache")
                raise NotFoundError("Version not found", details=f"{key} {version}")
            return cache_version.source_archive_url

        repo = module_repo_name(system, name)
        self._require_repository(namespace, repo, context)
        return self.modules.find_download_location(namespace, repo, version, context)

    # Cache policy

    def _fresh_record(self, key: str, context: RequestContext) -> Optional[CacheRecord]:
        """Return the cached record if it exists and is within the TTL."""
        record = self._read_cache(key, context)
        if record is None:
            context.logger.info("Cache miss")
            return None
        if record.is_stale(self.config.cache_ttl):
            context.logger.info(
                f"Cache record is stale (last updated {record.last_updated.isoformat()})"
            )
            return None
        context.logger.info("Cache hit")
        return record

    def _read_cache(self, key: str, context: RequestContext) -> Optional[CacheRecord]:
        if self.store is None:
            return None
        try:
            return self.store.get(key)
        except CacheUnavailableError as e:
            context.logger.warning(f"Cache read failed, harvesting live: {e}")
            return None

    def _store_opportunistically(
        self, key: str, record: CacheRecord, context: RequestContext
    ) -> None:
        """Write a freshly harvested record; a failed write does not fail the request."""
        if self.store is None:
            return
        try:
            self.store.put(key, record)
        except CacheUnavailableError as e:
            context.logger.warning(f"Failed to store cache record: {e}")

    def _require_repository(
        self, owner: str, repo: str, context: RequestContext
    ) -> None:
        if not self.feed.repository_exists(owner, repo, context):
            raise NotFoundError("Repository not found", details=f"{owner}/{repo}")
