"""
Cache Population

Out-of-band refresh of cache records. A run reads the existing record, harvests
only the releases created since it was last written and stores a new complete
record. Unlike the request path, a failed write is fatal here.
"""

from datetime import datetime, timezone
from typing import Optional

from provider_registry.config import RegistryConfig
from provider_registry.exceptions import CacheUnavailableError, NotFoundError

from .base import BaseHarvester
from .context import RequestContext
from .interfaces import CacheStore, ReleaseFeed
from .modules import ModuleHarvester, module_cache_key, module_repo_name
from .providers import ProviderHarvester, provider_cache_key, provider_repo_name
from .records import CacheRecord


class CachePopulator:
    """Incrementally rebuilds provider and module records in a CacheStore."""

    def __init__(
        self,
        feed: ReleaseFeed,
        store: CacheStore,
        config: Optional[RegistryConfig] = None,
    ):
        self.feed = feed
        self.store = store
        self.config = config or RegistryConfig()
        self.providers = ProviderHarvester(feed, self.config.since_padding)
        self.modules = ModuleHarvester(feed, self.config.since_padding)

    def populate_provider(
        self,
        namespace: str,
        provider_type: str,
        context: Optional[RequestContext] = None,
    ) -> CacheRecord:
        context = (context or RequestContext()).bind(
            namespace=namespace, type=provider_type
        )
        return self._populate(
            self.providers,
            provider_cache_key(namespace, provider_type),
            self.config.effective_provider_namespace(namespace),
            provider_repo_name(provider_type),
            context,
        )

    def populate_module(
        self,
        namespace: str,
        name: str,
        system: str,
        context: Optional[RequestContext] = None,
    ) -> CacheRecord:
        context = (context or RequestContext()).bind(
            namespace=namespace, name=name, system=system
        )
        return self._populate(
            self.modules,
            module_cache_key(namespace, name, system),
            namespace,
            module_repo_name(system, name),
            context,
        )

    def _populate(
        self,
        harvester: BaseHarvester,
        key: str,
        owner: str,
        repo: str,
        context: RequestContext,
    ) -> CacheRecord:
        """
        Rebuild and store the record for `key`.

        Newly harvested versions come first, followed by previously known
        versions that were not harvested again. The record is stamped with the
        time the harvest started so releases published during the run are
        picked up next time.

        Returns:
            CacheRecord: The record that was stored.

        Raises:
            NotFoundError: If the repository does not exist.
            CacheUnavailableError: If the record cannot be written.
        """
        try:
            existing = self.store.get(key)
        except CacheUnavailableError as e:
            context.logger.warning(f"Could not read existing record, rebuilding: {e}")
            existing = None

        if not self.feed.repository_exists(owner, repo, context):
            raise NotFoundError("Repository not found", details=f"{owner}/{repo}")

        started = datetime.now(timezone.utc)
        since = existing.last_updated if existing is not None else None
        harvested = harvester.harvest_versions(owner, repo, context, since=since)

        previous = existing.versions if existing is not None else ()
        record = CacheRecord.build(key, [*harvested, *previous], last_updated=started)
        context.logger.info(
            f"Populated {len(record.versions)} versions ({len(harvested)} harvested)"
        )

        self.store.put(key, record)
        return record
