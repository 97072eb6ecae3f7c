"""Discovery service: the entry point for schedulers and the API.

Owns the RevisionCache and the RefFetcher and wires head resolution,
primary head detection, revision materialization and checkout assembly
on top of them. A single instance is shared per process; init_discovery()
/ close_discovery() manage it for the app lifespan and
get_discovery_service() serves it as a FastAPI dependency.
"""

from typing import Any

from gitsource.extensions import CheckoutDescriptor, Extension
from gitsource.heads import DiscoveryResult, Head, ResolvedRevision
from gitsource.logging_config import get_logger
from gitsource.remote import RemoteRepository
from gitsource.services.checkout_service import assemble
from gitsource.services.head_resolver import resolve_heads
from gitsource.services.primary_head import (
    Action,
    is_consistent,
    match_primary,
    primary_actions,
)
from gitsource.services.revision_cache import CacheKey, RevisionCache
from gitsource.services.revision_materializer import materialize
from gitsource.traits import TraitChain
from gitsource.vcs.protocol import RefFetcher, RemoteUnavailable

logger = get_logger(__name__)


class DiscoveryService:
    """Discovers heads of remotes and resolves revisions, with caching."""

    def __init__(self, fetcher: RefFetcher, cache: RevisionCache | None = None) -> None:
        self.fetcher = fetcher
        self.cache = cache if cache is not None else RevisionCache()

    async def discover(
        self,
        repo: RemoteRepository,
        traits: list[Any] | tuple[Any, ...] = (),
        *,
        refresh: bool = False,
    ) -> DiscoveryResult:
        """Return the (cached) discovery result for a remote and trait list.

        Raises:
            RemoteUnavailable: If the remote cannot be listed. Any previously
                cached result stays valid.
        """
        chain = TraitChain(traits)
        key = CacheKey(repository=repo, traits=chain.traits)

        async def produce() -> DiscoveryResult:
            return await resolve_heads(repo, chain, self.fetcher)

        try:
            return await self.cache.fetch_or_reuse(key, produce, refresh=refresh)
        except RemoteUnavailable as e:
            logger.error("Failed to discover heads", remote=repo.url, error=str(e))
            raise

    async def fetch_heads(
        self,
        repo: RemoteRepository,
        traits: list[Any] | tuple[Any, ...] = (),
        *,
        refresh: bool = False,
    ) -> list[Head]:
        """Ordered heads of a remote, by name."""
        result = await self.discover(repo, traits, refresh=refresh)
        return list(result.heads)

    async def fetch_revisions(
        self,
        repo: RemoteRepository,
        traits: list[Any] | tuple[Any, ...] = (),
        *,
        refresh: bool = False,
    ) -> list[str]:
        """Names of the discovered heads. Commit ids are never listed."""
        result = await self.discover(repo, traits, refresh=refresh)
        return result.names()

    async def fetch_revision(
        self,
        repo: RemoteRepository,
        specifier: str,
        traits: list[Any] | tuple[Any, ...] = (),
    ) -> ResolvedRevision | None:
        """Resolve a branch, tag or commit specifier. None if not found."""
        result = await self.discover(repo, traits)
        return await materialize(repo, specifier, result, self.fetcher)

    async def fetch_actions(
        self,
        repo: RemoteRepository,
        traits: list[Any] | tuple[Any, ...] = (),
        head: Head | None = None,
    ) -> list[Action]:
        """Primary metadata for the source (head is None) or for one head.

        Without symbolic ref names HEAD is matched by commit, so a cached
        snapshot that no longer has a branch at HEAD's commit is re-listed
        first.
        """
        result = await self.discover(repo, traits)
        default_ref = await self.fetcher.resolve_default_ref(repo)
        if default_ref is None:
            logger.debug("Remote has no HEAD", remote=repo.url)
            return []
        if not is_consistent(result, default_ref, self.fetcher):
            logger.debug("Cached heads predate HEAD, refreshing", remote=repo.url)
            result = await self.discover(repo, traits, refresh=True)
        primary = match_primary(repo, result, default_ref, self.fetcher)
        return primary_actions(repo, primary, head)

    def build_checkout_descriptor(
        self,
        repo: RemoteRepository,
        head: Head,
        revision: ResolvedRevision | None = None,
        traits: list[Any] | tuple[Any, ...] = (),
        extensions: list[Extension] | tuple[Extension, ...] = (),
    ) -> CheckoutDescriptor:
        """Checkout descriptor for a head, pinned when a revision is given."""
        return assemble(repo, head, revision, TraitChain(traits), extensions)

    def invalidate(self, repo: RemoteRepository) -> int:
        return self.cache.invalidate(repo)

    def notify_commit(self, url: str) -> int:
        """Handle an external change notification for a remote URL.

        Drops every cached result for the URL so the next poll re-lists
        the remote. Returns the number of cache entries dropped.
        """
        dropped = self.cache.invalidate_url(url)
        logger.info("Commit notification received", url=url, invalidated=dropped)
        return dropped


# Module-level service instance
_service: DiscoveryService | None = None


def init_discovery(fetcher: RefFetcher | None = None) -> DiscoveryService:
    """Initialize the shared discovery service.

    Called during app startup (lifespan). Uses the configured ref fetcher
    backend unless one is supplied.
    """
    global _service  # noqa: PLW0603
    if fetcher is None:
        from gitsource.vcs import create_fetcher

        fetcher = create_fetcher()
    _service = DiscoveryService(fetcher)
    logger.info("Discovery service initialized", fetcher=type(fetcher).__name__)
    return _service


def close_discovery() -> None:
    """Drop the shared discovery service and its cache."""
    global _service  # noqa: PLW0603
    if _service is not None:
        _service.cache.clear()
        _service = None
        logger.info("Discovery service closed")


def get_discovery_service() -> DiscoveryService:
    """FastAPI dependency that returns the discovery service.

    Raises RuntimeError if the service has not been initialized.
    """
    if _service is None:
        raise RuntimeError("Discovery service not initialized; call init_discovery() first")
    return _service


def get_discovery_service_or_none() -> DiscoveryService | None:
    """Return the discovery service if initialized, otherwise None."""
    return _service
