"""Discovery result cache.

Results are memoized per (remote, traits) key and reused until they are
explicitly refreshed or invalidated; there is no expiry. Production is
single-flight per key: concurrent callers for the same key await the one
in-flight discovery instead of listing the remote again, while different
keys proceed independently.

Published results are immutable and replaced wholesale, so a refresh
always reflects deletions on the remote. A failed refresh leaves the
previous result in place. Invalidation also covers a discovery already in
flight: its callers still receive the result, but it is never published.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from gitsource.heads import DiscoveryResult
from gitsource.logging_config import get_logger
from gitsource.remote import RemoteRepository, normalize_url

logger = get_logger(__name__)

Producer = Callable[[], Awaitable[DiscoveryResult]]


@dataclass(frozen=True)
class CacheKey:
    """Remote identity plus the trait configuration a result was produced with."""

    repository: RemoteRepository
    traits: tuple[Any, ...] = ()


class RevisionCache:
    """In-memory, per-process cache of discovery results."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, DiscoveryResult] = {}
        self._inflight: dict[CacheKey, asyncio.Future[DiscoveryResult]] = {}
        # Bumped by invalidation; a discovery only publishes into the generation it started in
        self._generations: dict[CacheKey, int] = {}

    def get(self, key: CacheKey) -> DiscoveryResult | None:
        """Return the published result for a key, if any."""
        return self._entries.get(key)

    async def fetch_or_reuse(
        self,
        key: CacheKey,
        producer: Producer,
        *,
        refresh: bool = False,
    ) -> DiscoveryResult:
        """Return the cached result, producing it on a miss or when refreshing.

        Raises whatever the producer raises; the previous entry survives.
        """
        if not refresh:
            cached = self._entries.get(key)
            if cached is not None:
                logger.debug("Discovery cache hit", remote=key.repository.url)
                return cached

        inflight = self._inflight.get(key)
        if inflight is None:
            logger.debug(
                "Discovery cache refresh" if refresh else "Discovery cache miss",
                remote=key.repository.url,
            )
            generation = self._generations.get(key, 0)
            inflight = asyncio.ensure_future(self._produce(key, producer, generation))
            self._inflight[key] = inflight
        else:
            logger.debug("Awaiting in-flight discovery", remote=key.repository.url)

        # Shielded so a cancelled caller does not abort the shared discovery
        return await asyncio.shield(inflight)

    async def _produce(
        self, key: CacheKey, producer: Producer, generation: int
    ) -> DiscoveryResult:
        try:
            result = await producer()
            if self._generations.get(key, 0) == generation:
                self._entries[key] = result
            else:
                logger.debug(
                    "Discarding discovery started before invalidation",
                    remote=key.repository.url,
                )
            return result
        finally:
            if self._generations.get(key, 0) == generation:
                self._inflight.pop(key, None)

    def _drop(self, keys: list[CacheKey]) -> int:
        """Drop published entries and orphan in-flight discoveries for the keys."""
        dropped = 0
        for key in keys:
            self._generations[key] = self._generations.get(key, 0) + 1
            self._inflight.pop(key, None)
            if self._entries.pop(key, None) is not None:
                dropped += 1
        return dropped

    def _keys(self) -> set[CacheKey]:
        return set(self._entries) | set(self._inflight)

    def invalidate(self, repository: RemoteRepository) -> int:
        """Drop every entry for a repository. Returns the number of published entries dropped."""
        dropped = self._drop([key for key in self._keys() if key.repository == repository])
        if dropped:
            logger.info("Discovery cache invalidated", remote=repository.url, entries=dropped)
        return dropped

    def invalidate_url(self, url: str) -> int:
        """Drop every entry whose remote URL matches, whatever its credentials."""
        target = normalize_url(url)
        dropped = self._drop(
            [key for key in self._keys() if key.repository.normalized_url == target]
        )
        if dropped:
            logger.info("Discovery cache invalidated", url=url, entries=dropped)
        return dropped

    def clear(self) -> None:
        self._drop(list(self._keys()))

    def __len__(self) -> int:
        return len(self._entries)
