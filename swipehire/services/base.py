"""Cache-aside plumbing shared by every resource accessor."""
import logging
from typing import Any, Awaitable, Callable, Hashable, Iterable, Optional, Union

from prometheus_client import Counter

from swipehire.core.cache import CacheStore
from swipehire.core.cache_keys import CacheKey, ttl_for

logger = logging.getLogger(__name__)

CACHE_REQUESTS = Counter("cache_requests_total", "Cache lookups by resource and outcome", ["resource", "result"])
CACHE_INVALIDATIONS = Counter("cache_invalidations_total", "Cache keys dropped after writes", ["resource"])

Loader = Callable[[], Awaitable[Optional[Any]]]
Target = Union[CacheKey, Hashable]
Scopes = Union[Iterable[Hashable], Callable[[Any], Iterable[Hashable]]]


class CachedResourceAccessor:
    """
    Base for the per-resource accessors.

    ``store`` is the document store (MongoDocumentStore in production).
    Reads go through :meth:`_read_through`; writes perform the mutation
    and then call :meth:`_invalidate` with every key or scope that could
    hold the mutated document.
    """

    def __init__(self, cache: CacheStore, store):
        self.cache = cache
        self.store = store

    async def _read_through(self, key: CacheKey, loader: Loader, scopes: Scopes = ()) -> Optional[Any]:
        storage_key = str(key)
        resource = key.resource.value
        cached = self._cache_get(storage_key)
        if cached is not None:
            CACHE_REQUESTS.labels(resource=resource, result="hit").inc()
            logger.debug(f"Cache hit for {storage_key}")
            return cached

        CACHE_REQUESTS.labels(resource=resource, result="miss").inc()
        mark = self._cache_mark()
        # Store errors propagate from here and nothing gets cached
        result = await loader()
        if result is None:
            return None

        extra_scopes = scopes(result) if callable(scopes) else scopes
        if mark is None:
            return result
        try:
            stored = self.cache.set(
                storage_key, result, ttl_for(key.resource), scopes=(key.scope, *extra_scopes), since=mark
            )
        except Exception:
            logger.exception(f"Failed to populate cache for {storage_key}")
            return result
        if not stored:
            # A write landed while this read was loading; its result may predate it
            logger.debug(f"Skipped caching {storage_key}: invalidated during load")
        return result

    def _cache_get(self, storage_key: str) -> Optional[Any]:
        try:
            return self.cache.get(storage_key)
        except Exception:
            logger.exception(f"Cache lookup failed for {storage_key}; treating as miss")
            return None

    def _cache_mark(self) -> Optional[int]:
        try:
            return self.cache.mark()
        except Exception:
            logger.exception("Cache unavailable; result will not be cached")
            return None

    def _invalidate(self, *targets: Target) -> None:
        """Drop exact keys (CacheKey) and whole scopes (tuples). Never raises."""
        for target in targets:
            try:
                if isinstance(target, CacheKey):
                    removed = int(self.cache.delete(str(target)))
                    resource = target.resource.value
                else:
                    removed = self.cache.invalidate_scope(target)
                    resource = target[0]
            except Exception:
                logger.exception(f"Cache invalidation failed for {target!r}")
                continue
            if removed:
                CACHE_INVALIDATIONS.labels(resource=resource).inc(removed)
            logger.debug(f"Invalidated {removed} cache entries for {target!r}")
