"""In-process TTL cache with LRU bound and scope-indexed invalidation.

Entries live as ``key -> (expires_at, value)`` in an ``OrderedDict`` kept in
recency order. Alongside the entries a secondary index maps invalidation
scopes (hashable tuples such as ``("user_jobs", "7")``) to the keys stored
under them, so a write can drop every dependent key without scanning.

Every delete and scope invalidation also records a generation number. A
reader takes a ``mark()`` before loading from the store and passes it to
``set(..., since=mark)``; if the key or any of its scopes was invalidated in
between, the populate is skipped so a slow read cannot re-cache a value the
write already replaced.
"""
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Hashable, Iterable, Optional, Set, Tuple

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class CacheStore:
    def __init__(self, max_entries: int = 10000, clock: Clock = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._scope_index: Dict[Hashable, Set[str]] = {}
        self._key_scopes: Dict[str, Tuple[Hashable, ...]] = {}
        # target (key or scope) -> generation of its latest invalidation, oldest first
        self._invalidated: "OrderedDict[Hashable, int]" = OrderedDict()
        self._generation = 0
        self._generation_floor = 0
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                self._remove(key)
                self.expirations += 1
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def mark(self) -> int:
        """Current invalidation generation, to pass to ``set(since=...)``."""
        with self._lock:
            return self._generation

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        scopes: Iterable[Hashable] = (),
        since: Optional[int] = None,
    ) -> bool:
        """
        Store ``value`` under ``key``, replacing any existing entry.

        A non-positive TTL only drops the existing entry. With ``since``, the
        write is skipped when ``key`` or one of ``scopes`` was invalidated
        after that mark. Returns whether the value was stored.
        """
        key_scopes = tuple(dict.fromkeys(scopes))
        with self._lock:
            if key in self._entries:
                self._remove(key)
            if ttl_seconds <= 0:
                return False
            if since is not None and self._invalidated_since(since, (key, *key_scopes)):
                return False
            while len(self._entries) >= self.max_entries:
                oldest_key = next(iter(self._entries))
                self._remove(oldest_key)
                self.evictions += 1
            self._entries[key] = (self._clock() + ttl_seconds, value)
            if key_scopes:
                self._key_scopes[key] = key_scopes
                for scope in key_scopes:
                    self._scope_index.setdefault(scope, set()).add(key)
            return True

    def delete(self, key: str) -> bool:
        """Remove ``key`` if present. Missing keys are a no-op."""
        with self._lock:
            self._bump(key)
            return self._remove(key)

    def delete_prefix(self, prefix: str) -> int:
        """Remove every key starting with ``prefix``; returns how many went."""
        with self._lock:
            # No per-prefix bookkeeping: fence off every read in flight
            self._bump_all()
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                self._remove(key)
            return len(doomed)

    def invalidate_scope(self, scope: Hashable) -> int:
        """Remove every key that was stored under ``scope``."""
        with self._lock:
            self._bump(scope)
            doomed = list(self._scope_index.get(scope, ()))
            for key in doomed:
                self._remove(key)
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._bump_all()
            self._entries.clear()
            self._scope_index.clear()
            self._key_scopes.clear()

    def size(self) -> int:
        # Counts expired entries that have not been swept yet.
        return len(self._entries)

    def cleanup(self) -> int:
        """Sweep out every entry whose expiry has passed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                self._remove(key)
            self.expirations += len(expired)
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    def stats(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "size": self.size(),
            "max_entries": self.max_entries,
        }

    def _bump(self, target: Hashable) -> None:
        # Caller holds the lock. The log is bounded like the entries; whatever
        # falls off the front raises the floor below which marks are too old.
        self._generation += 1
        self._invalidated[target] = self._generation
        self._invalidated.move_to_end(target)
        while len(self._invalidated) > self.max_entries:
            _, generation = self._invalidated.popitem(last=False)
            self._generation_floor = generation

    def _bump_all(self) -> None:
        self._generation += 1
        self._generation_floor = self._generation
        self._invalidated.clear()

    def _invalidated_since(self, since: int, targets: Iterable[Hashable]) -> bool:
        if since < self._generation_floor:
            return True
        return any(self._invalidated.get(target, 0) > since for target in targets)

    def _remove(self, key: str) -> bool:
        # Caller holds the lock.
        if self._entries.pop(key, None) is None:
            return False
        for scope in self._key_scopes.pop(key, ()):
            keys = self._scope_index.get(scope)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._scope_index[scope]
        return True
