import time
import logging
import threading

logger = logging.getLogger(__name__)

class InMemoryCache:
    def __init__(self, default_ttl=30, max_entries=None):
        self._cache = {}
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._cache)

    def get(self, key):
        with self._lock:
            if key in self._cache:
                entry = self._cache[key]
                if time.monotonic() < entry['expires']:
                    logger.debug(f"[Cache HIT] {key}")
                    return entry['value'], True
                else:
                    del self._cache[key]
                    logger.debug(f"[Cache EXPIRED] {key}")
        logger.debug(f"[Cache MISS] {key}")
        return None, False

    def set(self, key, value, ttl=None):
        if ttl is None:
            ttl = self._default_ttl
        with self._lock:
            self._cache.pop(key, None)
            self._cache[key] = {
                'value': value,
                'expires': time.monotonic() + ttl
            }
            if self._max_entries is not None and len(self._cache) > self._max_entries:
                self._evict()
        logger.debug(f"[Cache SET] {key} (TTL: {ttl}s)")

    def _evict(self):
        # Caller holds the lock. Dicts keep insertion order, so the front is oldest.
        while len(self._cache) > self._max_entries:
            key = next(iter(self._cache))
            del self._cache[key]
            logger.debug(f"[Cache EVICT] {key}")

    def clear(self):
        with self._lock:
            count = len(self._cache)
            self._cache = {}
        if count > 0:
            logger.debug(f"[Cache CLEAR] {count} entries removed")


# Offsets for a given (zone, instant) never change within a process, the TTL only
# bounds how long a stale tz database stays visible after a data update.
offset_cache = InMemoryCache(default_ttl=3600, max_entries=4096)


def clear_all_cache():
    offset_cache.clear()
