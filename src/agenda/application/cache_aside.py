"""Cache-aside reads of contacts: cache first, then the repository through the store policy."""

import logging
import threading
from datetime import timedelta

from agenda.application.errors import CacheUnavailable
from agenda.application.ports import CallPolicy, ContactCache, ContactRepository
from agenda.domain import Contact, contact_from_dict, contact_to_dict

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


def contact_key(contact_id: str) -> str:
    return f"contact:{contact_id}"


class CachedContactAccessor:
    """
    get(id): cached snapshot if present and unexpired, else a store read that
    repopulates the cache. A failing cache never fails a read; it is logged and
    the store answers directly.
    """

    def __init__(
        self,
        repository: ContactRepository,
        cache: ContactCache,
        policy: CallPolicy,
        *,
        ttl: timedelta = DEFAULT_TTL,
    ) -> None:
        self._repo = repository
        self._cache = cache
        self._policy = policy
        self._ttl = ttl
        self._stats_lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "cache_errors": 0}

    def get(self, contact_id: str) -> Contact:
        key = contact_key(contact_id)
        try:
            cached = self._cache.get(key)
        except CacheUnavailable as e:
            self._count("cache_errors")
            logger.warning("Cache unavailable on get(%s), reading store directly: %s", contact_id, e)
            return self._policy.call(self._repo.find_by_id, contact_id)

        if cached is not None:
            try:
                contact = contact_from_dict(cached)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Discarding unreadable cache entry %s: %s", key, e)
            else:
                self._count("hits")
                return contact

        self._count("misses")
        contact = self._policy.call(self._repo.find_by_id, contact_id)
        self.put(contact_id, contact)
        return contact

    def put(self, contact_id: str, contact: Contact) -> None:
        try:
            self._cache.set(contact_key(contact_id), contact_to_dict(contact), self._ttl)
        except CacheUnavailable as e:
            self._count("cache_errors")
            logger.warning("Cache unavailable on put(%s): %s", contact_id, e)

    def invalidate(self, contact_id: str) -> None:
        try:
            self._cache.delete(contact_key(contact_id))
        except CacheUnavailable as e:
            self._count("cache_errors")
            logger.warning("Cache unavailable on invalidate(%s): %s", contact_id, e)

    def stats(self) -> dict[str, int]:
        with self._stats_lock:
            return dict(self._stats)

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self._stats[name] += 1
