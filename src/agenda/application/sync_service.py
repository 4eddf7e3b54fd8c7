"""
Pull every contact from the external API and keep a copy in the store.

Page 1 is requested with `default_page_size`. If `total-count` fits in that
page we are done (one call); otherwise page 2 is requested with the remaining
size (two calls). Each successful fetch is saved to the store, so that when the
API is unavailable the stored snapshot can be served instead, flagged with
`x-fallback: true`. Fallback data is never saved back.
"""

import logging
from datetime import timedelta

from agenda.application.dto import HEADER_FALLBACK, ContactPage
from agenda.application.errors import CacheUnavailable, ServiceUnavailable, UpstreamUnavailable
from agenda.application.ports import CallPolicy, ContactCache, ContactRepository, ContactsApiClient
from agenda.domain import Contact, contact_from_dict, contact_to_dict

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1000


def page_key(page: int, page_size: int) -> str:
    return f"page:{page}-{page_size}"


class ContactSyncService:
    def __init__(
        self,
        client: ContactsApiClient,
        repository: ContactRepository,
        *,
        upstream_policy: CallPolicy,
        store_policy: CallPolicy,
        cache: ContactCache | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        page_ttl: timedelta = timedelta(minutes=5),
    ) -> None:
        if default_page_size < 1:
            raise ValueError("default_page_size must be >= 1")
        self._client = client
        self._repo = repository
        self._upstream_policy = upstream_policy
        self._store_policy = store_policy
        self._cache = cache
        self._page_size = default_page_size
        self._page_ttl = page_ttl

    def get_all_contacts(self) -> list[Contact]:
        first = self.get_page(1, self._page_size)
        if first.is_fallback:
            logger.warning("Using database fallback since external api is unavailable")
            return first.contacts

        total = first.total_count
        if total <= self._page_size:
            logger.debug("Fetched all %d contacts in single request", total)
            return self._save(first.contacts)

        remaining = total - self._page_size
        logger.debug("Fetching remaining %d of %d total contacts", remaining, total)
        second = self.get_page(2, remaining)
        if second.is_fallback:
            logger.warning("External api failed mid-sync; serving database fallback")
            return second.contacts
        return self._save(first.contacts + second.contacts)

    def get_page(self, page: int, page_size: int) -> ContactPage:
        """One page from cache or the API; the stored snapshot when the API is unavailable."""
        cached = self._cached_page(page, page_size)
        if cached is not None:
            return cached
        try:
            result = self._upstream_policy.call(self._client.get_contacts, page, page_size)
        except UpstreamUnavailable as e:
            logger.warning("API call failed, using fallback. Error: %s", e)
            return self._fallback_page()
        self._store_page(page, page_size, result)
        return result

    def _fallback_page(self) -> ContactPage:
        try:
            contacts = self._store_policy.call(self._repo.list_all)
        except UpstreamUnavailable as e:
            logger.error("Critical: external API and fallback database are both unavailable")
            raise ServiceUnavailable(
                "Service unavailable - both external API and fallback database are unavailable"
            ) from e
        if not contacts:
            logger.error("Critical: fallback database is empty and external API is unavailable")
            raise ServiceUnavailable("External API is unavailable and no cached data exists")
        logger.debug("Retrieved %d contacts from database", len(contacts))
        return ContactPage(contacts=contacts, headers={HEADER_FALLBACK: "true"})

    def _save(self, contacts: list[Contact]) -> list[Contact]:
        if not contacts:
            logger.debug("Skipping save - empty contacts list")
            return []
        logger.debug("Saving %d contacts to database", len(contacts))
        return self._store_policy.call(self._repo.save_all, contacts)

    def _cached_page(self, page: int, page_size: int) -> ContactPage | None:
        if self._cache is None:
            return None
        try:
            data = self._cache.get(page_key(page, page_size))
        except CacheUnavailable as e:
            logger.warning("Cache unavailable reading page %s-%s: %s", page, page_size, e)
            return None
        if data is None:
            return None
        try:
            return ContactPage(
                contacts=[contact_from_dict(c) for c in data["contacts"]],
                headers=dict(data.get("headers") or {}),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable cached page %s-%s: %s", page, page_size, e)
            return None

    def _store_page(self, page: int, page_size: int, result: ContactPage) -> None:
        if self._cache is None:
            return
        payload = {
            "contacts": [contact_to_dict(c) for c in result.contacts],
            "headers": result.headers,
        }
        try:
            self._cache.set(page_key(page, page_size), payload, self._page_ttl)
        except CacheUnavailable as e:
            logger.warning("Cache unavailable storing page %s-%s: %s", page, page_size, e)
