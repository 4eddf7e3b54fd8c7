"""Application ports (interfaces). Implemented by infrastructure adapters."""

from datetime import timedelta
from typing import Any, Protocol

from agenda.application.dto import ContactPage
from agenda.domain import Contact


class ContactRepository(Protocol):
    """Persists and queries Contact records."""

    def create(self, contact: Contact) -> Contact:
        """Store a new contact. Raises Conflict if the id is taken."""
        ...

    def find_by_id(self, contact_id: str) -> Contact:
        """Return the contact with the given id. Raises NotFound."""
        ...

    def update(self, contact: Contact) -> Contact:
        """Replace an existing contact. Raises NotFound."""
        ...

    def delete(self, contact_id: str) -> None:
        """Remove a contact. Raises NotFound."""
        ...

    def list_all(self) -> list[Contact]:
        """Return all contacts in creation order (or any stable order)."""
        ...

    def save_all(self, contacts: list[Contact]) -> list[Contact]:
        """Insert or replace every contact. Used by the sync path."""
        ...


class ContactCache(Protocol):
    """Key/value cache for JSON-serializable snapshots. Raises CacheUnavailable on backend failure."""

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl: timedelta) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class ContactsApiClient(Protocol):
    """External paged contacts API."""

    def get_contacts(self, page: int, page_size: int) -> ContactPage:
        """Fetch one page. Raises UpstreamUnavailable."""
        ...


class CallPolicy(Protocol):
    """Runs an outbound call under retry and circuit-breaker protection."""

    def call(self, fn, *args, **kwargs):
        ...
