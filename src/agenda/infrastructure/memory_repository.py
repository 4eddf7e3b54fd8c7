"""In-memory implementation of ContactRepository (no DB)."""

import threading

from agenda.application.errors import Conflict, NotFound
from agenda.domain import Contact


class InMemoryContactRepository:
    """Stores contacts in memory. Order preserved by insertion."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, Contact] = {}

    def create(self, contact: Contact) -> Contact:
        with self._lock:
            if contact.id in self._by_id:
                raise Conflict(contact.id)
            self._by_id[contact.id] = contact
        return contact

    def find_by_id(self, contact_id: str) -> Contact:
        with self._lock:
            contact = self._by_id.get(contact_id)
        if contact is None:
            raise NotFound(contact_id)
        return contact

    def update(self, contact: Contact) -> Contact:
        with self._lock:
            if contact.id not in self._by_id:
                raise NotFound(contact.id)
            self._by_id[contact.id] = contact
        return contact

    def delete(self, contact_id: str) -> None:
        with self._lock:
            if self._by_id.pop(contact_id, None) is None:
                raise NotFound(contact_id)

    def list_all(self) -> list[Contact]:
        with self._lock:
            return list(self._by_id.values())

    def save_all(self, contacts: list[Contact]) -> list[Contact]:
        with self._lock:
            for contact in contacts:
                self._by_id[contact.id] = contact
        return list(contacts)
