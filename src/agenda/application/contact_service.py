"""Contact CRUD use cases. Writes go to the store first, then the cache is brought in line."""

import logging
import uuid
from collections.abc import Callable

from agenda.application.cache_aside import CachedContactAccessor
from agenda.application.dto import ContactChanges, ContactDraft, MethodData
from agenda.application.ports import CallPolicy, ContactRepository
from agenda.domain import SOURCE_LOCAL, Contact, ContactMethod
from agenda.domain.entities import utcnow

logger = logging.getLogger(__name__)


def _plain_method(data: MethodData) -> ContactMethod:
    return ContactMethod(kind=(data.kind or "").strip().lower(), value=data.value)


class ContactService:
    """Create, read, update, delete and list contacts."""

    def __init__(
        self,
        repository: ContactRepository,
        accessor: CachedContactAccessor,
        policy: CallPolicy,
        *,
        normalize_method: Callable[[MethodData], ContactMethod] | None = None,
    ) -> None:
        self._repo = repository
        self._accessor = accessor
        self._policy = policy
        self._normalize_method = normalize_method or _plain_method

    def _methods(self, methods: list[MethodData]) -> tuple[ContactMethod, ...]:
        out: list[ContactMethod] = []
        for data in methods:
            method = self._normalize_method(data)
            if method not in out:
                out.append(method)
        return tuple(out)

    def create_contact(self, draft: ContactDraft) -> Contact:
        """Validate and store a new contact. Raises ValueError or Conflict."""
        now = utcnow()
        contact = Contact(
            id=(draft.id or "").strip() or str(uuid.uuid4()),
            name=draft.name,
            methods=self._methods(draft.methods),
            source=SOURCE_LOCAL,
            created_at=now,
            updated_at=now,
        )
        stored = self._policy.call(self._repo.create, contact)
        self._accessor.put(stored.id, stored)
        logger.info("Created contact %s", stored.id)
        return stored

    def get_contact(self, contact_id: str) -> Contact:
        """Raises NotFound."""
        return self._accessor.get(contact_id)

    def update_contact(self, contact_id: str, changes: ContactChanges) -> Contact:
        """Apply changes to the stored contact. Raises NotFound or ValueError."""
        current = self._policy.call(self._repo.find_by_id, contact_id)
        updated = current.with_changes(
            name=changes.name,
            methods=None if changes.methods is None else self._methods(changes.methods),
        )
        stored = self._policy.call(self._repo.update, updated)
        self._accessor.invalidate(contact_id)
        logger.info("Updated contact %s", contact_id)
        return stored

    def delete_contact(self, contact_id: str) -> None:
        """Raises NotFound."""
        self._policy.call(self._repo.delete, contact_id)
        self._accessor.invalidate(contact_id)
        logger.info("Deleted contact %s", contact_id)

    def list_contacts(self) -> list[Contact]:
        return self._policy.call(self._repo.list_all)
