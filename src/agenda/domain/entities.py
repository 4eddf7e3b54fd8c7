"""Domain entities: Contact and ContactMethod."""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

# Max length for a contact display name.
NAME_MAX_LENGTH = 500

METHOD_PHONE = "phone"
METHOD_EMAIL = "email"
METHOD_KINDS = (METHOD_PHONE, METHOD_EMAIL)

SOURCE_LOCAL = "LOCAL"
SOURCE_KENECT_LABS = "KENECT_LABS"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ContactMethod:
    """A way to reach a contact: a phone number or an email address."""

    kind: str
    value: str

    def __post_init__(self):
        if self.kind not in METHOD_KINDS:
            raise ValueError(f"Contact method kind must be one of {METHOD_KINDS}.")
        value = (self.value or "").strip()
        if not value:
            raise ValueError("Contact method value must be non-empty.")
        object.__setattr__(self, "value", value)


@dataclass(frozen=True)
class Contact:
    """
    A person in the agenda.
    The id never changes once the contact exists; updates return a new Contact
    with the same id and created_at.
    Locally created contacts need a name and at least one method. Contacts
    mirrored from another source keep whatever that source holds, which may be
    no name or no method at all.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = field(default="")
    methods: tuple[ContactMethod, ...] = ()
    source: str = SOURCE_LOCAL
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.id or not str(self.id).strip():
            raise ValueError("Contact id must be non-empty.")
        local = self.source == SOURCE_LOCAL
        name = (self.name or "").strip()
        if local and not name:
            raise ValueError("Contact name must be non-empty.")
        if len(name) > NAME_MAX_LENGTH:
            raise ValueError(f"Contact name must be at most {NAME_MAX_LENGTH} chars.")
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "methods", tuple(self.methods))
        if local and not self.methods:
            raise ValueError("Contact must have at least one phone or email.")

    @property
    def phones(self) -> list[str]:
        return [m.value for m in self.methods if m.kind == METHOD_PHONE]

    @property
    def emails(self) -> list[str]:
        return [m.value for m in self.methods if m.kind == METHOD_EMAIL]

    def with_changes(
        self,
        *,
        name: str | None = None,
        methods: tuple[ContactMethod, ...] | None = None,
        updated_at: datetime | None = None,
    ) -> "Contact":
        """Return a copy with the given fields replaced and updated_at bumped."""
        return replace(
            self,
            name=self.name if name is None else name,
            methods=self.methods if methods is None else tuple(methods),
            updated_at=updated_at or utcnow(),
        )
