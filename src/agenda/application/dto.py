"""Input and output shapes of the application use cases."""

from dataclasses import dataclass, field

from agenda.domain import Contact

HEADER_TOTAL_COUNT = "total-count"
HEADER_FALLBACK = "x-fallback"


@dataclass(frozen=True)
class MethodData:
    """Raw contact method as received from a client, before normalization."""

    kind: str
    value: str


@dataclass(frozen=True)
class ContactDraft:
    """Data for a new contact. Id is optional; one is generated when missing."""

    name: str
    methods: list[MethodData] = field(default_factory=list)
    id: str | None = None


@dataclass(frozen=True)
class ContactChanges:
    """Partial update. None means keep the current value."""

    name: str | None = None
    methods: list[MethodData] | None = None


@dataclass
class ContactPage:
    """One page of contacts from the external API, with lower-cased response headers.

    `skipped` counts upstream records that could not be mapped to a Contact.
    """

    contacts: list[Contact]
    headers: dict[str, str] = field(default_factory=dict)
    skipped: int = 0

    @classmethod
    def from_headers(cls, contacts: list[Contact], headers, *, skipped: int = 0) -> "ContactPage":
        """Keep the first value of each header, keyed by lower-cased name."""
        header_map: dict[str, str] = {}
        for key, value in headers.items():
            if isinstance(value, list | tuple):
                if not value:
                    continue
                value = value[0]
            header_map[str(key).lower()] = str(value)
        return cls(contacts=list(contacts), headers=header_map, skipped=skipped)

    @property
    def is_fallback(self) -> bool:
        return self.headers.get(HEADER_FALLBACK) == "true"

    @property
    def total_count(self) -> int:
        raw = self.headers.get(HEADER_TOTAL_COUNT)
        if raw is None:
            return len(self.contacts)
        return int(raw)
