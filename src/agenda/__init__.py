"""
Contacts agenda core: clean-architecture layout.

- domain: entities (Contact, ContactMethod). No outer dependencies.
- application: use cases (ContactService, ContactSyncService, CachedContactAccessor), ports, errors, DTOs.
- infrastructure: adapters (repositories, caches, resilience policies, external API client).
"""

from agenda.application import (
    CachedContactAccessor,
    CircuitOpen,
    Conflict,
    ContactChanges,
    ContactDraft,
    ContactRepository,
    ContactService,
    ContactSyncService,
    MethodData,
    NotFound,
    ServiceUnavailable,
    StoreUnavailable,
    UpstreamUnavailable,
)
from agenda.domain import Contact, ContactMethod
from agenda.infrastructure import (
    InMemoryContactCache,
    InMemoryContactRepository,
    Neo4jContactRepository,
    ResiliencePolicy,
)

__all__ = [
    "CachedContactAccessor",
    "CircuitOpen",
    "Conflict",
    "Contact",
    "ContactChanges",
    "ContactDraft",
    "ContactMethod",
    "ContactRepository",
    "ContactService",
    "ContactSyncService",
    "InMemoryContactCache",
    "InMemoryContactRepository",
    "MethodData",
    "Neo4jContactRepository",
    "NotFound",
    "ResiliencePolicy",
    "ServiceUnavailable",
    "StoreUnavailable",
    "UpstreamUnavailable",
]
