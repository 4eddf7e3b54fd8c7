"""Application layer: use cases, ports, errors and DTOs. Depends only on domain."""

from agenda.application.cache_aside import CachedContactAccessor
from agenda.application.contact_service import ContactService
from agenda.application.dto import (
    ContactChanges,
    ContactDraft,
    ContactPage,
    MethodData,
)
from agenda.application.errors import (
    AgendaError,
    CacheUnavailable,
    CircuitOpen,
    Conflict,
    NotFound,
    ServiceUnavailable,
    StoreUnavailable,
    UpstreamUnavailable,
)
from agenda.application.ports import (
    CallPolicy,
    ContactCache,
    ContactRepository,
    ContactsApiClient,
)
from agenda.application.sync_service import ContactSyncService

__all__ = [
    "AgendaError",
    "CacheUnavailable",
    "CachedContactAccessor",
    "CallPolicy",
    "CircuitOpen",
    "Conflict",
    "ContactCache",
    "ContactChanges",
    "ContactDraft",
    "ContactPage",
    "ContactRepository",
    "ContactService",
    "ContactSyncService",
    "ContactsApiClient",
    "MethodData",
    "NotFound",
    "ServiceUnavailable",
    "StoreUnavailable",
    "UpstreamUnavailable",
]
