"""Infrastructure layer: concrete implementations of application ports."""

from agenda.infrastructure.cache import InMemoryContactCache, RedisContactCache
from agenda.infrastructure.memory_repository import InMemoryContactRepository
from agenda.infrastructure.persistence.neo4j_repository import (
    Neo4jContactRepository,
    ensure_contact_constraint,
)
from agenda.infrastructure.phone import make_method_normalizer, normalize_email, normalize_phone
from agenda.infrastructure.resilience import ResilienceConfig, ResiliencePolicy
from agenda.infrastructure.upstream import HttpContactsClient

__all__ = [
    "HttpContactsClient",
    "InMemoryContactCache",
    "InMemoryContactRepository",
    "Neo4jContactRepository",
    "RedisContactCache",
    "ResilienceConfig",
    "ResiliencePolicy",
    "ensure_contact_constraint",
    "make_method_normalizer",
    "normalize_email",
    "normalize_phone",
]
