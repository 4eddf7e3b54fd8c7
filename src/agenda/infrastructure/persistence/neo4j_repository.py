"""Neo4j implementation of ContactRepository.
One (:Contact) node per contact, unique on id. Methods are kept as two parallel
lists (method_kinds, method_values) so their order survives a round trip.
"""

from contextlib import contextmanager
from datetime import datetime, timezone

from neo4j import Query
from neo4j.exceptions import (
    ConstraintError,
    ServiceUnavailable,
    SessionExpired,
    TransientError,
)

from agenda.application.errors import Conflict, NotFound, StoreUnavailable
from agenda.domain import SOURCE_LOCAL, Contact, ContactMethod
from agenda.domain.serialization import datetime_to_iso, iso_to_datetime

_CONSTRAINT_QUERY = """
CREATE CONSTRAINT contact_id_unique IF NOT EXISTS
FOR (c:Contact) REQUIRE c.id IS UNIQUE
"""

_CREATE_QUERY = """
OPTIONAL MATCH (existing:Contact {id: $id})
WITH existing
WHERE existing IS NULL
CREATE (c:Contact {
    id: $id,
    name: $name,
    method_kinds: $method_kinds,
    method_values: $method_values,
    source: $source,
    created_at: $created_at,
    updated_at: $updated_at
})
RETURN c
"""

_FIND_QUERY = """
MATCH (c:Contact {id: $id})
RETURN c
"""

_UPDATE_QUERY = """
MATCH (c:Contact {id: $id})
SET c.name = $name,
    c.method_kinds = $method_kinds,
    c.method_values = $method_values,
    c.source = $source,
    c.updated_at = $updated_at
RETURN c
"""

_DELETE_QUERY = """
MATCH (c:Contact {id: $id})
DETACH DELETE c
RETURN count(*) AS deleted
"""

_LIST_QUERY = """
MATCH (c:Contact)
RETURN c
ORDER BY c.created_at, c.id
"""

_SAVE_ALL_QUERY = """
UNWIND $rows AS row
MERGE (c:Contact {id: row.id})
SET c.name = row.name,
    c.method_kinds = row.method_kinds,
    c.method_values = row.method_values,
    c.source = row.source,
    c.created_at = row.created_at,
    c.updated_at = row.updated_at,
    c.synced_at = $synced_at
"""


def ensure_contact_constraint(driver) -> None:
    """Create unique constraint on Contact(id) if missing."""
    with driver.session() as session:
        session.run(_CONSTRAINT_QUERY)


def _contact_params(contact: Contact) -> dict:
    return {
        "id": contact.id,
        "name": contact.name,
        "method_kinds": [m.kind for m in contact.methods],
        "method_values": [m.value for m in contact.methods],
        "source": contact.source,
        "created_at": datetime_to_iso(contact.created_at),
        "updated_at": datetime_to_iso(contact.updated_at),
    }


class Neo4jContactRepository:
    """Stores contacts in Neo4j. Driver transport errors surface as StoreUnavailable."""

    def __init__(
        self,
        driver: object,
        *,
        database: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._driver = driver
        self._database = database
        self._timeout = timeout

    @contextmanager
    def _session(self):
        try:
            with self._driver.session(database=self._database) as session:
                yield session
        except (ServiceUnavailable, SessionExpired, TransientError) as e:
            raise StoreUnavailable(f"Neo4j unavailable: {e}") from e

    def _query(self, text: str) -> Query:
        return Query(text, timeout=self._timeout)

    def create(self, contact: Contact) -> Contact:
        try:
            with self._session() as session:
                record = session.run(self._query(_CREATE_QUERY), **_contact_params(contact)).single()
        except ConstraintError as e:
            raise Conflict(contact.id) from e
        if record is None:
            raise Conflict(contact.id)
        return _node_to_contact(record["c"])

    def find_by_id(self, contact_id: str) -> Contact:
        with self._session() as session:
            record = session.run(self._query(_FIND_QUERY), id=contact_id).single()
        if record is None:
            raise NotFound(contact_id)
        return _node_to_contact(record["c"])

    def update(self, contact: Contact) -> Contact:
        params = _contact_params(contact)
        params.pop("created_at")
        with self._session() as session:
            record = session.run(self._query(_UPDATE_QUERY), **params).single()
        if record is None:
            raise NotFound(contact.id)
        return _node_to_contact(record["c"])

    def delete(self, contact_id: str) -> None:
        with self._session() as session:
            record = session.run(self._query(_DELETE_QUERY), id=contact_id).single()
        if record is None or record["deleted"] == 0:
            raise NotFound(contact_id)

    def list_all(self) -> list[Contact]:
        with self._session() as session:
            result = session.run(self._query(_LIST_QUERY))
            return [_node_to_contact(rec["c"]) for rec in result]

    def save_all(self, contacts: list[Contact]) -> list[Contact]:
        if not contacts:
            return []
        synced_at = datetime_to_iso(datetime.now(timezone.utc))
        with self._session() as session:
            session.run(
                self._query(_SAVE_ALL_QUERY),
                rows=[_contact_params(c) for c in contacts],
                synced_at=synced_at,
            ).consume()
        return list(contacts)


def _node_to_contact(node) -> Contact:
    kinds = node.get("method_kinds") or []
    values = node.get("method_values") or []
    return Contact(
        id=node["id"],
        name=node.get("name") or "",
        methods=tuple(ContactMethod(kind=k, value=v) for k, v in zip(kinds, values)),
        source=node.get("source") or SOURCE_LOCAL,
        created_at=iso_to_datetime(node["created_at"]),
        updated_at=iso_to_datetime(node["updated_at"]),
    )
