"""Integration tests for Neo4jContactRepository. Require Docker
(testcontainers)."""

from datetime import datetime, timedelta, timezone

import pytest

from agenda.application import Conflict, NotFound
from agenda.domain import METHOD_EMAIL, METHOD_PHONE, SOURCE_KENECT_LABS, Contact, ContactMethod
from agenda.infrastructure import Neo4jContactRepository, ensure_contact_constraint


@pytest.fixture(scope="session")
def neo4j_driver():
    from testcontainers.neo4j import Neo4jContainer

    try:
        container = Neo4jContainer().start()
    except Exception as e:  # Docker not running
        pytest.skip(f"Neo4j container unavailable: {e}")
    driver = container.get_driver()
    try:
        ensure_contact_constraint(driver)
        yield driver
    finally:
        driver.close()
        container.stop()


@pytest.fixture
def clean_neo4j(neo4j_driver):
    """Clear the graph before each test so tests are independent."""
    with neo4j_driver.session() as session:
        session.run("MATCH (n) DETACH DELETE n")
    yield neo4j_driver


T0 = datetime(2025, 10, 5, 10, 30, tzinfo=timezone.utc)


def _contact(contact_id, name="Alice", *, created_at=T0, source="LOCAL"):
    return Contact(
        id=contact_id,
        name=name,
        methods=(
            ContactMethod(kind=METHOD_PHONE, value="+12025551234"),
            ContactMethod(kind=METHOD_EMAIL, value=f"{contact_id}@example.com"),
        ),
        source=source,
        created_at=created_at,
        updated_at=created_at,
    )


def test_create_find_round_trip(clean_neo4j):
    repo = Neo4jContactRepository(clean_neo4j, timeout=5.0)
    contact = _contact("a")

    assert repo.create(contact) == contact
    assert repo.find_by_id("a") == contact


def test_create_duplicate_conflicts(clean_neo4j):
    repo = Neo4jContactRepository(clean_neo4j)
    repo.create(_contact("a"))
    with pytest.raises(Conflict):
        repo.create(_contact("a", name="Other"))
    assert repo.find_by_id("a").name == "Alice"


def test_update_keeps_created_at(clean_neo4j):
    repo = Neo4jContactRepository(clean_neo4j)
    repo.create(_contact("a"))
    later = T0 + timedelta(hours=1)

    updated = repo.update(
        _contact("a").with_changes(
            name="Alice Smith",
            methods=(ContactMethod(kind=METHOD_EMAIL, value="alice@new.io"),),
            updated_at=later,
        )
    )

    assert updated.name == "Alice Smith"
    assert updated.emails == ["alice@new.io"]
    assert updated.phones == []
    assert updated.created_at == T0
    assert updated.updated_at == later
    with pytest.raises(NotFound):
        repo.update(_contact("missing"))


def test_delete(clean_neo4j):
    repo = Neo4jContactRepository(clean_neo4j)
    repo.create(_contact("a"))
    repo.delete("a")
    with pytest.raises(NotFound):
        repo.find_by_id("a")
    with pytest.raises(NotFound):
        repo.delete("a")


def test_list_all_ordered_by_creation(clean_neo4j):
    repo = Neo4jContactRepository(clean_neo4j)
    repo.create(_contact("b", created_at=T0 + timedelta(minutes=1)))
    repo.create(_contact("a", created_at=T0 + timedelta(minutes=2)))
    repo.create(_contact("c", created_at=T0))

    assert [c.id for c in repo.list_all()] == ["c", "b", "a"]


def test_save_all_upserts_and_stamps_sync_time(clean_neo4j):
    repo = Neo4jContactRepository(clean_neo4j)
    repo.create(_contact("1"))

    repo.save_all(
        [
            _contact("1", name="Synced", source=SOURCE_KENECT_LABS),
            _contact("2", source=SOURCE_KENECT_LABS),
        ]
    )

    by_id = {c.id: c for c in repo.list_all()}
    assert by_id["1"].name == "Synced"
    assert by_id["2"].source == SOURCE_KENECT_LABS
    with clean_neo4j.session() as session:
        stamped = session.run(
            "MATCH (c:Contact) WHERE c.synced_at IS NOT NULL RETURN count(c) AS n"
        ).single()["n"]
    assert stamped == 2
    assert repo.save_all([]) == []
