"""API tests against in-memory adapters. No Neo4j, Redis or external API needed."""

import threading
import time
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from agenda.application import ContactPage, UpstreamUnavailable
from agenda.config import Settings
from agenda.domain import METHOD_EMAIL, SOURCE_KENECT_LABS, Contact, ContactMethod
from agenda.infrastructure import HttpContactsClient, InMemoryContactCache, InMemoryContactRepository
from api.main import build_services, create_app


class FakeApiClient:
    def __init__(self, contacts=None, error=None):
        self.contacts = contacts or []
        self.error = error

    def get_contacts(self, page, page_size):
        if self.error is not None:
            raise self.error
        chunk = self.contacts[:page_size] if page == 1 else self.contacts[-page_size:]
        return ContactPage.from_headers(chunk, {"Total-Count": str(len(self.contacts))})


def _remote(n):
    return Contact(
        id=f"k-{n}",
        name=f"Remote {n}",
        methods=(ContactMethod(kind=METHOD_EMAIL, value=f"remote{n}@example.com"),),
        source=SOURCE_KENECT_LABS,
    )


def _client(api_client):
    services = build_services(
        Settings.from_dict({"phone_default_region": "US"}),
        api_client=api_client,
        repository=InMemoryContactRepository(),
        cache=InMemoryContactCache(),
        policy_kwargs={"sleep": lambda _: None},
    )
    return TestClient(create_app(services))


@pytest.fixture
def client():
    return _client(FakeApiClient([_remote(1), _remote(2)]))


ALICE = {
    "name": "Alice",
    "methods": [
        {"kind": "phone", "value": "202 555 1234"},
        {"kind": "email", "value": "Alice@Example.com"},
    ],
}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_circuits_report_both_dependencies(client):
    r = client.get("/health/circuits")
    assert r.status_code == 200
    body = r.json()
    assert [c["name"] for c in body["circuits"]] == ["store", "upstream"]
    assert all(c["state"] == "CLOSED" for c in body["circuits"])
    assert body["cache"] == {"hits": 0, "misses": 0, "cache_errors": 0}


def test_create_then_get(client):
    r = client.post("/contacts", json=ALICE)
    assert r.status_code == 201
    created = r.json()
    assert created["name"] == "Alice"
    assert created["source"] == "LOCAL"
    assert created["methods"] == [
        {"kind": "phone", "value": "+12025551234"},
        {"kind": "email", "value": "alice@example.com"},
    ]

    r = client.get(f"/contacts/{created['id']}")
    assert r.status_code == 200
    assert r.json() == created
    assert [c["id"] for c in client.get("/contacts").json()] == [created["id"]]


def test_missing_contact_is_404_with_error_body(client):
    r = client.get("/contacts/nope")
    assert r.status_code == 404
    body = r.json()
    assert body["status"] == 404
    assert body["path"] == "/contacts/nope"
    assert "nope" in body["message"]
    assert body["timestamp"]


def test_duplicate_id_is_409(client):
    assert client.post("/contacts", json={**ALICE, "id": "a-1"}).status_code == 201
    r = client.post("/contacts", json={**ALICE, "id": "a-1"})
    assert r.status_code == 409
    assert r.json()["status"] == 409


def test_invalid_phone_is_400(client):
    r = client.post("/contacts", json={"name": "Bob", "methods": [{"kind": "phone", "value": "123"}]})
    assert r.status_code == 400
    assert r.json()["status"] == 400


def test_update_and_delete(client):
    contact_id = client.post("/contacts", json=ALICE).json()["id"]
    client.get(f"/contacts/{contact_id}")

    r = client.put(f"/contacts/{contact_id}", json={"name": "Alice Smith"})
    assert r.status_code == 200
    assert r.json()["name"] == "Alice Smith"
    assert client.get(f"/contacts/{contact_id}").json()["name"] == "Alice Smith"

    assert client.delete(f"/contacts/{contact_id}").status_code == 204
    assert client.get(f"/contacts/{contact_id}").status_code == 404
    assert client.delete(f"/contacts/{contact_id}").status_code == 404


def test_sync_returns_external_contacts(client):
    r = client.get("/contacts/sync")
    assert r.status_code == 200
    assert [c["id"] for c in r.json()] == ["k-1", "k-2"]
    assert {c["id"] for c in client.get("/contacts").json()} == {"k-1", "k-2"}


def test_sync_falls_back_to_store_when_api_down():
    client = _client(FakeApiClient(error=UpstreamUnavailable("api down")))
    contact_id = client.post("/contacts", json=ALICE).json()["id"]

    r = client.get("/contacts/sync")
    assert r.status_code == 200
    assert [c["id"] for c in r.json()] == [contact_id]


def test_sync_is_503_when_api_down_and_store_empty():
    client = _client(FakeApiClient(error=UpstreamUnavailable("api down")))
    r = client.get("/contacts/sync")
    assert r.status_code == 503
    assert r.json()["status"] == 503


def _bad_total_count_client():
    return HttpContactsClient(
        "https://api.example.com",
        "token",
        transport=httpx.MockTransport(
            lambda request: httpx.Response(200, json=[], headers={"Total-Count": "lots"})
        ),
    )


def test_sync_with_malformed_total_count_is_503_not_400():
    r = _client(_bad_total_count_client()).get("/contacts/sync")
    assert r.status_code == 503
    assert r.json()["status"] == 503


def test_sync_with_malformed_total_count_serves_stored_contacts():
    client = _client(_bad_total_count_client())
    contact_id = client.post("/contacts", json=ALICE).json()["id"]

    r = client.get("/contacts/sync")
    assert r.status_code == 200
    assert [c["id"] for c in r.json()] == [contact_id]


def test_lazy_services_are_built_once_under_concurrent_requests(monkeypatch):
    from api import main as api_main

    built = []
    gate = threading.Barrier(8)

    def fake_build(settings):
        built.append(settings)
        time.sleep(0.05)
        return object()

    monkeypatch.setattr(api_main, "load_settings", lambda: Settings.from_dict({}))
    monkeypatch.setattr(api_main, "build_services", fake_build)
    app = create_app()
    request = SimpleNamespace(app=app)
    results = []

    def first_request():
        gate.wait()
        results.append(api_main.get_services(request))

    threads = [threading.Thread(target=first_request) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert len(built) == 1
    assert len(results) == 8
    assert all(r is results[0] for r in results)
