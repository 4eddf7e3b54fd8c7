"""
FastAPI backend: REST API for the contacts agenda.
Run with uvicorn: uvicorn api.main:app --reload
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root (when run from repo root or from Docker)
for path in (
    Path(__file__).resolve().parent.parent.parent / ".env",
    Path.cwd() / ".env",
):
    if path.exists():
        load_dotenv(path)
        break

import threading
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from neo4j import GraphDatabase
from pydantic import BaseModel

from agenda.application import (
    CachedContactAccessor,
    Conflict,
    ContactChanges,
    ContactDraft,
    ContactService,
    ContactSyncService,
    MethodData,
    NotFound,
    ServiceUnavailable,
    UpstreamUnavailable,
)
from agenda.config import CACHE_REDIS, STORE_NEO4J, Settings, load_settings
from agenda.domain import Contact
from agenda.infrastructure import (
    HttpContactsClient,
    InMemoryContactCache,
    InMemoryContactRepository,
    Neo4jContactRepository,
    RedisContactCache,
    ResiliencePolicy,
    ensure_contact_constraint,
    make_method_normalizer,
)
from agenda.infrastructure.cache import create_redis_client

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
)
logger = logging.getLogger(__name__)


# --- wiring ---


@dataclass
class Services:
    contacts: ContactService
    sync: ContactSyncService
    accessor: CachedContactAccessor
    policies: list[ResiliencePolicy]
    closers: list[Callable[[], None]] = field(default_factory=list)

    def close(self) -> None:
        for close in self.closers:
            try:
                close()
            except Exception:
                logger.exception("Error while releasing a resource")


def _get_driver(settings: Settings):
    return GraphDatabase.driver(
        settings.neo4j_uri, auth=(settings.neo4j_user, settings.neo4j_password)
    )


def build_services(
    settings: Settings,
    *,
    api_client=None,
    repository=None,
    cache=None,
    policy_kwargs: dict | None = None,
) -> Services:
    """Compose the application. Keyword overrides replace the adapter settings would pick."""
    logging.getLogger().setLevel(settings.log_level)
    policy_kwargs = policy_kwargs or {}
    closers: list[Callable[[], None]] = []
    store_policy = ResiliencePolicy.from_config("store", settings.store_resilience, **policy_kwargs)
    upstream_policy = ResiliencePolicy.from_config(
        "upstream", settings.upstream_resilience, **policy_kwargs
    )

    if repository is None:
        if settings.store_backend == STORE_NEO4J:
            driver = _get_driver(settings)
            closers.append(driver.close)
            ensure_contact_constraint(driver)
            repository = Neo4jContactRepository(driver, timeout=store_policy.call_timeout)
        else:
            repository = InMemoryContactRepository()

    if cache is None:
        if settings.cache_backend == CACHE_REDIS:
            client = create_redis_client(settings.redis_url)
            closers.append(client.close)
            cache = RedisContactCache(client)
        else:
            cache = InMemoryContactCache()

    if api_client is None:
        api_client = HttpContactsClient(
            settings.api_host,
            settings.api_token,
            timeout=upstream_policy.call_timeout,
        )
        closers.append(api_client.close)

    accessor = CachedContactAccessor(repository, cache, store_policy, ttl=settings.cache_ttl)
    contacts = ContactService(
        repository,
        accessor,
        store_policy,
        normalize_method=make_method_normalizer(settings.phone_default_region),
    )
    sync = ContactSyncService(
        api_client,
        repository,
        upstream_policy=upstream_policy,
        store_policy=store_policy,
        cache=cache,
        default_page_size=settings.default_page_size,
        page_ttl=settings.cache_ttl,
    )
    logger.info(
        "Services ready: store=%s cache=%s api=%s",
        settings.store_backend,
        settings.cache_backend,
        settings.api_host,
    )
    return Services(
        contacts=contacts,
        sync=sync,
        accessor=accessor,
        policies=[store_policy, upstream_policy],
        closers=closers,
    )


def get_services(request: Request) -> Services:
    """Services of the app, built from settings on first use. Built once even under concurrent first requests."""
    app = request.app
    if getattr(app.state, "services", None) is None:
        with app.state.services_lock:
            if app.state.services is None:
                app.state.services = build_services(load_settings())
    return app.state.services


# --- REST models ---


class MethodBody(BaseModel):
    kind: str
    value: str


class CreateContactBody(BaseModel):
    name: str
    methods: list[MethodBody]
    id: str | None = None


class UpdateContactBody(BaseModel):
    name: str | None = None
    methods: list[MethodBody] | None = None


class ContactItem(BaseModel):
    id: str
    name: str
    methods: list[MethodBody]
    source: str
    created_at: str
    updated_at: str


class ErrorResponse(BaseModel):
    status: int
    message: str
    timestamp: str
    path: str


def _to_item(contact: Contact) -> ContactItem:
    return ContactItem(
        id=contact.id,
        name=contact.name,
        methods=[MethodBody(kind=m.kind, value=m.value) for m in contact.methods],
        source=contact.source,
        created_at=contact.created_at.isoformat(),
        updated_at=contact.updated_at.isoformat(),
    )


def _methods(body: list[MethodBody]) -> list[MethodData]:
    return [MethodData(kind=m.kind, value=m.value) for m in body]


def _error(request: Request, status: int, message: str) -> JSONResponse:
    payload = ErrorResponse(
        status=status,
        message=message,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
    )
    return JSONResponse(content=payload.model_dump(), status_code=status)


# --- app ---


def create_app(services: Services | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            current = getattr(app.state, "services", None)
            if current is not None:
                current.close()

    app = FastAPI(title="Contacts Agenda API", lifespan=lifespan)
    app.state.services = services
    app.state.services_lock = threading.Lock()

    @app.exception_handler(ValueError)
    async def handle_invalid(request: Request, exc: ValueError):
        return _error(request, 400, str(exc))

    @app.exception_handler(NotFound)
    async def handle_not_found(request: Request, exc: NotFound):
        return _error(request, 404, str(exc))

    @app.exception_handler(Conflict)
    async def handle_conflict(request: Request, exc: Conflict):
        return _error(request, 409, str(exc))

    @app.exception_handler(UpstreamUnavailable)
    async def handle_upstream_unavailable(request: Request, exc: UpstreamUnavailable):
        logger.error("Upstream unavailable: %s", exc)
        return _error(request, 503, str(exc))

    @app.exception_handler(ServiceUnavailable)
    async def handle_service_unavailable(request: Request, exc: ServiceUnavailable):
        logger.error("Service unavailable: %s", exc)
        return _error(request, 503, str(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error("Unexpected error occurred", exc_info=exc)
        return _error(request, 500, "An unexpected error occurred")

    # --- REST: health ---

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/health/circuits")
    def circuits(services: Services = Depends(get_services)):
        return {
            "circuits": [p.snapshot().to_dict() for p in services.policies],
            "cache": services.accessor.stats(),
        }

    # --- REST: contacts ---

    @app.post("/contacts", status_code=201, response_model=ContactItem)
    def create_contact(body: CreateContactBody, services: Services = Depends(get_services)):
        contact = services.contacts.create_contact(
            ContactDraft(name=body.name, methods=_methods(body.methods), id=body.id)
        )
        return _to_item(contact)

    @app.get("/contacts", response_model=list[ContactItem])
    def list_contacts(services: Services = Depends(get_services)):
        return [_to_item(c) for c in services.contacts.list_contacts()]

    @app.get("/contacts/sync", response_model=list[ContactItem])
    def sync_contacts(services: Services = Depends(get_services)):
        """All contacts from the external API; the stored snapshot while it is unavailable."""
        return [_to_item(c) for c in services.sync.get_all_contacts()]

    @app.get("/contacts/{contact_id}", response_model=ContactItem)
    def get_contact(contact_id: str, services: Services = Depends(get_services)):
        return _to_item(services.contacts.get_contact(contact_id))

    @app.put("/contacts/{contact_id}", response_model=ContactItem)
    def update_contact(
        contact_id: str,
        body: UpdateContactBody,
        services: Services = Depends(get_services),
    ):
        changes = ContactChanges(
            name=body.name,
            methods=None if body.methods is None else _methods(body.methods),
        )
        return _to_item(services.contacts.update_contact(contact_id, changes))

    @app.delete("/contacts/{contact_id}", status_code=204)
    def delete_contact(contact_id: str, services: Services = Depends(get_services)):
        services.contacts.delete_contact(contact_id)
        return Response(status_code=204)

    return app


app = create_app()
