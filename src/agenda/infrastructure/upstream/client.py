"""
HTTP client for the external contacts API (Kenect Labs).

GET {host}/api/v1/contacts?page=&pageSize= with a bearer token. The response
body is a JSON list of contacts; the `Total-Count` header carries the number
of contacts across all pages.
"""

import logging

import httpx

from agenda.application.dto import HEADER_TOTAL_COUNT, ContactPage
from agenda.application.errors import UpstreamUnavailable
from agenda.domain import METHOD_EMAIL, SOURCE_KENECT_LABS, Contact, ContactMethod
from agenda.domain.entities import utcnow
from agenda.domain.serialization import iso_to_datetime

logger = logging.getLogger(__name__)

CONTACTS_PATH = "/api/v1/contacts"
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def contact_from_api(item: dict) -> Contact:
    """
    Map one API record to a Contact. Records without an email or a name are
    kept as they are; only a record that is not an object or has no id raises
    (TypeError, KeyError or ValueError).
    """
    if not isinstance(item, dict):
        raise TypeError(f"Expected a contact object, got {type(item).__name__}")
    if item.get("id") is None:
        raise KeyError("id")
    email = (item.get("email") or "").strip().lower()
    created_raw = item.get("createdAt")
    updated_raw = item.get("updatedAt")
    created_at = iso_to_datetime(created_raw) if created_raw else utcnow()
    return Contact(
        id=str(item["id"]),
        name=item.get("name") or "",
        methods=(ContactMethod(kind=METHOD_EMAIL, value=email),) if email else (),
        source=item.get("source") or SOURCE_KENECT_LABS,
        created_at=created_at,
        updated_at=iso_to_datetime(updated_raw) if updated_raw else created_at,
    )


def parse_total_count(headers: httpx.Headers) -> int | None:
    """The `Total-Count` header as a non-negative int, None when absent. Raises ValueError."""
    raw = headers.get(HEADER_TOTAL_COUNT)
    if raw is None:
        return None
    total = int(raw.strip())
    if total < 0:
        raise ValueError(f"negative total count {total}")
    return total


class HttpContactsClient:
    """Implements ContactsApiClient over httpx. Every failure surfaces as UpstreamUnavailable."""

    def __init__(
        self,
        host: str,
        token: str,
        *,
        timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=host.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def get_contacts(self, page: int, page_size: int) -> ContactPage:
        logger.debug("Fetching page %s with pageSize %s from external API", page, page_size)
        try:
            response = self._client.get(
                CONTACTS_PATH, params={"page": page, "pageSize": page_size}
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Contacts API request failed: {e}") from e

        if response.status_code >= 400:
            raise UpstreamUnavailable(
                f"Contacts API returned HTTP {response.status_code}",
                retryable=response.status_code in RETRYABLE_STATUS_CODES,
            )
        try:
            items = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("Contacts API returned invalid JSON") from e
        if not isinstance(items, list):
            raise UpstreamUnavailable("Contacts API returned an unexpected body", retryable=False)

        try:
            total = parse_total_count(response.headers)
        except ValueError as e:
            raise UpstreamUnavailable(
                f"Contacts API returned an invalid Total-Count header: {e}", retryable=False
            ) from e

        contacts = []
        skipped = 0
        for item in items:
            try:
                contacts.append(contact_from_api(item))
            except (KeyError, TypeError, ValueError) as e:
                skipped += 1
                record_id = item.get("id") if isinstance(item, dict) else item
                logger.warning("Skipping unusable contact record %r: %s", record_id, e)
        if skipped:
            logger.warning("Skipped %d of %d records on page %s", skipped, len(items), page)

        page_result = ContactPage.from_headers(contacts, response.headers, skipped=skipped)
        if total is not None:
            page_result.headers[HEADER_TOTAL_COUNT] = str(total)
        return page_result
