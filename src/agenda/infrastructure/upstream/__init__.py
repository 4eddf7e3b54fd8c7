"""Client for the external contacts API."""

from agenda.infrastructure.upstream.client import HttpContactsClient, contact_from_api

__all__ = ["HttpContactsClient", "contact_from_api"]
