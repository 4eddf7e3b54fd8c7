"""Contact <-> plain dict, used for cache snapshots and store records.

Dates are ISO 8601 strings in UTC.
"""

from datetime import datetime, timezone
from typing import Any

from agenda.domain.entities import Contact, ContactMethod


def datetime_to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def iso_to_datetime(s: str) -> datetime:
    dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def contact_to_dict(contact: Contact) -> dict[str, Any]:
    return {
        "id": contact.id,
        "name": contact.name,
        "methods": [{"kind": m.kind, "value": m.value} for m in contact.methods],
        "source": contact.source,
        "created_at": datetime_to_iso(contact.created_at),
        "updated_at": datetime_to_iso(contact.updated_at),
    }


def contact_from_dict(data: dict[str, Any]) -> Contact:
    return Contact(
        id=str(data["id"]),
        name=data["name"],
        methods=tuple(
            ContactMethod(kind=m["kind"], value=m["value"]) for m in data.get("methods") or []
        ),
        source=data["source"],
        created_at=iso_to_datetime(data["created_at"]),
        updated_at=iso_to_datetime(data["updated_at"]),
    )
