"""Domain layer: entities and value objects. No dependencies on outer layers."""

from agenda.domain.entities import (
    METHOD_EMAIL,
    METHOD_PHONE,
    SOURCE_KENECT_LABS,
    SOURCE_LOCAL,
    Contact,
    ContactMethod,
)
from agenda.domain.serialization import contact_from_dict, contact_to_dict

__all__ = [
    "METHOD_EMAIL",
    "METHOD_PHONE",
    "SOURCE_KENECT_LABS",
    "SOURCE_LOCAL",
    "Contact",
    "ContactMethod",
    "contact_from_dict",
    "contact_to_dict",
]
