"""Contact method normalization: phones to E.164, emails to lower case."""

import phonenumbers

from agenda.application.dto import MethodData
from agenda.domain import METHOD_EMAIL, METHOD_PHONE, ContactMethod


def normalize_phone(raw: str, default_region: str | None = None) -> str | None:
    """Parse and return E.164 form of the number, or None if invalid.

    Use default_region when the input has no leading + (e.g. "123 456 7890"
    with default_region "IT" for Italy). If the number already includes a
    country code, default_region is ignored.
    """
    if not raw or not str(raw).strip():
        return None
    raw = str(raw).strip()
    try:
        parsed = phonenumbers.parse(raw, default_region)
    except phonenumbers.NumberParseException:
        return None
    if not phonenumbers.is_valid_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def normalize_email(raw: str) -> str | None:
    """Lower-cased address, or None unless it has exactly one @ with text on both sides."""
    value = (raw or "").strip().lower()
    local, sep, domain = value.partition("@")
    if not sep or not local or not domain or "@" in domain or " " in value:
        return None
    return value


def make_method_normalizer(default_region: str | None = None):
    """Return a MethodData -> ContactMethod callable. Raises ValueError on invalid input."""

    def normalize_method(data: MethodData) -> ContactMethod:
        kind = (data.kind or "").strip().lower()
        if kind == METHOD_PHONE:
            value = normalize_phone(data.value, default_region=default_region)
            if value is None:
                raise ValueError(f"Invalid phone number: {data.value!r}")
        elif kind == METHOD_EMAIL:
            value = normalize_email(data.value)
            if value is None:
                raise ValueError(f"Invalid email address: {data.value!r}")
        else:
            raise ValueError(f"Unknown contact method kind: {data.kind!r}")
        return ContactMethod(kind=kind, value=value)

    return normalize_method
