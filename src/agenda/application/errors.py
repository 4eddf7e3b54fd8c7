"""Error kinds raised by ports and use cases. Adapters translate driver errors into these."""


class AgendaError(Exception):
    """Base class for every error the agenda raises on purpose."""


class NotFound(AgendaError):
    def __init__(self, contact_id: str) -> None:
        super().__init__(f"Contact not found: {contact_id}")
        self.contact_id = contact_id


class Conflict(AgendaError):
    def __init__(self, contact_id: str) -> None:
        super().__init__(f"Contact already exists: {contact_id}")
        self.contact_id = contact_id


class UpstreamUnavailable(AgendaError):
    """A dependency (store or external API) could not serve the call."""

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class StoreUnavailable(UpstreamUnavailable):
    """The contact store could not be reached."""


class CircuitOpen(UpstreamUnavailable):
    """The circuit breaker rejected the call without attempting it."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Circuit '{name}' is open", retryable=False)
        self.name = name


class CacheUnavailable(AgendaError):
    """The cache backend failed. Callers degrade to the store."""


class ServiceUnavailable(AgendaError):
    """Neither the external API nor the stored fallback can answer."""
