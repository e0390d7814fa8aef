"""
Service errors

Every failure the core can produce is a ServiceError subclass; the API maps
them to HTTP status codes in one place (see orbitwatch.main).
"""


class ServiceError(Exception):
    """Base exception for service errors."""

    status_code = 500

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ValidationError(ServiceError):
    """Bad request parameters."""

    status_code = 422


class UnknownSourceError(ServiceError):
    """A request named a source outside the fixed enumeration."""

    status_code = 404

    def __init__(self, source: str):
        super().__init__("api", f"Unknown source '{source}'", {"source": source})


class UpstreamFetchError(ServiceError):
    """External source unreachable or returned an unparsable payload."""

    status_code = 502


class PersistenceError(ServiceError):
    """Durable append or query failed."""

    status_code = 503


class RateLimitExceeded(ServiceError):
    """Global request rate exceeded."""

    status_code = 429
