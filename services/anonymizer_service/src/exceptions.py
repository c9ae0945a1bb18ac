from typing import Any, Optional


class ServiceError(Exception):
    """Base for failures surfaced by the anonymizer service."""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        # Provider error body (parsed JSON or raw text sample), for diagnostics only
        self.payload = payload


class RetryableError(ServiceError):
    """Temporary: network timeout, 429/5xx from upstream, transient storage errors."""
    pass


class PermanentError(ServiceError):
    """Won’t improve with retry: bad input, missing configuration, 4xx from upstream."""
    pass
