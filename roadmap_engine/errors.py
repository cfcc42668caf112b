"""
Typed exceptions raised by the Roadmap Engine.

Only roadmap generation raises; scorers, filters and analytics degrade to
defaults and report problems through ``ValidationResult`` values.
"""

from typing import Optional, Type


class RoadmapEngineError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(RoadmapEngineError):
    """Raised before any upstream call when credentials or settings are missing."""


class ParseError(RoadmapEngineError):
    """Raised when model output does not contain a parseable JSON object.

    Attributes:
        text: The raw text that failed to parse (truncated).
    """

    def __init__(self, message: str, text: str = "") -> None:
        self.text = text[:500]
        super().__init__(message)


# ---------------------------------------------------------------------------
# Upstream status errors
# ---------------------------------------------------------------------------


class UpstreamError(RoadmapEngineError):
    """An AI collaborator answered with a non-success status.

    Attributes:
        status: One of ``'invalid_key'``, ``'quota_exceeded'``,
                ``'rate_limit'``, ``'service_unavailable'``, ``'api_error'``.
        status_code: The HTTP status reported by the collaborator.
        original: The underlying exception, if any.
    """

    status = "api_error"

    def __init__(
        self,
        message: str = "",
        status_code: Optional[int] = None,
        original: Optional[Exception] = None,
    ) -> None:
        self.status_code = status_code
        self.original = original
        super().__init__(
            f"status={self.status} code={status_code}: {message or original}"
        )


class InvalidCredentialsError(UpstreamError):
    status = "invalid_key"


class QuotaExceededError(UpstreamError):
    status = "quota_exceeded"


class RateLimitedError(UpstreamError):
    status = "rate_limit"


class ServiceUnavailableError(UpstreamError):
    status = "service_unavailable"


_STATUS_MAP = {
    401: InvalidCredentialsError,
    402: QuotaExceededError,
    429: RateLimitedError,
    500: ServiceUnavailableError,
    502: ServiceUnavailableError,
    503: ServiceUnavailableError,
    504: ServiceUnavailableError,
}


def classify_status(status_code: int) -> Type[UpstreamError]:
    """Map an HTTP status code to the matching ``UpstreamError`` subclass."""
    if status_code in _STATUS_MAP:
        return _STATUS_MAP[status_code]
    if 500 <= status_code < 600:
        return ServiceUnavailableError
    return UpstreamError
