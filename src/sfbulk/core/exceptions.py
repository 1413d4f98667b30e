from __future__ import annotations

from typing import Any


class SalesforceError(Exception):
    """Base exception for all sfbulk errors.

    Attributes:
        code: Optional machine-readable error code. For API errors this is
            the Salesforce ``errorCode`` (e.g. ``"INVALID_SESSION_ID"``).
        details: Arbitrary key/value context about the error.
        status_code: HTTP status code when the error originates from an API
            response (``None`` when not applicable).
        retry_after: Suggested delay in seconds before retrying the
            operation (``None`` when unknown or not applicable).
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def is_retryable(self) -> bool:
        """Whether the operation that raised this error can be retried."""
        return False


class ConfigurationError(SalesforceError): ...


class TransportError(SalesforceError): ...


class APIError(TransportError): ...


class ApexExecutionError(SalesforceError): ...


# ---------------------------------------------------------------------------
# Retryable / non-retryable specialisations
# ---------------------------------------------------------------------------


class RateLimitError(APIError):
    """Salesforce returned HTTP 429 (request limit exceeded).

    Always retryable.  ``retry_after`` is populated from the
    ``Retry-After`` header when present.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class AuthenticationError(APIError):
    """Authentication / authorisation failure (HTTP 401/403).

    Never retryable: an expired or revoked session must be refreshed by
    the host before calling again.
    """

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return False


class ServerError(APIError):
    """Salesforce returned a 5xx response."""

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class APITimeoutError(TransportError):
    """The org did not respond within the request deadline."""

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


class APIConnectionError(TransportError):
    """A transport-level connection failure (DNS, TCP, TLS)."""

    @property
    def is_retryable(self) -> bool:  # noqa: D102
        return True


# ---------------------------------------------------------------------------
# Bulk job lifecycle
# ---------------------------------------------------------------------------


class BulkJobError(SalesforceError):
    """An ingest job reached a terminal state other than ``JobComplete``."""


class PollTimeoutError(BulkJobError):
    """Status polling exceeded its deadline or attempt budget."""


class PollCancelledError(BulkJobError):
    """Status polling was aborted through its cancellation event."""
