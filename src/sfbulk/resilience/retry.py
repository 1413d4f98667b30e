"""Retry policy with exponential backoff and jitter for transport calls."""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from pydantic import BaseModel, Field

from sfbulk.core.exceptions import SalesforceError, TransportError

logger = structlog.get_logger(__name__)

_T = TypeVar("_T")


class RetryPolicy(BaseModel):
    """Configurable retry policy with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (0 = no retries).
        backoff_base: Base delay in seconds for exponential backoff.
        backoff_max: Maximum delay in seconds (caps the exponential growth).
        jitter: If ``True``, add random jitter to the backoff delay.
        retryable_exceptions: Tuple of exception types that are eligible for retry.
    """

    max_retries: int = Field(default=3, ge=0, le=50)
    backoff_base: float = Field(default=1.0, ge=0.0)
    backoff_max: float = Field(default=60.0, ge=0.0)
    jitter: bool = True
    retryable_exceptions: tuple[type[Exception], ...] = (TransportError,)

    model_config = {"arbitrary_types_allowed": True}

    def _is_retryable(self, exc: Exception) -> bool:
        """Determine whether an exception should be retried.

        An explicit ``is_retryable`` override on the exception's own class
        (e.g. ``AuthenticationError`` -> ``False``, ``ServerError`` ->
        ``True``) wins; otherwise the exception is retried when it is an
        instance of one of ``retryable_exceptions``.
        """
        if isinstance(exc, SalesforceError):
            for klass in type(exc).__mro__:
                if klass is SalesforceError:
                    break
                if "is_retryable" in klass.__dict__:
                    return bool(exc.is_retryable)
            # Plain APIError (4xx other than 401/403/429) is a caller error.
            if exc.status_code is not None and exc.status_code < 500:
                return False

        return isinstance(exc, self.retryable_exceptions)

    def _compute_delay(self, attempt: int, exc: Exception | None = None) -> float:
        """Compute the backoff delay for the given attempt (0-indexed).

        ``backoff_base * 2^attempt`` capped at ``backoff_max``, uniformly
        jittered when enabled.  A server-supplied ``retry_after`` is used
        as a floor.
        """
        delay: float = min(self.backoff_base * (2 ** attempt), self.backoff_max)
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        retry_after = getattr(exc, "retry_after", None)
        if retry_after is not None:
            delay = max(delay, min(float(retry_after), self.backoff_max))
        return delay

    async def execute(
        self,
        fn: Callable[..., Awaitable[_T]],
        *args: Any,
        **kwargs: Any,
    ) -> _T:
        """Execute *fn* with retry logic.

        Calls ``await fn(*args, **kwargs)`` and retries on retryable
        exceptions up to ``max_retries`` times with exponential backoff.

        Raises:
            Exception: The last exception raised by *fn* if all retries are
                exhausted, or immediately if the exception is not retryable.
        """
        last_exc: Exception | None = None

        for attempt in range(1 + self.max_retries):
            try:
                return await fn(*args, **kwargs)
            except Exception as exc:
                last_exc = exc

                if not self._is_retryable(exc):
                    raise

                if attempt >= self.max_retries:
                    logger.warning(
                        "retry.exhausted",
                        attempts=attempt + 1,
                        error=str(exc),
                    )
                    raise

                delay = self._compute_delay(attempt, exc)
                logger.info(
                    "retry.attempt",
                    attempt=attempt + 1,
                    max_retries=self.max_retries,
                    delay=round(delay, 2),
                    error=str(exc),
                )
                await asyncio.sleep(delay)

        # Should never be reached, but satisfies the type checker.
        assert last_exc is not None  # noqa: S101
        raise last_exc
