from __future__ import annotations

import os
from typing import IO, Any, Literal

from pydantic import BaseModel, Field

from sfbulk.resilience.retry import RetryPolicy
from sfbulk.utils.logging import configure_logging

DEFAULT_API_VERSION = "v58.0"


class SalesforceConfig(BaseModel):
    """Connection settings for one Salesforce org.

    The access token is obtained by the host (OAuth2 refresh or JWT bearer
    flow); this package only attaches it.
    """

    instance_url: str | None = None
    access_token: str | None = None
    api_version: str = Field(default=DEFAULT_API_VERSION, pattern=r"^v\d+\.\d+$")
    timeout: float = Field(default=30.0, gt=0, le=600)
    extra_headers: dict[str, str] = Field(default_factory=dict)
    retry_policy: RetryPolicy | None = None
    """Optional retry policy for transient transport failures."""
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @classmethod
    def from_env(cls) -> SalesforceConfig:
        """Create a :class:`SalesforceConfig` from ``SALESFORCE_*`` environment variables.

        Reads the following env vars (all optional):

        * ``SALESFORCE_INSTANCE_URL`` → ``instance_url``
        * ``SALESFORCE_ACCESS_TOKEN`` → ``access_token``
        * ``SALESFORCE_API_VERSION`` → ``api_version`` (e.g. ``v58.0``)
        * ``SALESFORCE_TIMEOUT`` → ``timeout`` (float seconds)
        * ``SALESFORCE_LOG_LEVEL`` → ``log_level``

        Any variable that is not set or is empty is left at its default value.
        """
        kwargs: dict[str, Any] = {}

        instance_url = os.environ.get("SALESFORCE_INSTANCE_URL")
        if instance_url:
            kwargs["instance_url"] = instance_url.rstrip("/")

        access_token = os.environ.get("SALESFORCE_ACCESS_TOKEN")
        if access_token:
            kwargs["access_token"] = access_token

        api_version = os.environ.get("SALESFORCE_API_VERSION")
        if api_version:
            kwargs["api_version"] = api_version

        timeout_str = os.environ.get("SALESFORCE_TIMEOUT")
        if timeout_str:
            kwargs["timeout"] = float(timeout_str)

        log_level = os.environ.get("SALESFORCE_LOG_LEVEL")
        if log_level:
            kwargs["log_level"] = log_level

        return cls(**kwargs)

    def configure_logging(self, json: bool = True, stream: IO[str] | None = None) -> None:
        """Set up structlog output at this config's ``log_level``."""
        configure_logging(self.log_level, json=json, stream=stream)


class PollConfig(BaseModel):
    interval: float = Field(default=2.0, ge=0.0)
    """Seconds to wait between status checks."""
    timeout: float | None = Field(default=3600.0, gt=0)
    """Overall deadline in seconds; ``None`` polls until a terminal state."""
    max_attempts: int | None = Field(default=None, ge=1)


class BulkIngestOptions(BaseModel):
    poll: PollConfig = Field(default_factory=PollConfig)
    fail_on_job_failure: bool = True
    """Raise ``BulkJobError`` when a job ends Failed/Aborted/Not Processed."""
