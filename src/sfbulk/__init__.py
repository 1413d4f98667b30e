"""sfbulk — Salesforce Bulk API v2 ingest, SOQL search and anonymous Apex nodes."""

from sfbulk.__version__ import __version__

from sfbulk.apex.executor import ApexExecutor
from sfbulk.bulk.orchestrator import BulkIngestOrchestrator, BulkItem
from sfbulk.connectors.salesforce import SalesforceConnector
from sfbulk.core.config import BulkIngestOptions, PollConfig, SalesforceConfig
from sfbulk.core.constants import (
    TERMINAL_JOB_STATES,
    BulkOperation,
    JobState,
    NodeOperation,
    Resource,
)
from sfbulk.core.exceptions import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    ApexExecutionError,
    AuthenticationError,
    BulkJobError,
    ConfigurationError,
    PollCancelledError,
    PollTimeoutError,
    RateLimitError,
    SalesforceError,
    ServerError,
    TransportError,
)
from sfbulk.core.types import (
    ApexExecutionResult,
    BulkIngestResult,
    IngestJob,
    Outcome,
    Record,
)
from sfbulk.nodes.salesforce_bulk import NodeParameters, SalesforceBulkNode
from sfbulk.resilience.retry import RetryPolicy
from sfbulk.utils.logging import configure_logging

__all__ = [
    "__version__",
    # Nodes
    "SalesforceBulkNode",
    "NodeParameters",
    # Bulk ingest
    "BulkIngestOrchestrator",
    "BulkItem",
    "BulkIngestResult",
    "IngestJob",
    "Outcome",
    "Record",
    # Apex
    "ApexExecutor",
    "ApexExecutionResult",
    # Transport / config
    "SalesforceConnector",
    "SalesforceConfig",
    "PollConfig",
    "BulkIngestOptions",
    "RetryPolicy",
    "configure_logging",
    # Constants
    "JobState",
    "TERMINAL_JOB_STATES",
    "BulkOperation",
    "NodeOperation",
    "Resource",
    # Exceptions
    "SalesforceError",
    "ConfigurationError",
    "TransportError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "ServerError",
    "APIConnectionError",
    "APITimeoutError",
    "BulkJobError",
    "PollTimeoutError",
    "PollCancelledError",
    "ApexExecutionError",
]
