from __future__ import annotations

from enum import StrEnum


class JobState(StrEnum):
    OPEN = "Open"
    UPLOAD_COMPLETE = "UploadComplete"
    IN_PROGRESS = "InProgress"
    JOB_COMPLETE = "JobComplete"
    FAILED = "Failed"
    ABORTED = "Aborted"
    NOT_PROCESSED = "Not Processed"


# States after which the job never changes again.
TERMINAL_JOB_STATES: frozenset[str] = frozenset(
    {
        JobState.JOB_COMPLETE,
        JobState.FAILED,
        JobState.ABORTED,
        JobState.NOT_PROCESSED,
    }
)


class BulkOperation(StrEnum):
    """Operation names understood by the Bulk API v2 ingest endpoint."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    UPSERT = "upsert"
    NO_OPERATION = "nooperation"


class NodeOperation(StrEnum):
    """Operation names exposed by the node to the workflow host."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UPSERT = "upsert"
    GET_ALL = "getAll"
    QUERY = "query"
    EXECUTE_APEX = "executeApex"


class Resource(StrEnum):
    CUSTOM_OBJECT = "customObject"
    SEARCH = "search"
    ANONYMOUS_APEX = "anonymousApexExecution"


BULK_WRITE_OPERATIONS: frozenset[str] = frozenset(
    {
        NodeOperation.CREATE,
        NodeOperation.UPDATE,
        NodeOperation.DELETE,
        NodeOperation.UPSERT,
    }
)

CSV_CONTENT_TYPE = "CSV"
CSV_LINE_ENDING = "CRLF"
