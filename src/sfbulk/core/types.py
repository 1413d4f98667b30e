from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from sfbulk.core.constants import TERMINAL_JOB_STATES, JobState

Record = dict[str, Any]
"""One flat row of field name to scalar value, as sent to or read from a job."""


class IngestJob(BaseModel):
    """A Bulk API v2 ingest job as reported by ``/jobs/ingest/{id}``.

    Salesforce returns camelCase keys; they are accepted by alias and any
    fields not modelled here (``apiVersion``, ``createdById``...) are kept
    as extras so nothing the org reports is lost.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    object: str | None = None
    operation: str | None = None
    external_id_field_name: str | None = Field(default=None, alias="externalIdFieldName")
    content_type: str | None = Field(default=None, alias="contentType")
    line_ending: str | None = Field(default=None, alias="lineEnding")
    state: str = JobState.OPEN
    number_records_processed: int | None = Field(
        default=None, alias="numberRecordsProcessed"
    )
    number_records_failed: int | None = Field(default=None, alias="numberRecordsFailed")
    error_message: str | None = Field(default=None, alias="errorMessage")

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_JOB_STATES

    @property
    def is_complete(self) -> bool:
        return self.state == JobState.JOB_COMPLETE


class Outcome(BaseModel):
    """One decoded result row, tagged with the result set it came from."""

    success: bool
    fields: dict[str, str | None] = Field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        """Flatten to the row the node emits: result columns plus ``success``."""
        data: dict[str, Any] = dict(self.fields)
        data["success"] = self.success
        return data


class BulkIngestResult(BaseModel):
    job: IngestJob
    outcomes: list[Outcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> list[Outcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> list[Outcome]:
        return [o for o in self.outcomes if not o.success]


class ApexExecutionResult(BaseModel):
    """Parsed ``executeAnonymous`` SOAP response."""

    compiled: bool
    success: bool
    line: int = -1
    column: int = -1
    compile_problem: str | None = None
    exception_message: str | None = None
    exception_stack_trace: str | None = None
    debug_log: str | None = None
