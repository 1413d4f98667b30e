"""Bulk ingest orchestrator — create, upload, close, poll, reconcile."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from sfbulk.bulk import csv_codec
from sfbulk.bulk.jobs import BulkJobClient
from sfbulk.bulk.poller import CompletionPoller
from sfbulk.bulk.reconciler import ResultReconciler
from sfbulk.connectors.salesforce import SalesforceConnector
from sfbulk.core.config import BulkIngestOptions
from sfbulk.core.constants import NodeOperation
from sfbulk.core.exceptions import BulkJobError, ConfigurationError
from sfbulk.core.types import BulkIngestResult, Record
from sfbulk.utils.logging import bind_job_context, clear_job_context

logger = structlog.get_logger(__name__)


class BulkItem(BaseModel):
    """Per-item values supplied by the workflow host.

    Attributes:
        record_id: Salesforce Id; the only field used for deletes.
        custom_fields: Field API name to value, copied into the record as-is.
        record_type_id: Optional ``RecordTypeId``.
        external_id_value: Value for the job's external id field (upserts).
    """

    model_config = ConfigDict(populate_by_name=True)

    record_id: str | None = Field(default=None, alias="recordId")
    custom_fields: dict[str, Any] = Field(default_factory=dict, alias="customFields")
    record_type_id: str | None = Field(default=None, alias="recordTypeId")
    external_id_value: str | None = Field(default=None, alias="externalIdValue")


def build_record(
    operation: str, item: BulkItem, external_id_field: str | None = None
) -> Record:
    """Build the CSV row for one item according to *operation*."""
    if operation == NodeOperation.DELETE:
        if not item.record_id:
            raise ConfigurationError("record_id is required for bulk delete")
        return {"Id": item.record_id}

    record: Record = {}
    if operation == NodeOperation.UPDATE:
        if item.record_id:
            record["Id"] = item.record_id
        elif not item.custom_fields.get("Id"):
            raise ConfigurationError("record_id is required for bulk update")
    record.update(item.custom_fields)
    if item.record_type_id:
        record["RecordTypeId"] = item.record_type_id
    if operation == NodeOperation.UPSERT and external_id_field:
        record[external_id_field] = item.external_id_value
    return record


class BulkIngestOrchestrator:
    """Runs one Bulk API v2 ingest job end to end.

    Steps run strictly in sequence and any transport error from create,
    upload or close aborts the whole batch. Per-record failures are not
    errors: they come back as ``Outcome(success=False)``.

    Example::

        async with SalesforceConnector(config) as sf:
            result = await BulkIngestOrchestrator(sf).run(
                "Account", "create", [BulkItem(custom_fields={"Name": "Acme"})]
            )
    """

    def __init__(
        self,
        connector: SalesforceConnector,
        options: BulkIngestOptions | None = None,
    ) -> None:
        self._options = options or BulkIngestOptions()
        self._jobs = BulkJobClient(connector)
        self._poller = CompletionPoller(self._jobs, self._options.poll)
        self._reconciler = ResultReconciler(self._jobs)

    async def run(
        self,
        sobject: str,
        operation: str,
        items: Sequence[BulkItem],
        *,
        external_id_field: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> BulkIngestResult:
        if not sobject:
            raise ConfigurationError("A target object is required for bulk ingest")
        if not items:
            raise ConfigurationError("Bulk ingest needs at least one item")
        if operation == NodeOperation.UPSERT and not external_id_field:
            raise ConfigurationError("external_id_field is required for bulk upsert")

        records = [build_record(operation, item, external_id_field) for item in items]
        return await self.ingest(
            sobject,
            operation,
            records,
            external_id_field=external_id_field,
            cancel=cancel,
        )

    async def ingest(
        self,
        sobject: str,
        operation: str,
        records: Sequence[Record],
        *,
        external_id_field: str | None = None,
        cancel: asyncio.Event | None = None,
    ) -> BulkIngestResult:
        """Load already-built *records* through a new ingest job."""
        job = await self._jobs.create_job(sobject, operation, external_id_field)
        bind_job_context(job.id, sobject)
        try:
            await self._jobs.upload_batch(job.id, csv_codec.encode(records))
            await self._jobs.close_job(job.id)
            final = await self._poller.wait(job.id, cancel=cancel)

            if not final.is_complete and self._options.fail_on_job_failure:
                logger.error(
                    "bulk.job_failed",
                    job_id=final.id,
                    state=final.state,
                    error_message=final.error_message,
                )
                raise BulkJobError(
                    f"Bulk job {final.id} ended in state {final.state}: "
                    f"{final.error_message or 'no error message'}",
                    code=final.state,
                    details={"job": final.model_dump(by_alias=True)},
                )

            outcomes = await self._reconciler.reconcile(final)
            logger.info(
                "bulk.ingest_finished",
                job_id=final.id,
                state=final.state,
                submitted=len(records),
                outcomes=len(outcomes),
            )
            return BulkIngestResult(job=final, outcomes=outcomes)
        finally:
            clear_job_context()
