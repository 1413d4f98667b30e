"""Bulk API v2 ingest job endpoints."""

from __future__ import annotations

from typing import Any

import structlog

from sfbulk.connectors.salesforce import SalesforceConnector
from sfbulk.core.constants import (
    CSV_CONTENT_TYPE,
    CSV_LINE_ENDING,
    BulkOperation,
    JobState,
    NodeOperation,
)
from sfbulk.core.types import IngestJob

logger = structlog.get_logger(__name__)

_INGEST_PATH = "/jobs/ingest/"

_OPERATION_MAP: dict[str, BulkOperation] = {
    NodeOperation.CREATE: BulkOperation.INSERT,
    NodeOperation.UPDATE: BulkOperation.UPDATE,
    NodeOperation.DELETE: BulkOperation.DELETE,
    NodeOperation.UPSERT: BulkOperation.UPSERT,
}


def to_bulk_operation(operation: str) -> BulkOperation:
    """Translate a node operation to the Bulk API vocabulary.

    Unknown operations map to ``"nooperation"``, which Salesforce rejects
    when the job is created.
    """
    return _OPERATION_MAP.get(operation, BulkOperation.NO_OPERATION)


class BulkJobClient:
    """Thin wrapper over the ``/jobs/ingest`` resource family.

    Each method is exactly one request. Failures propagate as raised by
    the connector; nothing is retried here.
    """

    def __init__(self, connector: SalesforceConnector) -> None:
        self._connector = connector

    async def create_job(
        self,
        sobject: str,
        operation: str,
        external_id_field_name: str | None = None,
    ) -> IngestJob:
        """Open a CSV ingest job for *sobject*.

        ``externalIdFieldName`` is only sent for upserts.
        """
        bulk_operation = to_bulk_operation(operation)
        body: dict[str, Any] = {
            "object": sobject,
            "contentType": CSV_CONTENT_TYPE,
            "operation": bulk_operation.value,
            "lineEnding": CSV_LINE_ENDING,
        }
        if bulk_operation == BulkOperation.UPSERT and external_id_field_name:
            body["externalIdFieldName"] = external_id_field_name

        # A retried POST could open a second job on the org.
        data = await self._connector.request("POST", _INGEST_PATH, json=body, retry=False)
        job = IngestJob.model_validate(data)
        logger.info(
            "bulk.job_created",
            job_id=job.id,
            sobject=sobject,
            operation=bulk_operation.value,
        )
        return job

    async def upload_batch(self, job_id: str, csv_payload: str) -> None:
        await self._connector.request(
            "PUT",
            f"{_INGEST_PATH}{job_id}/batches",
            content=csv_payload.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )
        logger.info("bulk.batch_uploaded", job_id=job_id, size=len(csv_payload))

    async def close_job(self, job_id: str) -> IngestJob:
        """Mark the upload complete so Salesforce queues the job."""
        data = await self._connector.request(
            "PATCH",
            f"{_INGEST_PATH}{job_id}/",
            json={"state": JobState.UPLOAD_COMPLETE.value},
        )
        job = IngestJob.model_validate(data)
        logger.info("bulk.job_closed", job_id=job_id, state=job.state)
        return job

    async def get_status(self, job_id: str) -> IngestJob:
        data = await self._connector.request("GET", f"{_INGEST_PATH}{job_id}/")
        return IngestJob.model_validate(data)

    async def get_successful_results(self, job_id: str) -> str:
        return await self._get_results(job_id, "successfulResults")

    async def get_failed_results(self, job_id: str) -> str:
        return await self._get_results(job_id, "failedResults")

    async def _get_results(self, job_id: str, result_set: str) -> str:
        body = await self._connector.request(
            "GET",
            f"{_INGEST_PATH}{job_id}/{result_set}/",
            headers={"Accept": "text/csv"},
        )
        return body if isinstance(body, str) else ""
