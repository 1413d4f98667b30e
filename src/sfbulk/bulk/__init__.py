"""Bulk API v2 ingest: CSV codec, job client, poller, reconciler, orchestrator."""

from __future__ import annotations

from sfbulk.bulk.jobs import BulkJobClient, to_bulk_operation
from sfbulk.bulk.orchestrator import BulkIngestOrchestrator, BulkItem, build_record
from sfbulk.bulk.poller import CompletionPoller
from sfbulk.bulk.reconciler import ResultReconciler

__all__ = [
    "BulkIngestOrchestrator",
    "BulkItem",
    "BulkJobClient",
    "CompletionPoller",
    "ResultReconciler",
    "build_record",
    "to_bulk_operation",
]
