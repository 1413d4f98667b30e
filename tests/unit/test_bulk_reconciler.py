"""Tests for bulk/reconciler.py — merging success and failure result sets."""
from __future__ import annotations

from typing import Any

import httpx
from structlog.testing import capture_logs

from sfbulk.bulk.jobs import BulkJobClient
from sfbulk.bulk.reconciler import ResultReconciler
from sfbulk.connectors.salesforce import SalesforceConnector
from sfbulk.core.types import IngestJob

INGEST = "/services/data/v58.0/jobs/ingest/"
JOB_ID = "750xx0000000001"

SUCCESS_CSV = (
    '"sf__Id","sf__Created",Name\r\n'
    '"001xx01","true","Acme"\r\n'
    '"001xx02","true","Globex"\r\n'
)
FAILED_CSV = (
    '"sf__Id","sf__Error",Name\r\n'
    '"","REQUIRED_FIELD_MISSING:Required fields are missing: [Name]:Name --",""\r\n'
)


def _csv(text: str) -> httpx.Response:
    return httpx.Response(200, text=text, headers={"content-type": "text/csv"})


def _routes(org: Any, success: str, failed: str) -> None:
    org.add("GET", f"{INGEST}{JOB_ID}/successfulResults/", _csv(success))
    org.add("GET", f"{INGEST}{JOB_ID}/failedResults/", _csv(failed))


async def test_successes_then_failures(connector: SalesforceConnector, org: Any) -> None:
    _routes(org, SUCCESS_CSV, FAILED_CSV)
    job = IngestJob(id=JOB_ID, state="JobComplete", numberRecordsProcessed=3)

    outcomes = await ResultReconciler(BulkJobClient(connector)).reconcile(job)

    assert len(outcomes) == 3
    assert [o.success for o in outcomes] == [True, True, False]
    assert outcomes[0].fields["sf__Id"] == "001xx01"
    assert outcomes[1].fields["Name"] == "Globex"
    assert outcomes[2].fields["sf__Error"].startswith("REQUIRED_FIELD_MISSING")
    assert outcomes[2].to_json()["success"] is False


async def test_fetches_successes_before_failures(connector: SalesforceConnector, org: Any) -> None:
    _routes(org, SUCCESS_CSV, FAILED_CSV)
    await ResultReconciler(BulkJobClient(connector)).reconcile(IngestJob(id=JOB_ID, state="JobComplete"))

    paths = [r.url.path for r in org.requests]
    assert paths == [f"{INGEST}{JOB_ID}/successfulResults/", f"{INGEST}{JOB_ID}/failedResults/"]


async def test_empty_result_sets_yield_no_outcomes(connector: SalesforceConnector, org: Any) -> None:
    org.add("GET", f"{INGEST}{JOB_ID}/successfulResults/", httpx.Response(200, content=b""))
    org.add("GET", f"{INGEST}{JOB_ID}/failedResults/", _csv('"sf__Id","sf__Error"\r\n'))

    outcomes = await ResultReconciler(BulkJobClient(connector)).reconcile(
        IngestJob(id=JOB_ID, state="Aborted")
    )
    assert outcomes == []


async def test_count_mismatch_is_logged_not_raised(connector: SalesforceConnector, org: Any) -> None:
    _routes(org, SUCCESS_CSV, '"sf__Id","sf__Error"\r\n')
    job = IngestJob(id=JOB_ID, state="JobComplete", numberRecordsProcessed=3)

    with capture_logs() as logs:
        outcomes = await ResultReconciler(BulkJobClient(connector)).reconcile(job)

    assert len(outcomes) == 2
    mismatch = [e for e in logs if e["event"] == "bulk.outcome_count_mismatch"]
    assert mismatch and mismatch[0]["expected"] == 3 and mismatch[0]["received"] == 2


async def test_values_with_commas_survive(connector: SalesforceConnector, org: Any) -> None:
    _routes(org, '"sf__Id",Name\r\n"001","Acme, Inc"\r\n', "")
    outcomes = await ResultReconciler(BulkJobClient(connector)).reconcile(
        IngestJob(id=JOB_ID, state="JobComplete")
    )
    assert outcomes[0].fields == {"sf__Id": "001", "Name": "Acme, Inc"}


async def test_oversize_rejected_value_stays_in_band(
    connector: SalesforceConnector, org: Any
) -> None:
    long_value = "y" * 131_073
    failed = (
        '"sf__Id","sf__Error",Description\r\n'
        f'"","STRING_TOO_LONG:Description: data value too large","{long_value}"\r\n'
    )
    _routes(org, '"sf__Id","sf__Created"\r\n', failed)
    job = IngestJob(id=JOB_ID, state="JobComplete", numberRecordsProcessed=1)

    outcomes = await ResultReconciler(BulkJobClient(connector)).reconcile(job)

    assert len(outcomes) == 1
    assert outcomes[0].success is False
    assert outcomes[0].fields["sf__Error"].startswith("STRING_TOO_LONG")
    assert outcomes[0].fields["Description"] == long_value
