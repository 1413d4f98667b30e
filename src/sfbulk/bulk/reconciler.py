"""Result reconciler — turns a finished job's result sets into outcomes."""

from __future__ import annotations

import structlog

from sfbulk.bulk import csv_codec
from sfbulk.bulk.jobs import BulkJobClient
from sfbulk.core.types import IngestJob, Outcome

logger = structlog.get_logger(__name__)


class ResultReconciler:
    """Fetches ``successfulResults`` then ``failedResults`` and tags each row.

    Successes come first, failures after, each in the order Salesforce
    returned them. Rows are not re-sorted into submission order; callers
    that need correlation should include their own key field in the
    uploaded records, which Salesforce echoes back.
    """

    def __init__(self, jobs: BulkJobClient, *, quote_aware: bool = True) -> None:
        self._jobs = jobs
        self._quote_aware = quote_aware

    async def reconcile(self, job: IngestJob) -> list[Outcome]:
        succeeded = csv_codec.decode(
            await self._jobs.get_successful_results(job.id),
            quote_aware=self._quote_aware,
        )
        failed = csv_codec.decode(
            await self._jobs.get_failed_results(job.id),
            quote_aware=self._quote_aware,
        )

        outcomes = [Outcome(success=True, fields=row) for row in succeeded]
        outcomes.extend(Outcome(success=False, fields=row) for row in failed)

        logger.info(
            "bulk.results_fetched",
            job_id=job.id,
            state=job.state,
            succeeded=len(succeeded),
            failed=len(failed),
        )
        expected = job.number_records_processed
        if job.is_complete and expected is not None and expected != len(outcomes):
            logger.warning(
                "bulk.outcome_count_mismatch",
                job_id=job.id,
                expected=expected,
                received=len(outcomes),
            )
        return outcomes
