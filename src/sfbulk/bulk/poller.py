"""Completion poller — waits for an ingest job to reach a terminal state."""

from __future__ import annotations

import asyncio
import time

import structlog

from sfbulk.bulk.jobs import BulkJobClient
from sfbulk.core.config import PollConfig
from sfbulk.core.exceptions import PollCancelledError, PollTimeoutError
from sfbulk.core.types import IngestJob

logger = structlog.get_logger(__name__)


class CompletionPoller:
    """Polls ``get_status`` on a fixed interval until the job is terminal.

    The first status check happens immediately; every later one is
    preceded by an ``asyncio.sleep`` of ``config.interval`` seconds, so the
    event loop stays free while Salesforce processes the job.

    Example::

        poller = CompletionPoller(jobs, PollConfig(interval=2.0, timeout=600))
        job = await poller.wait(job_id)
    """

    def __init__(self, jobs: BulkJobClient, config: PollConfig | None = None) -> None:
        self._jobs = jobs
        self._config = config or PollConfig()

    @property
    def config(self) -> PollConfig:
        return self._config

    async def wait(
        self, job_id: str, *, cancel: asyncio.Event | None = None
    ) -> IngestJob:
        """Return the first status snapshot whose state is terminal.

        Args:
            job_id: The ingest job to watch.
            cancel: When set, polling stops before the next status check.

        Raises:
            PollTimeoutError: ``timeout`` elapsed or ``max_attempts`` status
                checks returned non-terminal states.
            PollCancelledError: *cancel* was set.
        """
        started = time.monotonic()
        attempts = 0
        last_state: str | None = None

        while True:
            if cancel is not None and cancel.is_set():
                logger.warning("bulk.poll_cancelled", job_id=job_id, attempts=attempts)
                raise PollCancelledError(
                    f"Polling of job {job_id} was cancelled",
                    details={"job_id": job_id, "attempts": attempts, "state": last_state},
                )

            job = await self._jobs.get_status(job_id)
            attempts += 1
            if job.state != last_state:
                logger.info(
                    "bulk.poll_state",
                    job_id=job_id,
                    state=job.state,
                    previous=last_state,
                    attempt=attempts,
                )
                last_state = job.state

            if job.is_terminal:
                return job

            self._check_budget(job_id, attempts, time.monotonic() - started, job.state)
            await asyncio.sleep(self._config.interval)

    def _check_budget(self, job_id: str, attempts: int, elapsed: float, state: str) -> None:
        cfg = self._config
        exhausted = (cfg.max_attempts is not None and attempts >= cfg.max_attempts) or (
            cfg.timeout is not None and elapsed >= cfg.timeout
        )
        if not exhausted:
            return
        logger.error(
            "bulk.poll_timeout",
            job_id=job_id,
            attempts=attempts,
            elapsed=round(elapsed, 1),
            state=state,
        )
        raise PollTimeoutError(
            f"Job {job_id} still {state} after {attempts} status checks "
            f"({elapsed:.1f}s)",
            code="POLL_DEADLINE_EXCEEDED",
            details={"job_id": job_id, "attempts": attempts, "state": state},
        )
