"""Tests for bulk/poller.py — waiting for a terminal job state."""
from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from sfbulk.bulk.poller import CompletionPoller
from sfbulk.core.config import PollConfig
from sfbulk.core.exceptions import BulkJobError, PollCancelledError, PollTimeoutError
from sfbulk.core.types import IngestJob


class _StatusSequence:
    """Stands in for BulkJobClient, replaying a fixed list of states."""

    def __init__(self, *states: str) -> None:
        self._states = list(states)
        self.calls = 0

    async def get_status(self, job_id: str) -> IngestJob:
        state = self._states[min(self.calls, len(self._states) - 1)]
        self.calls += 1
        return IngestJob(id=job_id, state=state)


async def test_polls_until_job_complete() -> None:
    jobs = _StatusSequence("Open", "InProgress", "InProgress", "JobComplete")
    poller = CompletionPoller(jobs, PollConfig(interval=2.0))  # type: ignore[arg-type]

    with patch("sfbulk.bulk.poller.asyncio.sleep", new_callable=AsyncMock) as sleep:
        job = await poller.wait("750xx1")

    assert job.state == "JobComplete"
    assert jobs.calls == 4
    assert sleep.await_count == 3
    sleep.assert_awaited_with(2.0)


async def test_already_terminal_does_not_sleep() -> None:
    jobs = _StatusSequence("JobComplete")
    poller = CompletionPoller(jobs)  # type: ignore[arg-type]

    with patch("sfbulk.bulk.poller.asyncio.sleep", new_callable=AsyncMock) as sleep:
        await poller.wait("750xx1")

    assert jobs.calls == 1
    sleep.assert_not_awaited()


@pytest.mark.parametrize("terminal", ["Failed", "Aborted", "Not Processed"])
async def test_stops_on_every_terminal_state(terminal: str) -> None:
    jobs = _StatusSequence("UploadComplete", terminal)
    poller = CompletionPoller(jobs)  # type: ignore[arg-type]

    with patch("sfbulk.bulk.poller.asyncio.sleep", new_callable=AsyncMock):
        job = await poller.wait("750xx1")

    assert job.state == terminal
    assert jobs.calls == 2


async def test_misspelled_failed_state_is_not_terminal() -> None:
    jobs = _StatusSequence("falied", "Failed")
    poller = CompletionPoller(jobs)  # type: ignore[arg-type]

    with patch("sfbulk.bulk.poller.asyncio.sleep", new_callable=AsyncMock):
        job = await poller.wait("750xx1")

    assert job.state == "Failed"
    assert jobs.calls == 2


async def test_max_attempts_raises_poll_timeout() -> None:
    jobs = _StatusSequence("InProgress")
    poller = CompletionPoller(jobs, PollConfig(max_attempts=5, timeout=None))  # type: ignore[arg-type]

    with patch("sfbulk.bulk.poller.asyncio.sleep", new_callable=AsyncMock):
        with pytest.raises(PollTimeoutError) as exc_info:
            await poller.wait("750xx1")

    assert jobs.calls == 5
    assert exc_info.value.code == "POLL_DEADLINE_EXCEEDED"
    assert exc_info.value.details["state"] == "InProgress"


async def test_deadline_raises_poll_timeout() -> None:
    jobs = _StatusSequence("InProgress")
    poller = CompletionPoller(jobs, PollConfig(interval=0.01, timeout=0.05))  # type: ignore[arg-type]

    with pytest.raises(PollTimeoutError):
        await poller.wait("750xx1")

    assert jobs.calls >= 2


async def test_poll_timeout_is_a_bulk_job_error() -> None:
    assert issubclass(PollTimeoutError, BulkJobError)


async def test_cancel_before_first_check() -> None:
    jobs = _StatusSequence("InProgress")
    cancel = asyncio.Event()
    cancel.set()

    with pytest.raises(PollCancelledError):
        await CompletionPoller(jobs).wait("750xx1", cancel=cancel)  # type: ignore[arg-type]

    assert jobs.calls == 0


async def test_cancel_between_checks() -> None:
    cancel = asyncio.Event()

    class _CancelAfterTwo(_StatusSequence):
        async def get_status(self, job_id: str) -> IngestJob:
            job = await super().get_status(job_id)
            if self.calls == 2:
                cancel.set()
            return job

    jobs = _CancelAfterTwo("InProgress")
    with patch("sfbulk.bulk.poller.asyncio.sleep", new_callable=AsyncMock):
        with pytest.raises(PollCancelledError) as exc_info:
            await CompletionPoller(jobs).wait("750xx1", cancel=cancel)  # type: ignore[arg-type]

    assert jobs.calls == 2
    assert exc_info.value.details["attempts"] == 2
