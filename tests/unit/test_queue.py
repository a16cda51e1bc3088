"""Unit tests for the submission queue retry policy"""

import uuid
import pytest
from unittest.mock import AsyncMock, patch
from trip_reports.infrastructure.queue import SubmissionDispatcher, SubmissionQueue, SubmissionTask


def _task() -> SubmissionTask:
    return SubmissionTask(report_id=uuid.uuid4(), snapshot={"order_id": 1}, environment="test")


async def test_success_completes_task():
    handler = AsyncMock(return_value=None)
    queue = SubmissionQueue(handler=handler, max_attempts=3, backoff_base=30.0)
    task = _task()

    assert await queue.process(task) is None
    assert task.attempts == 0
    handler.assert_awaited_once_with(task)


async def test_failure_schedules_exponential_backoff():
    """30s, 60s, 120s ..."""
    queue = SubmissionQueue(handler=AsyncMock(side_effect=RuntimeError("Connection timed out")), max_attempts=5, backoff_base=30.0)
    task = _task()
    with patch.object(queue, "_schedule_retry") as schedule:
        delays = [await queue.process(task) for _ in range(3)]

    assert delays == [30.0, 60.0, 120.0]
    assert task.attempts == 3
    schedule.assert_called_with(120.0, task)


async def test_retries_exhausted():
    queue = SubmissionQueue(handler=AsyncMock(side_effect=RuntimeError("unavailable")), max_attempts=2, backoff_base=1.0)
    task = _task()
    with patch.object(queue, "_schedule_retry") as schedule:
        first = await queue.process(task)
        second = await queue.process(task)

    assert first == 1.0
    assert second is None
    assert task.attempts == 2
    assert schedule.call_count == 1


async def test_exhausted_hook_runs_once_after_last_attempt():
    error = RuntimeError("unavailable")
    on_exhausted = AsyncMock()
    queue = SubmissionQueue(
        handler=AsyncMock(side_effect=error), max_attempts=3, backoff_base=1.0, on_exhausted=on_exhausted
    )
    task = _task()
    with patch.object(queue, "_schedule_retry"):
        await queue.process(task)
        await queue.process(task)
        on_exhausted.assert_not_awaited()
        await queue.process(task)

    on_exhausted.assert_awaited_once_with(task, error)
    assert task.attempts == 3


async def test_exhausted_hook_failure_does_not_stop_the_queue():
    queue = SubmissionQueue(
        handler=AsyncMock(side_effect=RuntimeError("unavailable")),
        max_attempts=1,
        backoff_base=1.0,
        on_exhausted=AsyncMock(side_effect=RuntimeError("database is locked")),
    )

    assert await queue.process(_task()) is None


async def test_permanent_failure_handled_by_worker_is_not_retried():
    """A handler that returns normally ends the task, whatever it recorded"""
    queue = SubmissionQueue(handler=AsyncMock(return_value=None), max_attempts=5, backoff_base=1.0)

    assert await queue.process(_task()) is None


async def test_dispatch_enqueues_snapshot(report):
    report.id = uuid.uuid4()
    queue = SubmissionQueue(handler=AsyncMock(), max_attempts=3, backoff_base=1.0)

    report.send_id = uuid.uuid4()
    task = SubmissionDispatcher(queue, environment="production").dispatch(report)

    assert queue.pending() == 1
    assert task.report_id == report.id
    assert task.environment == "production"
    assert task.snapshot["order_id"] == 5001
    assert task.attempts == 0
    assert task.send_id == report.send_id
