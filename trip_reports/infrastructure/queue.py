"""In-process submission queue with exponential backoff retry"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

from trip_reports.config import settings
from trip_reports.domain.models import Report
from trip_reports.domain.serialization import report_to_snapshot
from trip_reports.infrastructure.observability.metrics import (
    submission_exhausted_counter,
    submission_retry_counter,
)

logger = logging.getLogger(__name__)


@dataclass
class SubmissionTask:
    """Unit of work that renders and transmits one report"""

    report_id: uuid.UUID
    snapshot: Dict[str, Any]
    environment: str
    send_id: Optional[uuid.UUID] = None  # the report's send this task belongs to
    attempts: int = 0


TaskHandler = Callable[[SubmissionTask], Awaitable[None]]
ExhaustedHandler = Callable[[SubmissionTask, Exception], Awaitable[None]]


class SubmissionQueue:
    """
    Asynchronous task queue owning the retry policy.

    Retry strategy:
    - A handler that raises is retried, anything else completes the task
    - Exponential backoff: base, 2*base, 4*base, ... (base * 2^(attempt-1))
    - After max_attempts failed attempts the task is dropped, counted and
      handed to on_exhausted so the outcome can be recorded
    - Backoff is scheduled on the event loop, the consumer keeps draining
    """

    def __init__(
        self,
        handler: Optional[TaskHandler] = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        on_exhausted: Optional[ExhaustedHandler] = None,
    ):
        self.handler = handler
        self.on_exhausted = on_exhausted
        self.max_attempts = max_attempts if max_attempts is not None else settings.submission_max_attempts
        self.backoff_base = backoff_base if backoff_base is not None else settings.submission_backoff_base
        self._queue: asyncio.Queue = asyncio.Queue()

    def enqueue(self, task: SubmissionTask) -> None:
        """Non-blocking put"""
        self._queue.put_nowait(task)

    def pending(self) -> int:
        return self._queue.qsize()

    async def process(self, task: SubmissionTask) -> Optional[float]:
        """
        Run one attempt of a task.

        Returns:
            Backoff delay in seconds when a retry was scheduled, otherwise None
        """
        try:
            await self.handler(task)
            return None

        except Exception as e:
            task.attempts += 1

            if task.attempts >= self.max_attempts:
                # Final failure after all retries
                submission_exhausted_counter.inc()
                logger.error(
                    "Submission retries exhausted",
                    extra={"report_id": str(task.report_id), "attempts": task.attempts, "error": str(e)},
                )
                await self._notify_exhausted(task, e)
                return None

            backoff = self.backoff_base * (2 ** (task.attempts - 1))
            submission_retry_counter.inc()
            logger.warning(
                "Submission attempt failed, retry scheduled",
                extra={
                    "report_id": str(task.report_id),
                    "attempts": task.attempts,
                    "backoff_seconds": backoff,
                    "error": str(e),
                },
            )
            self._schedule_retry(backoff, task)
            return backoff

    async def _notify_exhausted(self, task: SubmissionTask, error: Exception) -> None:
        if self.on_exhausted is None:
            return
        try:
            await self.on_exhausted(task, error)
        except Exception:
            # the consumer must keep draining
            logger.exception("Recording exhausted submission failed", extra={"report_id": str(task.report_id)})

    def _schedule_retry(self, delay: float, task: SubmissionTask) -> None:
        asyncio.get_running_loop().call_later(delay, self.enqueue, task)

    async def run(self) -> None:
        """Consume tasks forever; cancel the surrounding task to stop"""
        while True:
            task = await self._queue.get()
            try:
                await self.process(task)
            finally:
                self._queue.task_done()


class SubmissionDispatcher:
    """Turns a report that entered 'send' into a queued submission task"""

    def __init__(self, queue: SubmissionQueue, environment: str | None = None):
        self.queue = queue
        self.environment = environment or settings.submission_environment

    def dispatch(self, report: Report) -> SubmissionTask:
        task = SubmissionTask(
            report_id=report.id,
            snapshot=report_to_snapshot(report),
            environment=self.environment,
            send_id=report.send_id,
        )
        self.queue.enqueue(task)
        logger.info(
            "Submission task enqueued",
            extra={"report_id": str(report.id), "environment": self.environment},
        )
        return task
