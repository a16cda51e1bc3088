"""Submission worker - delivers queued reports and records the outcome"""

import logging
from typing import Callable

from sqlalchemy.orm import Session

from trip_reports.domain.classification import classify_failure
from trip_reports.domain.exceptions import FailureKind
from trip_reports.domain.models import Report, ReportState
from trip_reports.domain.rendering import render_report_document
from trip_reports.domain.state_machine import ActorRole, add_history_entry, transition
from trip_reports.infrastructure.clients.submission import SubmissionClient
from trip_reports.infrastructure.database.repositories import ReportRepository
from trip_reports.infrastructure.observability.logging import log_transition
from trip_reports.infrastructure.observability.metrics import record_transition, submission_outcome_counter
from trip_reports.infrastructure.queue import SubmissionTask

logger = logging.getLogger(__name__)

AWAITING_SUBMISSION = (ReportState.SEND, ReportState.REJECTED)


class SubmissionWorker:
    """
    Queue handler for submission tasks.

    Flow:
    1. Reload the report (missing -> logged, no retry); a task from an
       earlier send than the report's latest one is dropped
    2. Render the task snapshot into the submission document
    3. Call the submission service with the processor's identity
    4. Success -> 'submitted' with the response in history
    5. Failure -> 'rejected' with the error in history, then
       transient -> re-raise so the queue retries,
       permanent -> extra no-retry entry, task completes
    """

    def __init__(self, session_factory: Callable[[], Session], client: SubmissionClient):
        self.session_factory = session_factory
        self.client = client

    async def __call__(self, task: SubmissionTask) -> None:
        db = self.session_factory()
        try:
            await self._handle(db, task)
        finally:
            db.close()

    async def _handle(self, db: Session, task: SubmissionTask) -> None:
        repo = ReportRepository(db)
        report = repo.get(task.report_id)
        if report is None:
            submission_outcome_counter.labels(outcome="not_found").inc()
            logger.error("Report not found", extra={"report_id": str(task.report_id)})
            return

        if report.state not in AWAITING_SUBMISSION:
            logger.warning(
                "Report no longer awaiting submission",
                extra={"report_id": str(report.id), "state": report.state.value},
            )
            return

        if not self._is_current(task, report):
            submission_outcome_counter.labels(outcome="superseded").inc()
            logger.warning(
                "Submission task superseded by a later send",
                extra={"report_id": str(report.id), "attempt": task.attempts + 1},
            )
            return

        logger.info(
            "Starting submission",
            extra={"report_id": str(report.id), "environment": task.environment, "attempt": task.attempts + 1},
        )

        try:
            document = render_report_document(task.snapshot)
            result = await self.client.submit(document, str(report.processor), task.environment)
        except Exception as e:
            kind = classify_failure(e)
            self._record_failure(db, repo, report, e, kind)
            if kind == FailureKind.TRANSIENT:
                # Re-raise for the queue's retry policy
                raise
            return

        previous = report.state
        transition(
            report,
            ReportState.SUBMITTED,
            report.processor,
            ActorRole.SYSTEM,
            action="submission_accepted",
            details="Report accepted by the external registry",
            payload={"response": result},
        )
        repo.save(report)
        db.commit()

        record_transition(previous.value, ReportState.SUBMITTED.value)
        submission_outcome_counter.labels(outcome="submitted").inc()
        log_transition(str(report.id), report.processor, previous.value, ReportState.SUBMITTED.value)

    async def exhausted(self, task: SubmissionTask, error: Exception) -> None:
        """Record that the queue gave up retrying the task"""
        db = self.session_factory()
        try:
            repo = ReportRepository(db)
            report = repo.get(task.report_id)
            if report is None or report.state != ReportState.REJECTED or not self._is_current(task, report):
                return

            add_history_entry(
                report,
                report.processor,
                action="submission_final_failure",
                details=f"Not retried: gave up after {task.attempts} attempts",
                payload={"reason": "retries exhausted", "retry": False, "attempts": task.attempts, "error": str(error)},
            )
            repo.save(report)
            db.commit()

            submission_outcome_counter.labels(outcome="exhausted").inc()
            logger.error(
                "Submission abandoned",
                extra={"report_id": str(report.id), "attempts": task.attempts, "error": str(error)},
            )
        finally:
            db.close()

    @staticmethod
    def _is_current(task: SubmissionTask, report: Report) -> bool:
        return task.send_id == report.send_id

    def _record_failure(
        self,
        db: Session,
        repo: ReportRepository,
        report: Report,
        error: Exception,
        kind: FailureKind,
    ) -> None:
        previous = report.state
        transition(
            report,
            ReportState.REJECTED,
            report.processor,
            ActorRole.SYSTEM,
            action="submission_failed",
            details=f"Submission failed: {error}",
            payload={"error": str(error), "failure_kind": kind.value},
        )
        if kind == FailureKind.PERMANENT:
            add_history_entry(
                report,
                report.processor,
                action="submission_final_failure",
                details="Not retried: the failure requires correcting the report or credentials",
                payload={"reason": str(error), "retry": False},
            )
        repo.save(report)
        db.commit()

        record_transition(previous.value, ReportState.REJECTED.value)
        submission_outcome_counter.labels(outcome=f"{kind.value}_failure").inc()
        logger.error(
            "Submission failed",
            extra={"report_id": str(report.id), "failure_kind": kind.value, "error": str(error)},
        )
