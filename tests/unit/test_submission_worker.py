"""Unit tests for the submission worker"""

import uuid
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from trip_reports.domain.compensation import calculate_compensation_for_all_members
from trip_reports.domain.exceptions import FailureKind, SubmissionError
from trip_reports.domain.models import ReportState
from trip_reports.domain.serialization import report_to_snapshot
from trip_reports.domain.state_machine import send_report
from trip_reports.infrastructure.database.repositories import ReportRepository
from trip_reports.infrastructure.queue import SubmissionTask
from trip_reports.workers.submission import SubmissionWorker


@pytest.fixture
def sent_report(db, report, price_lists):
    """Report persisted in 'send', as left by the send endpoint"""
    report.calculation = calculate_compensation_for_all_members(report.part_a, price_lists, report.team)
    report.state = ReportState.SEND
    report.send_id = uuid.uuid4()
    saved = ReportRepository(db).add(report)
    db.commit()
    return saved


@pytest.fixture
def task(sent_report) -> SubmissionTask:
    return SubmissionTask(
        report_id=sent_report.id,
        snapshot=report_to_snapshot(sent_report),
        environment="test",
        send_id=sent_report.send_id,
    )


def _reload(db, report_id):
    db.expire_all()
    return ReportRepository(db).get(report_id)


def _resend_with_edit(db, report_id, price_lists, distance_km) -> SubmissionTask:
    """Leader fixes a rejected report and sends it again"""
    repo = ReportRepository(db)
    report = _reload(db, report_id)
    report.part_a.travel_groups[0].segments[0].distance_km = Decimal(distance_km)
    report.calculation = calculate_compensation_for_all_members(report.part_a, price_lists, report.team)
    send_report(report, 101)
    saved = repo.save(report)
    db.commit()
    return SubmissionTask(
        report_id=saved.id,
        snapshot=report_to_snapshot(saved),
        environment="test",
        send_id=saved.send_id,
    )


async def test_success_marks_submitted(db, session_factory, task):
    client = AsyncMock()
    client.submit.return_value = {"submission_id": "R-77", "status": "accepted"}

    await SubmissionWorker(session_factory, client)(task)

    report = _reload(db, task.report_id)
    assert report.state == ReportState.SUBMITTED
    assert len(report.history) == 1
    assert report.history[0].action == "submission_accepted"
    assert report.history[0].payload["response"] == {"submission_id": "R-77", "status": "accepted"}

    document, identity, environment = client.submit.await_args.args
    assert document.startswith("<?xml")
    assert identity == "101"
    assert environment == "test"


async def test_transient_failure_rejects_and_reraises(db, session_factory, task):
    client = AsyncMock()
    client.submit.side_effect = RuntimeError("Connection timed out")

    with pytest.raises(RuntimeError):
        await SubmissionWorker(session_factory, client)(task)

    report = _reload(db, task.report_id)
    assert report.state == ReportState.REJECTED
    assert len(report.history) == 1
    assert report.history[0].action == "submission_failed"
    assert report.history[0].payload["failure_kind"] == "transient"


async def test_permanent_failure_rejects_without_retry(db, session_factory, task):
    client = AsyncMock()
    client.submit.side_effect = RuntimeError("Invalid credentials")

    await SubmissionWorker(session_factory, client)(task)

    report = _reload(db, task.report_id)
    assert report.state == ReportState.REJECTED
    assert [h.action for h in report.history] == ["submission_failed", "submission_final_failure"]
    assert report.history[1].payload["retry"] is False


async def test_structured_kind_drives_retry(db, session_factory, task):
    client = AsyncMock()
    client.submit.side_effect = SubmissionError("Submission service returned 503", kind=FailureKind.TRANSIENT)

    with pytest.raises(SubmissionError):
        await SubmissionWorker(session_factory, client)(task)

    assert _reload(db, task.report_id).history[0].payload["failure_kind"] == "transient"


async def test_retry_after_transient_failure_can_succeed(db, session_factory, task):
    client = AsyncMock()
    client.submit.side_effect = [RuntimeError("Service unavailable"), {"submission_id": "R-78"}]
    worker = SubmissionWorker(session_factory, client)

    with pytest.raises(RuntimeError):
        await worker(task)
    await worker(task)

    report = _reload(db, task.report_id)
    assert report.state == ReportState.SUBMITTED
    assert [h.action for h in report.history] == ["submission_failed", "submission_accepted"]


async def test_missing_report_is_not_retried(db, session_factory):
    client = AsyncMock()
    task = SubmissionTask(report_id=uuid.uuid4(), snapshot={"order_id": 1}, environment="test")

    await SubmissionWorker(session_factory, client)(task)

    client.submit.assert_not_awaited()


async def test_report_no_longer_awaiting_submission_is_skipped(db, session_factory, task):
    repo = ReportRepository(db)
    report = repo.get(task.report_id)
    report.state = ReportState.SUBMITTED
    repo.save(report)
    db.commit()
    client = AsyncMock()

    await SubmissionWorker(session_factory, client)(task)

    client.submit.assert_not_awaited()
    assert _reload(db, task.report_id).history == []


async def test_malformed_snapshot_is_permanent(db, session_factory, task):
    client = AsyncMock()
    task.snapshot = {"part_a": {}}

    await SubmissionWorker(session_factory, client)(task)

    report = _reload(db, task.report_id)
    client.submit.assert_not_awaited()
    assert report.state == ReportState.REJECTED
    assert len(report.history) == 2


async def test_retry_of_earlier_send_is_dropped_after_resend(db, session_factory, price_lists, task):
    """Only the latest send reaches the registry, with the corrected data"""
    client = AsyncMock()
    client.submit.side_effect = [RuntimeError("Service unavailable"), {"submission_id": "R-79"}]
    worker = SubmissionWorker(session_factory, client)

    with pytest.raises(RuntimeError):
        await worker(task)
    new_task = _resend_with_edit(db, task.report_id, price_lists, "999")
    assert new_task.send_id != task.send_id

    await worker(task)
    assert client.submit.await_count == 1

    await worker(new_task)

    assert client.submit.await_count == 2
    document = client.submit.await_args.args[0]
    assert "<distance_km>999</distance_km>" in document
    report = _reload(db, task.report_id)
    assert report.state == ReportState.SUBMITTED
    assert [h.action for h in report.history] == ["submission_failed", "sent", "submission_accepted"]


async def test_exhausted_retries_are_recorded(db, session_factory, task):
    client = AsyncMock()
    client.submit.side_effect = RuntimeError("Connection timed out")
    worker = SubmissionWorker(session_factory, client)

    with pytest.raises(RuntimeError) as exc_info:
        await worker(task)
    task.attempts = 5
    await worker.exhausted(task, exc_info.value)

    report = _reload(db, task.report_id)
    assert report.state == ReportState.REJECTED
    assert [h.action for h in report.history] == ["submission_failed", "submission_final_failure"]
    final = report.history[1].payload
    assert final["reason"] == "retries exhausted"
    assert final["retry"] is False
    assert final["attempts"] == 5


async def test_exhausted_task_of_earlier_send_records_nothing(db, session_factory, price_lists, task):
    client = AsyncMock()
    client.submit.side_effect = RuntimeError("Connection timed out")
    worker = SubmissionWorker(session_factory, client)

    with pytest.raises(RuntimeError):
        await worker(task)
    new_task = _resend_with_edit(db, task.report_id, price_lists, "30")
    with pytest.raises(RuntimeError) as exc_info:
        await worker(new_task)

    await worker.exhausted(task, exc_info.value)

    report = _reload(db, task.report_id)
    assert [h.action for h in report.history] == ["submission_failed", "sent", "submission_failed"]
