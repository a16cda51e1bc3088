"""Report endpoints - Part A/B saves, state transitions, history, calculation"""

import uuid
from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from trip_reports.api.dependencies import (
    get_admin_id,
    get_dispatcher,
    get_member_id,
    get_request_id,
    get_tariff_client,
)
from trip_reports.api.errors import handle_errors
from trip_reports.api.v1.schemas import (
    CalculationSchema,
    DecisionRequest,
    HistoryItem,
    HistoryResponse,
    MemberCalculationResponse,
    MemberReportsResponse,
    PartARequest,
    PartBRequest,
    ReportResponse,
    ReportSummaryItem,
    ResetRequest,
    StateSummaryResponse,
    TeamMemberSchema,
    team_to_domain,
)
from trip_reports.domain.compensation import calculate_compensation, calculate_compensation_for_all_members
from trip_reports.domain.exceptions import InvalidReportDataError, PermissionDeniedError, ReportNotFoundError
from trip_reports.domain.models import (
    Report,
    ReportState,
    apply_payment_redirects,
    validate_part_a,
    validate_team,
)
from trip_reports.domain.state_machine import (
    add_history_entry,
    decide_report,
    ensure_editable,
    reset_to_draft,
    send_report,
)
from trip_reports.infrastructure.clients.tariffs import TariffClient
from trip_reports.infrastructure.database.repositories import ReportRepository
from trip_reports.infrastructure.database.session import get_db
from trip_reports.infrastructure.observability.logging import log_transition
from trip_reports.infrastructure.observability.metrics import calculation_counter, record_transition
from trip_reports.infrastructure.queue import SubmissionDispatcher

router = APIRouter()


def _parse_report_id(report_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(report_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid report ID format")


def _get_report(repo: ReportRepository, report_id: uuid.UUID) -> Report:
    report = repo.get(report_id)
    if report is None:
        raise ReportNotFoundError(f"Report {report_id} not found")
    return report


def _load_or_create(
    repo: ReportRepository,
    order_id: int,
    order_number: str,
    team: List[TeamMemberSchema],
    member_id: int,
) -> Tuple[Report, bool]:
    """
    Existing report for the order, or a new draft.

    A new report snapshots the team from the request; the creating member
    must be its leader and becomes the report's processor.
    """
    report = repo.get_by_order(order_id)
    if report is not None:
        return report, False

    members = team_to_domain(team)
    if not members:
        raise InvalidReportDataError("Team is required when creating a report")
    validate_team(members)

    report = Report(order_id=order_id, order_number=order_number, processor=member_id, team=members)
    if not report.is_leader(member_id):
        raise PermissionDeniedError(f"Member {member_id} is not the team leader")

    add_history_entry(report, member_id, "created", "Report created")
    return report, True


def _persist(repo: ReportRepository, report: Report, created: bool) -> Report:
    return repo.add(report) if created else repo.save(report)


@router.get("/reports/summary", response_model=StateSummaryResponse)
def get_state_summary(db: Session = Depends(get_db)):
    """Number of reports in each state"""
    return StateSummaryResponse(counts=ReportRepository(db).count_by_state())


@router.get("/orders/{order_id}/report", response_model=ReportResponse)
def get_report_by_order(order_id: int, request: Request, db: Session = Depends(get_db)):
    """Fetch the report for an order"""
    with handle_errors(db, get_request_id(request), "report lookup"):
        report = ReportRepository(db).get_by_order(order_id)
        if report is None:
            raise ReportNotFoundError(f"No report for order {order_id}")
        return ReportResponse.from_domain(report)


@router.get("/reports/{report_id}", response_model=ReportResponse)
def get_report(report_id: str, request: Request, db: Session = Depends(get_db)):
    """Fetch a report by id"""
    report_uuid = _parse_report_id(report_id)
    with handle_errors(db, get_request_id(request), "report lookup"):
        return ReportResponse.from_domain(_get_report(ReportRepository(db), report_uuid))


@router.put("/orders/{order_id}/report/part-a", response_model=ReportResponse)
async def save_part_a(
    order_id: int,
    request_body: PartARequest,
    request: Request,
    member_id: int = Depends(get_member_id),
    db: Session = Depends(get_db),
    tariff_client: TariffClient = Depends(get_tariff_client),
):
    """
    Create or update Part A (travel and expenses).

    Flow:
    1. Load the order's report or start a draft
    2. Check the leader may edit in the current state
    3. Validate payout redirects and member references against the team snapshot
    4. Recompute every member's compensation from the submitted data
    5. Persist and record history
    """
    request_id = get_request_id(request)

    with handle_errors(db, request_id, "Part A save"):
        repo = ReportRepository(db)
        report, created = _load_or_create(
            repo, order_id, request_body.order_number, request_body.team, member_id
        )
        ensure_editable(report, member_id)

        part_a = request_body.to_domain()
        team = apply_payment_redirects(report.team, request_body.payment_redirects)
        validate_part_a(part_a, team)

        price_lists = await tariff_client.get_price_lists()
        calculation = calculate_compensation_for_all_members(part_a, price_lists, team)
        calculation_counter.labels(scope="team").inc()

        report.part_a = part_a
        report.team = team
        report.calculation = calculation
        add_history_entry(
            report,
            member_id,
            "part_a_updated",
            "Part A updated",
            {"completed": part_a.completed},
        )

        saved = _persist(repo, report, created)
        db.commit()

        return ReportResponse.from_domain(saved)


@router.put("/orders/{order_id}/report/part-b", response_model=ReportResponse)
def save_part_b(
    order_id: int,
    request_body: PartBRequest,
    request: Request,
    member_id: int = Depends(get_member_id),
    db: Session = Depends(get_db),
):
    """Create or update Part B (inspected-object condition)"""
    request_id = get_request_id(request)

    with handle_errors(db, request_id, "Part B save"):
        repo = ReportRepository(db)
        report, created = _load_or_create(
            repo, order_id, request_body.order_number, request_body.team, member_id
        )
        ensure_editable(report, member_id)

        report.part_b = request_body.to_domain()
        add_history_entry(
            report,
            member_id,
            "part_b_updated",
            "Part B updated",
            {"completed": report.part_b.completed},
        )

        saved = _persist(repo, report, created)
        db.commit()

        return ReportResponse.from_domain(saved)


@router.post("/reports/{report_id}/send", response_model=ReportResponse, status_code=status.HTTP_202_ACCEPTED)
async def send(
    report_id: str,
    request: Request,
    member_id: int = Depends(get_member_id),
    db: Session = Depends(get_db),
    tariff_client: TariffClient = Depends(get_tariff_client),
    dispatcher: SubmissionDispatcher = Depends(get_dispatcher),
):
    """
    Hand the report over for submission.

    The calculation is refreshed before the snapshot is taken; the
    submission itself happens asynchronously once the change is committed.
    """
    report_uuid = _parse_report_id(report_id)
    request_id = get_request_id(request)

    with handle_errors(db, request_id, "send"):
        repo = ReportRepository(db)
        report = _get_report(repo, report_uuid)
        previous = report.state

        price_lists = await tariff_client.get_price_lists()
        report.calculation = calculate_compensation_for_all_members(report.part_a, price_lists, report.team)
        calculation_counter.labels(scope="team").inc()

        send_report(report, member_id)
        saved = repo.save(report)
        db.commit()

        dispatcher.dispatch(saved)

        record_transition(previous.value, saved.state.value)
        log_transition(str(saved.id), member_id, previous.value, saved.state.value, request_id)
        return ReportResponse.from_domain(saved)


@router.post("/reports/{report_id}/decision", response_model=ReportResponse)
def decide(
    report_id: str,
    request_body: DecisionRequest,
    request: Request,
    admin_id: int = Depends(get_admin_id),
    db: Session = Depends(get_db),
):
    """Administrative approval or rejection of a submitted report"""
    report_uuid = _parse_report_id(report_id)
    request_id = get_request_id(request)

    with handle_errors(db, request_id, "decision"):
        repo = ReportRepository(db)
        report = _get_report(repo, report_uuid)
        previous = report.state

        decide_report(report, request_body.approved, admin_id, request_body.note)
        saved = repo.save(report)
        db.commit()

        record_transition(previous.value, saved.state.value)
        log_transition(str(saved.id), admin_id, previous.value, saved.state.value, request_id)
        return ReportResponse.from_domain(saved)


@router.post("/reports/{report_id}/reset", response_model=ReportResponse)
def reset(
    report_id: str,
    request_body: ResetRequest,
    request: Request,
    admin_id: int = Depends(get_admin_id),
    db: Session = Depends(get_db),
):
    """Force a rejected report back to draft"""
    report_uuid = _parse_report_id(report_id)
    request_id = get_request_id(request)

    with handle_errors(db, request_id, "reset"):
        repo = ReportRepository(db)
        report = _get_report(repo, report_uuid)
        previous = report.state

        reset_to_draft(report, admin_id, request_body.note)
        saved = repo.save(report)
        db.commit()

        record_transition(previous.value, saved.state.value)
        log_transition(str(saved.id), admin_id, previous.value, saved.state.value, request_id)
        return ReportResponse.from_domain(saved)


@router.get("/reports/{report_id}/history", response_model=HistoryResponse)
def get_history(report_id: str, request: Request, db: Session = Depends(get_db)):
    """Append-only history of a report, oldest first"""
    report_uuid = _parse_report_id(report_id)
    with handle_errors(db, get_request_id(request), "history lookup"):
        report = _get_report(ReportRepository(db), report_uuid)
        return HistoryResponse(
            report_id=str(report.id),
            entries=[HistoryItem.from_domain(entry) for entry in report.history],
        )


@router.get("/reports/{report_id}/calculation", response_model=MemberCalculationResponse)
async def get_member_calculation(
    report_id: str,
    request: Request,
    member_id: Optional[int] = Query(None, description="Team member; defaults to the acting member"),
    acting_member_id: int = Depends(get_member_id),
    db: Session = Depends(get_db),
    tariff_client: TariffClient = Depends(get_tariff_client),
):
    """Freshly computed breakdown for one member, for display"""
    report_uuid = _parse_report_id(report_id)
    subject = member_id if member_id is not None else acting_member_id

    with handle_errors(db, get_request_id(request), "calculation"):
        report = _get_report(ReportRepository(db), report_uuid)
        if subject not in report.team:
            raise ReportNotFoundError(f"Member {subject} is not on the team of report {report_uuid}")

        price_lists = await tariff_client.get_price_lists()
        calculation = calculate_compensation(report.part_a, price_lists, subject)
        calculation_counter.labels(scope="member").inc()

        return MemberCalculationResponse(
            report_id=str(report.id),
            member_id=subject,
            calculation=CalculationSchema.from_domain(calculation),
        )


@router.get("/members/{member_id}/reports", response_model=MemberReportsResponse)
def get_member_reports(
    member_id: int,
    state: Optional[ReportState] = Query(None, description="Filter by state"),
    db: Session = Depends(get_db),
):
    """Reports a member has processed, most recently updated first"""
    reports = ReportRepository(db).list_by_processor(member_id, state)
    return MemberReportsResponse(
        member_id=member_id,
        reports=[
            ReportSummaryItem(
                report_id=str(r.id),
                order_id=r.order_id,
                order_number=r.order_number,
                state=r.state.value,
            )
            for r in reports
        ],
    )
