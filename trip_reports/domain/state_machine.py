"""Report state machine - allowed transitions, edit rules and history"""

import uuid
from enum import Enum
from typing import Any, Dict, Optional

from trip_reports.domain.exceptions import (
    InvalidReportDataError,
    InvalidTransitionError,
    PermissionDeniedError,
    ReportNotEditableError,
)
from trip_reports.domain.models import HistoryEntry, Report, ReportState
from trip_reports.utils.date_utils import utcnow


class ActorRole(str, Enum):
    """Who may trigger a transition"""

    LEADER = "leader"
    SYSTEM = "system"
    ADMIN = "admin"


# (from, to) -> role allowed to perform it
TRANSITIONS: Dict[tuple, ActorRole] = {
    (ReportState.DRAFT, ReportState.SEND): ActorRole.LEADER,
    (ReportState.REJECTED, ReportState.SEND): ActorRole.LEADER,
    (ReportState.SEND, ReportState.SUBMITTED): ActorRole.SYSTEM,
    (ReportState.SEND, ReportState.REJECTED): ActorRole.SYSTEM,
    # retry outcomes while the report sits in rejected between attempts
    (ReportState.REJECTED, ReportState.SUBMITTED): ActorRole.SYSTEM,
    (ReportState.REJECTED, ReportState.REJECTED): ActorRole.SYSTEM,
    (ReportState.SUBMITTED, ReportState.APPROVED): ActorRole.ADMIN,
    (ReportState.SUBMITTED, ReportState.REJECTED): ActorRole.ADMIN,
    (ReportState.REJECTED, ReportState.DRAFT): ActorRole.ADMIN,
}


def add_history_entry(
    report: Report,
    actor: int,
    action: str,
    details: str = "",
    payload: Optional[Dict[str, Any]] = None,
) -> HistoryEntry:
    """Append a history entry stamped with the report's current state"""
    entry = HistoryEntry(
        timestamp=utcnow(),
        actor=actor,
        action=action,
        state=report.state,
        details=details,
        payload=payload or {},
    )
    report.history.append(entry)
    return entry


def ensure_editable(report: Report, actor: int) -> None:
    """Only the team leader edits, and only in draft or rejected"""
    if not report.is_leader(actor):
        raise PermissionDeniedError(f"Member {actor} is not the team leader")
    if not report.is_editable:
        raise ReportNotEditableError(f"Report cannot be edited in state '{report.state.value}'")


def can_transition(current: ReportState, target: ReportState, role: ActorRole) -> bool:
    return TRANSITIONS.get((current, target)) == role


def transition(
    report: Report,
    target: ReportState,
    actor: int,
    role: ActorRole,
    action: str,
    details: str = "",
    payload: Optional[Dict[str, Any]] = None,
) -> HistoryEntry:
    """
    Move the report to target state and record it.

    Raises:
        InvalidTransitionError: (state, target) is not allowed for role
        PermissionDeniedError: leader transition attempted by a non-leader
    """
    previous = report.state
    if not can_transition(previous, target, role):
        raise InvalidTransitionError(
            f"Transition {previous.value} -> {target.value} is not allowed for {role.value}"
        )
    if role == ActorRole.LEADER and not report.is_leader(actor):
        raise PermissionDeniedError(f"Member {actor} is not the team leader")

    report.state = target
    if target == ReportState.SEND:
        report.date_send = utcnow()
        report.send_id = uuid.uuid4()

    data = {"previous_state": previous.value}
    data.update(payload or {})
    return add_history_entry(report, actor, action, details, data)


def send_report(report: Report, actor: int) -> HistoryEntry:
    """Leader hands the report over for submission"""
    if not report.part_a.completed:
        raise InvalidReportDataError("Part A must be completed before sending")
    if not report.part_b.completed:
        raise InvalidReportDataError("Part B must be completed before sending")
    if not report.calculation:
        raise InvalidReportDataError("Report has no compensation calculation")

    return transition(
        report,
        ReportState.SEND,
        actor,
        ActorRole.LEADER,
        action="sent",
        details="Report sent for submission",
    )


def decide_report(report: Report, approved: bool, actor: int, note: str = "") -> HistoryEntry:
    """Administrative approval or rejection of a submitted report"""
    target = ReportState.APPROVED if approved else ReportState.REJECTED
    return transition(
        report,
        target,
        actor,
        ActorRole.ADMIN,
        action="approved" if approved else "rejected",
        details=note,
    )


def reset_to_draft(report: Report, actor: int, note: str = "") -> HistoryEntry:
    """Administrator forces a rejected report back to draft"""
    return transition(
        report,
        ReportState.DRAFT,
        actor,
        ActorRole.ADMIN,
        action="reset_to_draft",
        details=note,
    )
