"""Data access layer for reports"""

import uuid
from typing import Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError
from trip_reports.infrastructure.database.models import ReportRecord
from trip_reports.domain.exceptions import ConflictError, ReportNotFoundError
from trip_reports.domain.models import Report, ReportState
from trip_reports.domain.serialization import (
    calculations_from_dict,
    calculations_to_dict,
    history_entry_from_dict,
    history_entry_to_dict,
    part_a_from_dict,
    part_a_to_dict,
    part_b_from_dict,
    part_b_to_dict,
    team_from_list,
    team_to_list,
)


def _to_domain(row: ReportRecord) -> Report:
    return Report(
        id=row.id,
        order_id=row.order_id,
        order_number=row.order_number,
        processor=row.processor,
        team=team_from_list(row.team),
        part_a=part_a_from_dict(row.data_a),
        part_b=part_b_from_dict(row.data_b),
        calculation=calculations_from_dict(row.calculation),
        state=ReportState(row.state),
        history=[history_entry_from_dict(h) for h in row.history or []],
        version=row.version,
        date_send=row.date_send,
        send_id=row.send_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _write_fields(row: ReportRecord, report: Report) -> None:
    row.order_number = report.order_number
    row.team = team_to_list(report.team)
    row.data_a = part_a_to_dict(report.part_a)
    row.data_b = part_b_to_dict(report.part_b)
    row.calculation = calculations_to_dict(report.calculation)
    row.state = report.state.value
    row.history = [history_entry_to_dict(h) for h in report.history]
    row.date_send = report.date_send
    row.send_id = report.send_id


class ReportRepository:
    """Repository for report aggregates"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, report_id: uuid.UUID) -> Optional[Report]:
        """Fetch report by id"""
        row = self.db.get(ReportRecord, report_id)
        return _to_domain(row) if row else None

    def get_by_order(self, order_id: int) -> Optional[Report]:
        """Fetch the report for an order"""
        row = (
            self.db.query(ReportRecord)
            .filter(ReportRecord.order_id == order_id)
            .first()
        )
        return _to_domain(row) if row else None

    def add(self, report: Report) -> Report:
        """Persist a new report; a concurrent create for the same order conflicts"""
        row = ReportRecord(
            id=report.id or uuid.uuid4(),
            order_id=report.order_id,
            processor=report.processor,
        )
        _write_fields(row, report)
        self.db.add(row)
        try:
            self.db.flush()  # Get ID and version without committing
        except IntegrityError as e:
            raise ConflictError(f"Report for order {report.order_id} already exists") from e
        return _to_domain(row)

    def save(self, report: Report) -> Report:
        """
        Write an existing report back.

        Raises:
            ReportNotFoundError: Row vanished
            ConflictError: Row changed since the report was loaded
        """
        row = self.db.get(ReportRecord, report.id)
        if row is None:
            raise ReportNotFoundError(f"Report {report.id} not found")
        if row.version != report.version:
            raise ConflictError(f"Report {report.id} was modified concurrently")

        _write_fields(row, report)
        try:
            self.db.flush()
        except StaleDataError as e:
            raise ConflictError(f"Report {report.id} was modified concurrently") from e
        return _to_domain(row)

    def list_by_processor(self, member_id: int, state: Optional[ReportState] = None, limit: int = 50) -> List[Report]:
        """Reports a member created, most recently updated first"""
        query = self.db.query(ReportRecord).filter(ReportRecord.processor == member_id)
        if state is not None:
            query = query.filter(ReportRecord.state == state.value)
        rows = query.order_by(ReportRecord.updated_at.desc()).limit(limit).all()
        return [_to_domain(row) for row in rows]

    def count_by_state(self) -> Dict[str, int]:
        """Number of reports per state"""
        rows = (
            self.db.query(ReportRecord.state, func.count(ReportRecord.id))
            .group_by(ReportRecord.state)
            .all()
        )
        return {state: count for state, count in rows}
