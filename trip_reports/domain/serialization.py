"""JSON-compatible dict conversion for domain models (persistence and task snapshots)"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, Optional

from trip_reports.domain.compensation import calculate_payouts
from trip_reports.domain.models import (
    Accommodation,
    AdditionalExpense,
    CompensationCalculation,
    HistoryEntry,
    InspectedObject,
    PartA,
    PartB,
    PriceList,
    Report,
    ReportState,
    TariffBand,
    TeamMember,
    TransportMode,
    TravelGroup,
    TravelSegment,
)


def _date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _time(value: Optional[str]) -> Optional[time]:
    return time.fromisoformat(value) if value else None


def _iso(value: Any) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


# --- Part A ---


def segment_to_dict(segment: TravelSegment) -> Dict[str, Any]:
    return {
        "id": segment.id,
        "date": segment.date.isoformat(),
        "start_time": _iso(segment.start_time),
        "end_time": _iso(segment.end_time),
        "start_place": segment.start_place,
        "end_place": segment.end_place,
        "transport_mode": segment.transport_mode.value,
        "distance_km": str(segment.distance_km),
        "ticket_cost": str(segment.ticket_cost),
        "attachments": list(segment.attachments),
    }


def segment_from_dict(data: Dict[str, Any]) -> TravelSegment:
    return TravelSegment(
        id=data["id"],
        date=date.fromisoformat(data["date"]),
        start_time=_time(data.get("start_time")),
        end_time=_time(data.get("end_time")),
        start_place=data.get("start_place", ""),
        end_place=data.get("end_place", ""),
        transport_mode=TransportMode(data.get("transport_mode", TransportMode.VEHICLE.value)),
        distance_km=_decimal(data.get("distance_km")),
        ticket_cost=_decimal(data.get("ticket_cost")),
        attachments=list(data.get("attachments", [])),
    )


def part_a_to_dict(part_a: PartA) -> Dict[str, Any]:
    return {
        "execution_date": _iso(part_a.execution_date),
        "travel_groups": [
            {
                "id": group.id,
                "travelers": list(group.travelers),
                "driver": group.driver,
                "vehicle_plate": group.vehicle_plate,
                "segments": [segment_to_dict(s) for s in group.segments],
            }
            for group in part_a.travel_groups
        ],
        "primary_driver": part_a.primary_driver,
        "elevated_rate": part_a.elevated_rate,
        "accommodations": [
            {
                "id": a.id,
                "date": a.date.isoformat(),
                "amount": str(a.amount),
                "paid_by": a.paid_by,
                "facility": a.facility,
                "place": a.place,
                "attachments": list(a.attachments),
            }
            for a in part_a.accommodations
        ],
        "additional_expenses": [
            {
                "id": e.id,
                "date": e.date.isoformat(),
                "amount": str(e.amount),
                "paid_by": e.paid_by,
                "description": e.description,
                "attachments": list(e.attachments),
            }
            for e in part_a.additional_expenses
        ],
        "completed": part_a.completed,
    }


def part_a_from_dict(data: Dict[str, Any]) -> PartA:
    if not data:
        return PartA()
    return PartA(
        execution_date=_date(data.get("execution_date")),
        travel_groups=[
            TravelGroup(
                id=g["id"],
                travelers=list(g.get("travelers", [])),
                driver=g.get("driver"),
                vehicle_plate=g.get("vehicle_plate", ""),
                segments=[segment_from_dict(s) for s in g.get("segments", [])],
            )
            for g in data.get("travel_groups", [])
        ],
        primary_driver=data.get("primary_driver"),
        elevated_rate=bool(data.get("elevated_rate", False)),
        accommodations=[
            Accommodation(
                id=a["id"],
                date=date.fromisoformat(a["date"]),
                amount=_decimal(a["amount"]),
                paid_by=a["paid_by"],
                facility=a.get("facility", ""),
                place=a.get("place", ""),
                attachments=list(a.get("attachments", [])),
            )
            for a in data.get("accommodations", [])
        ],
        additional_expenses=[
            AdditionalExpense(
                id=e["id"],
                date=date.fromisoformat(e["date"]),
                amount=_decimal(e["amount"]),
                paid_by=e["paid_by"],
                description=e.get("description", ""),
                attachments=list(e.get("attachments", [])),
            )
            for e in data.get("additional_expenses", [])
        ],
        completed=bool(data.get("completed", False)),
    )


# --- Part B ---


def part_b_to_dict(part_b: PartB) -> Dict[str, Any]:
    return {
        "objects": {
            object_id: {
                "condition": obj.condition,
                "note": obj.note,
                "attachments": list(obj.attachments),
            }
            for object_id, obj in part_b.objects.items()
        },
        "route_note": part_b.route_note,
        "route_attachments": list(part_b.route_attachments),
        "renewed_sections": list(part_b.renewed_sections),
        "completed": part_b.completed,
    }


def part_b_from_dict(data: Dict[str, Any]) -> PartB:
    if not data:
        return PartB()
    return PartB(
        objects={
            object_id: InspectedObject(
                object_id=object_id,
                condition=obj.get("condition"),
                note=obj.get("note", ""),
                attachments=list(obj.get("attachments", [])),
            )
            for object_id, obj in data.get("objects", {}).items()
        },
        route_note=data.get("route_note", ""),
        route_attachments=list(data.get("route_attachments", [])),
        renewed_sections=list(data.get("renewed_sections", [])),
        completed=bool(data.get("completed", False)),
    )


# --- Tariffs and calculations ---


def band_to_dict(band: TariffBand) -> Dict[str, Any]:
    return {
        "hours_from": band.hours_from,
        "hours_to": band.hours_to,
        "meal_allowance": str(band.meal_allowance),
        "work_allowance": str(band.work_allowance),
    }


def band_from_dict(data: Dict[str, Any]) -> TariffBand:
    return TariffBand(
        hours_from=float(data["hours_from"]),
        hours_to=float(data["hours_to"]),
        meal_allowance=_decimal(data.get("meal_allowance")),
        work_allowance=_decimal(data.get("work_allowance")),
    )


def price_list_from_dict(data: Dict[str, Any]) -> PriceList:
    return PriceList(
        effective_from=date.fromisoformat(data["effective_from"]),
        rate_per_km=_decimal(data["rate_per_km"]),
        elevated_rate_per_km=_decimal(data["elevated_rate_per_km"]),
        bands=tuple(band_from_dict(b) for b in data.get("bands", [])),
    )


def calculation_to_dict(calculation: CompensationCalculation) -> Dict[str, Any]:
    return {
        "transport": str(calculation.transport),
        "meal_allowance": str(calculation.meal_allowance),
        "work_allowance": str(calculation.work_allowance),
        "accommodation": str(calculation.accommodation),
        "incidentals": str(calculation.incidentals),
        "total": str(calculation.total),
        "work_hours": calculation.work_hours,
        "band": band_to_dict(calculation.band) if calculation.band else None,
        "is_driver": calculation.is_driver,
    }


def calculation_from_dict(data: Dict[str, Any]) -> CompensationCalculation:
    return CompensationCalculation(
        transport=_decimal(data["transport"]),
        meal_allowance=_decimal(data["meal_allowance"]),
        work_allowance=_decimal(data["work_allowance"]),
        accommodation=_decimal(data["accommodation"]),
        incidentals=_decimal(data["incidentals"]),
        total=_decimal(data["total"]),
        work_hours=float(data["work_hours"]),
        band=band_from_dict(data["band"]) if data.get("band") else None,
        is_driver=bool(data["is_driver"]),
    )


def calculations_to_dict(calculations: Dict[int, CompensationCalculation]) -> Dict[str, Any]:
    # JSON object keys are strings
    return {str(member_id): calculation_to_dict(c) for member_id, c in calculations.items()}


def calculations_from_dict(data: Dict[str, Any]) -> Dict[int, CompensationCalculation]:
    return {int(member_id): calculation_from_dict(c) for member_id, c in (data or {}).items()}


# --- Team and history ---


def team_to_list(team: Dict[int, TeamMember]) -> list:
    return [
        {
            "member_id": m.member_id,
            "name": m.name,
            "is_leader": m.is_leader,
            "redirect_to": m.redirect_to,
        }
        for m in team.values()
    ]


def team_from_list(data: list) -> Dict[int, TeamMember]:
    return {
        m["member_id"]: TeamMember(
            member_id=m["member_id"],
            name=m.get("name", ""),
            is_leader=bool(m.get("is_leader", False)),
            redirect_to=m.get("redirect_to"),
        )
        for m in data or []
    }


def history_entry_to_dict(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "timestamp": entry.timestamp.isoformat(),
        "actor": entry.actor,
        "action": entry.action,
        "state": entry.state.value,
        "details": entry.details,
        "payload": entry.payload,
    }


def history_entry_from_dict(data: Dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        timestamp=datetime.fromisoformat(data["timestamp"]),
        actor=data["actor"],
        action=data["action"],
        state=ReportState(data["state"]),
        details=data.get("details", ""),
        payload=data.get("payload") or {},
    )


def report_to_snapshot(report: Report) -> Dict[str, Any]:
    """Submission snapshot: everything the external document is rendered from"""
    return {
        "id": str(report.id) if report.id else None,
        "order_id": report.order_id,
        "order_number": report.order_number,
        "processor": report.processor,
        "team": team_to_list(report.team),
        "part_a": part_a_to_dict(report.part_a),
        "part_b": part_b_to_dict(report.part_b),
        "calculation": calculations_to_dict(report.calculation),
        "payouts": {
            str(member_id): str(amount)
            for member_id, amount in calculate_payouts(report.calculation, report.team).items()
        },
    }
