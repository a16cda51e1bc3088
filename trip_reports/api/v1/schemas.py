"""Pydantic schemas for API request/response validation"""

import datetime as dt
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

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
    TariffBand,
    TeamMember,
    TransportMode,
    TravelGroup,
    TravelSegment,
)
from trip_reports.domain.serialization import part_a_to_dict, part_b_to_dict


# --- Requests ---


class TeamMemberSchema(BaseModel):
    """Team member as captured from the order"""

    member_id: int = Field(..., gt=0)
    name: str = Field("", max_length=255)
    is_leader: bool = False


class TravelSegmentSchema(BaseModel):
    """One leg of travel"""

    id: str = Field(..., min_length=1)
    date: dt.date
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    start_place: str = Field("", max_length=255)
    end_place: str = Field("", max_length=255)
    transport_mode: TransportMode = TransportMode.VEHICLE
    distance_km: Decimal = Field(Decimal("0"), ge=0)
    ticket_cost: Decimal = Field(Decimal("0"), ge=0)
    attachments: List[str] = []

    @model_validator(mode="after")
    def check_times(self) -> "TravelSegmentSchema":
        if self.start_time is not None and self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not precede start_time")
        return self

    def to_domain(self) -> TravelSegment:
        return TravelSegment(**self.model_dump())


class TravelGroupSchema(BaseModel):
    """Members travelling together"""

    id: str = Field(..., min_length=1)
    travelers: List[int] = []
    driver: Optional[int] = None
    vehicle_plate: str = Field("", max_length=20)
    segments: List[TravelSegmentSchema] = []

    def to_domain(self) -> TravelGroup:
        return TravelGroup(
            id=self.id,
            travelers=list(self.travelers),
            driver=self.driver,
            vehicle_plate=self.vehicle_plate,
            segments=[s.to_domain() for s in self.segments],
        )


class AccommodationSchema(BaseModel):
    id: str = Field(..., min_length=1)
    date: dt.date
    amount: Decimal = Field(..., ge=0)
    paid_by: int
    facility: str = Field("", max_length=255)
    place: str = Field("", max_length=255)
    attachments: List[str] = []

    def to_domain(self) -> Accommodation:
        return Accommodation(**self.model_dump())


class AdditionalExpenseSchema(BaseModel):
    id: str = Field(..., min_length=1)
    date: dt.date
    amount: Decimal = Field(..., ge=0)
    paid_by: int
    description: str = Field("", max_length=255)
    attachments: List[str] = []

    def to_domain(self) -> AdditionalExpense:
        return AdditionalExpense(**self.model_dump())


class PartARequest(BaseModel):
    """Request body for PUT /v1/orders/{order_id}/report/part-a

    order_number and team are only used when this save creates the report.
    """

    order_number: str = Field("", max_length=255)
    team: List[TeamMemberSchema] = []
    execution_date: Optional[dt.date] = None
    travel_groups: List[TravelGroupSchema] = Field(..., min_length=1)
    primary_driver: Optional[int] = None
    elevated_rate: bool = False
    accommodations: List[AccommodationSchema] = []
    additional_expenses: List[AdditionalExpenseSchema] = []
    payment_redirects: Dict[int, int] = {}
    completed: bool = False

    @model_validator(mode="after")
    def check_calculation_date(self) -> "PartARequest":
        has_segment = any(group.segments for group in self.travel_groups)
        if self.execution_date is None and not has_segment:
            raise ValueError("execution_date is required when no travel segment is given")
        return self

    def to_domain(self) -> PartA:
        return PartA(
            execution_date=self.execution_date,
            travel_groups=[g.to_domain() for g in self.travel_groups],
            primary_driver=self.primary_driver,
            elevated_rate=self.elevated_rate,
            accommodations=[a.to_domain() for a in self.accommodations],
            additional_expenses=[e.to_domain() for e in self.additional_expenses],
            completed=self.completed,
        )


class InspectedObjectSchema(BaseModel):
    condition: Optional[str] = Field(None, max_length=50)
    note: str = Field("", max_length=5000)
    attachments: List[str] = []


class PartBRequest(BaseModel):
    """Request body for PUT /v1/orders/{order_id}/report/part-b"""

    order_number: str = Field("", max_length=255)
    team: List[TeamMemberSchema] = []
    objects: Dict[str, InspectedObjectSchema] = {}
    route_note: str = Field("", max_length=5000)
    route_attachments: List[str] = []
    renewed_sections: List[str] = []
    completed: bool = False

    def to_domain(self) -> PartB:
        return PartB(
            objects={
                object_id: InspectedObject(object_id=object_id, **obj.model_dump())
                for object_id, obj in self.objects.items()
            },
            route_note=self.route_note,
            route_attachments=list(self.route_attachments),
            renewed_sections=list(self.renewed_sections),
            completed=self.completed,
        )


def team_to_domain(team: List[TeamMemberSchema]) -> Dict[int, TeamMember]:
    return {
        m.member_id: TeamMember(member_id=m.member_id, name=m.name, is_leader=m.is_leader)
        for m in team
    }


class DecisionRequest(BaseModel):
    """Request body for POST /v1/reports/{report_id}/decision"""

    approved: bool
    note: str = Field("", max_length=5000)


class ResetRequest(BaseModel):
    note: str = Field("", max_length=5000)


# --- Responses ---


class TariffBandSchema(BaseModel):
    hours_from: float
    hours_to: float
    meal_allowance: Decimal
    work_allowance: Decimal

    @classmethod
    def from_domain(cls, band: TariffBand) -> "TariffBandSchema":
        return cls(
            hours_from=band.hours_from,
            hours_to=band.hours_to,
            meal_allowance=band.meal_allowance,
            work_allowance=band.work_allowance,
        )


class PriceListResponse(BaseModel):
    """Response for GET /v1/tariffs"""

    effective_from: dt.date
    rate_per_km: Decimal
    elevated_rate_per_km: Decimal
    bands: List[TariffBandSchema]

    @classmethod
    def from_domain(cls, price_list: PriceList) -> "PriceListResponse":
        return cls(
            effective_from=price_list.effective_from,
            rate_per_km=price_list.rate_per_km,
            elevated_rate_per_km=price_list.elevated_rate_per_km,
            bands=[TariffBandSchema.from_domain(b) for b in price_list.bands],
        )


class CalculationSchema(BaseModel):
    """Per-member compensation breakdown"""

    transport: Decimal
    meal_allowance: Decimal
    work_allowance: Decimal
    accommodation: Decimal
    incidentals: Decimal
    total: Decimal
    work_hours: float
    band: Optional[TariffBandSchema] = None
    is_driver: bool

    @classmethod
    def from_domain(cls, calculation: CompensationCalculation) -> "CalculationSchema":
        return cls(
            transport=calculation.transport,
            meal_allowance=calculation.meal_allowance,
            work_allowance=calculation.work_allowance,
            accommodation=calculation.accommodation,
            incidentals=calculation.incidentals,
            total=calculation.total,
            work_hours=calculation.work_hours,
            band=TariffBandSchema.from_domain(calculation.band) if calculation.band else None,
            is_driver=calculation.is_driver,
        )


class MemberCalculationResponse(BaseModel):
    """Response for GET /v1/reports/{report_id}/calculation"""

    report_id: str
    member_id: int
    calculation: CalculationSchema


class HistoryItem(BaseModel):
    """Single history entry"""

    timestamp: dt.datetime
    actor: int
    action: str
    state: str
    details: str
    payload: Dict[str, Any]

    @classmethod
    def from_domain(cls, entry: HistoryEntry) -> "HistoryItem":
        return cls(
            timestamp=entry.timestamp,
            actor=entry.actor,
            action=entry.action,
            state=entry.state.value,
            details=entry.details,
            payload=entry.payload,
        )


class HistoryResponse(BaseModel):
    """Response for GET /v1/reports/{report_id}/history"""

    report_id: str
    entries: List[HistoryItem]


class TeamMemberResponse(BaseModel):
    member_id: int
    name: str
    is_leader: bool
    redirect_to: Optional[int] = None


class ReportResponse(BaseModel):
    """Full report view"""

    report_id: str
    order_id: int
    order_number: str
    processor: int
    state: str
    version: int
    team: List[TeamMemberResponse]
    part_a: Dict[str, Any]
    part_b: Dict[str, Any]
    calculation: Dict[str, CalculationSchema]
    date_send: Optional[dt.datetime] = None

    @classmethod
    def from_domain(cls, report: Report) -> "ReportResponse":
        return cls(
            report_id=str(report.id),
            order_id=report.order_id,
            order_number=report.order_number,
            processor=report.processor,
            state=report.state.value,
            version=report.version,
            team=[
                TeamMemberResponse(
                    member_id=m.member_id,
                    name=m.name,
                    is_leader=m.is_leader,
                    redirect_to=m.redirect_to,
                )
                for m in report.team.values()
            ],
            part_a=part_a_to_dict(report.part_a),
            part_b=part_b_to_dict(report.part_b),
            calculation={str(k): CalculationSchema.from_domain(v) for k, v in report.calculation.items()},
            date_send=report.date_send,
        )


class ReportSummaryItem(BaseModel):
    report_id: str
    order_id: int
    order_number: str
    state: str


class MemberReportsResponse(BaseModel):
    """Response for GET /v1/members/{member_id}/reports"""

    member_id: int
    reports: List[ReportSummaryItem]


class StateSummaryResponse(BaseModel):
    """Response for GET /v1/reports/summary"""

    counts: Dict[str, int]
