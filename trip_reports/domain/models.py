"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from trip_reports.domain.exceptions import InvalidReportDataError


class TransportMode(str, Enum):
    """How a travel segment was covered"""

    VEHICLE = "vehicle"
    VEHICLE_TRAILER = "vehicle_trailer"
    PUBLIC_TRANSIT = "public_transit"
    ON_FOOT = "on_foot"
    BICYCLE = "bicycle"

    @property
    def is_vehicle(self) -> bool:
        return self in (TransportMode.VEHICLE, TransportMode.VEHICLE_TRAILER)


class ReportState(str, Enum):
    """Lifecycle state of a report"""

    DRAFT = "draft"
    SEND = "send"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class TravelSegment:
    """One leg of travel on one day"""

    id: str
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    start_place: str = ""
    end_place: str = ""
    transport_mode: TransportMode = TransportMode.VEHICLE
    distance_km: Decimal = Decimal("0")  # vehicle modes only
    ticket_cost: Decimal = Decimal("0")  # public transit only
    attachments: List[str] = field(default_factory=list)


@dataclass
class TravelGroup:
    """Members travelling together; the driver is compensated for every segment"""

    id: str
    travelers: List[int] = field(default_factory=list)
    driver: Optional[int] = None
    vehicle_plate: str = ""
    segments: List[TravelSegment] = field(default_factory=list)


@dataclass
class Accommodation:
    """Lodging paid by one team member"""

    id: str
    date: date
    amount: Decimal
    paid_by: int
    facility: str = ""
    place: str = ""
    attachments: List[str] = field(default_factory=list)


@dataclass
class AdditionalExpense:
    """Incidental expense paid by one team member"""

    id: str
    date: date
    amount: Decimal
    paid_by: int
    description: str = ""
    attachments: List[str] = field(default_factory=list)


@dataclass
class PartA:
    """Travel and expense section of a report"""

    execution_date: Optional[date] = None
    travel_groups: List[TravelGroup] = field(default_factory=list)
    primary_driver: Optional[int] = None
    elevated_rate: bool = False
    accommodations: List[Accommodation] = field(default_factory=list)
    additional_expenses: List[AdditionalExpense] = field(default_factory=list)
    completed: bool = False

    @property
    def segments(self) -> List[TravelSegment]:
        return [segment for group in self.travel_groups for segment in group.segments]


@dataclass
class InspectedObject:
    """Condition found on one inspected object"""

    object_id: str
    condition: Optional[str] = None
    note: str = ""
    attachments: List[str] = field(default_factory=list)


@dataclass
class PartB:
    """Inspected-object condition section of a report"""

    objects: Dict[str, InspectedObject] = field(default_factory=dict)
    route_note: str = ""
    route_attachments: List[str] = field(default_factory=list)
    renewed_sections: List[str] = field(default_factory=list)
    completed: bool = False


@dataclass(frozen=True)
class TariffBand:
    """Worked-hours interval [hours_from, hours_to) with flat allowances"""

    hours_from: float
    hours_to: float
    meal_allowance: Decimal
    work_allowance: Decimal

    def contains(self, hours: float) -> bool:
        return self.hours_from <= hours < self.hours_to


@dataclass(frozen=True)
class PriceList:
    """Rates in effect from a given date"""

    effective_from: date
    rate_per_km: Decimal
    elevated_rate_per_km: Decimal
    bands: Tuple[TariffBand, ...] = ()


@dataclass(frozen=True)
class CompensationCalculation:
    """Per-member financial breakdown"""

    transport: Decimal
    meal_allowance: Decimal
    work_allowance: Decimal
    accommodation: Decimal
    incidentals: Decimal
    total: Decimal
    work_hours: float
    band: Optional[TariffBand]
    is_driver: bool


@dataclass
class TeamMember:
    """Team member captured when the report was created"""

    member_id: int
    name: str = ""
    is_leader: bool = False
    redirect_to: Optional[int] = None  # payout goes to this teammate instead


@dataclass
class HistoryEntry:
    """Single append-only entry in a report's history"""

    timestamp: datetime
    actor: int
    action: str
    state: ReportState
    details: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Report:
    """Report aggregate root"""

    order_id: int
    processor: int
    team: Dict[int, TeamMember]
    order_number: str = ""
    part_a: PartA = field(default_factory=PartA)
    part_b: PartB = field(default_factory=PartB)
    calculation: Dict[int, CompensationCalculation] = field(default_factory=dict)
    state: ReportState = ReportState.DRAFT
    history: List[HistoryEntry] = field(default_factory=list)
    id: Optional[uuid.UUID] = None
    version: int = 0
    date_send: Optional[datetime] = None
    send_id: Optional[uuid.UUID] = None  # identifies the latest entry into send
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_leader(self, member_id: int) -> bool:
        member = self.team.get(member_id)
        return member is not None and member.is_leader

    @property
    def is_editable(self) -> bool:
        return self.state in (ReportState.DRAFT, ReportState.REJECTED)


def validate_team(team: Dict[int, TeamMember]) -> None:
    """
    Check team snapshot consistency.

    - mapping keys match member ids
    - at least one leader
    - redirect targets are other team members that do not redirect themselves
    """
    if not team:
        raise InvalidReportDataError("Team must have at least one member")

    for member_id, member in team.items():
        if member_id != member.member_id:
            raise InvalidReportDataError(f"Team key {member_id} does not match member {member.member_id}")

    if not any(m.is_leader for m in team.values()):
        raise InvalidReportDataError("Team has no leader")

    for member in team.values():
        target = member.redirect_to
        if target is None:
            continue
        if target == member.member_id:
            raise InvalidReportDataError(f"Member {member.member_id} cannot redirect payout to themselves")
        if target not in team:
            raise InvalidReportDataError(f"Payout redirect target {target} is not a team member")
        if team[target].redirect_to is not None:
            raise InvalidReportDataError(f"Payout redirect target {target} redirects its own payout")


def validate_part_a(part_a: PartA, team: Dict[int, TeamMember]) -> None:
    """
    Check that every member referenced by Part A is on the team.

    Covers drivers, travelers and the payers of lodging and expenses; an
    unknown payer would drop the amount from every breakdown.
    """
    def check(member_id: Optional[int], role: str) -> None:
        if member_id is not None and member_id not in team:
            raise InvalidReportDataError(f"{role} {member_id} is not a team member")

    check(part_a.primary_driver, "Primary driver")
    for group in part_a.travel_groups:
        check(group.driver, f"Driver of travel group {group.id}")
        for traveler in group.travelers:
            check(traveler, f"Traveler in travel group {group.id}")
    for accommodation in part_a.accommodations:
        check(accommodation.paid_by, f"Payer of accommodation {accommodation.id}")
    for expense in part_a.additional_expenses:
        check(expense.paid_by, f"Payer of expense {expense.id}")


def apply_payment_redirects(team: Dict[int, TeamMember], redirects: Dict[int, int]) -> Dict[int, TeamMember]:
    """Return a new team mapping with the given redirects (member -> recipient), validated"""
    unknown = set(redirects) - set(team)
    if unknown:
        raise InvalidReportDataError(f"Payout redirect for unknown members: {sorted(unknown)}")

    updated = {
        member_id: TeamMember(
            member_id=member.member_id,
            name=member.name,
            is_leader=member.is_leader,
            redirect_to=redirects.get(member_id),
        )
        for member_id, member in team.items()
    }
    validate_team(updated)
    return updated
