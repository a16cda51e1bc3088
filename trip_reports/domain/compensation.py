"""Compensation engine - per-member reimbursement breakdown"""

from collections import defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional, Sequence

from trip_reports.domain.exceptions import InvalidReportDataError
from trip_reports.domain.models import (
    CompensationCalculation,
    PartA,
    PriceList,
    TeamMember,
    TransportMode,
    TravelGroup,
)
from trip_reports.domain.tariffs import find_tariff_band, resolve_price_list
from trip_reports.domain.work_hours import calculate_work_hours

CENT = Decimal("0.01")
ZERO = Decimal("0")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculation_date(part_a: PartA) -> date:
    """Execution date, or the earliest segment date when it is unset"""
    if part_a.execution_date is not None:
        return part_a.execution_date

    segment_dates = [s.date for s in part_a.segments]
    if not segment_dates:
        raise InvalidReportDataError("Execution date is unknown: no execution date and no travel segments")
    return min(segment_dates)


def designated_driver(group: TravelGroup, part_a: PartA) -> Optional[int]:
    """Group driver, falling back to the report's primary driver"""
    return group.driver if group.driver is not None else part_a.primary_driver


def calculate_transport_costs(part_a: PartA, price_list: PriceList, member_id: int) -> Decimal:
    """
    Transport reimbursement for one member.

    Only segments the member drove count:
    - vehicle modes: km * rate (elevated rate when the report has the flag)
    - public transit: ticket cost, distance ignored
    - on foot / bicycle: nothing
    """
    rate = price_list.elevated_rate_per_km if part_a.elevated_rate else price_list.rate_per_km

    total = ZERO
    for group in part_a.travel_groups:
        if designated_driver(group, part_a) != member_id:
            continue
        for segment in group.segments:
            if segment.transport_mode.is_vehicle:
                total += segment.distance_km * rate
            elif segment.transport_mode == TransportMode.PUBLIC_TRANSIT:
                total += segment.ticket_cost

    return _money(total)


def is_driver(part_a: PartA, member_id: int) -> bool:
    return any(designated_driver(group, part_a) == member_id for group in part_a.travel_groups)


def calculate_compensation(
    part_a: PartA,
    price_lists: Iterable[PriceList],
    member_id: int,
) -> CompensationCalculation:
    """
    Main entry point: full breakdown for one member.

    Flow:
    1. Resolve the price list effective on the calculation date
    2. Aggregate work hours and match a tariff band (no match -> zero allowances)
    3. Transport for segments the member drove
    4. Lodging and incidentals the member paid
    5. Sum everything
    """
    price_list = resolve_price_list(price_lists, calculation_date(part_a))

    work_hours = calculate_work_hours(part_a.segments)
    band = find_tariff_band(work_hours, price_list.bands)

    transport = calculate_transport_costs(part_a, price_list, member_id)
    meal_allowance = _money(band.meal_allowance) if band else _money(ZERO)
    work_allowance = _money(band.work_allowance) if band else _money(ZERO)

    accommodation = _money(sum((a.amount for a in part_a.accommodations if a.paid_by == member_id), ZERO))
    incidentals = _money(sum((e.amount for e in part_a.additional_expenses if e.paid_by == member_id), ZERO))

    total = transport + meal_allowance + work_allowance + accommodation + incidentals

    return CompensationCalculation(
        transport=transport,
        meal_allowance=meal_allowance,
        work_allowance=work_allowance,
        accommodation=accommodation,
        incidentals=incidentals,
        total=total,
        work_hours=work_hours,
        band=band,
        is_driver=is_driver(part_a, member_id),
    )


def calculate_compensation_for_all_members(
    part_a: PartA,
    price_lists: Sequence[PriceList],
    team: Dict[int, TeamMember],
) -> Dict[int, CompensationCalculation]:
    """Breakdown for every team member, keyed by member id"""
    return {member_id: calculate_compensation(part_a, price_lists, member_id) for member_id in team}


def calculate_payouts(
    calculations: Dict[int, CompensationCalculation],
    team: Dict[int, TeamMember],
) -> Dict[int, Decimal]:
    """Amount each member is actually paid once payout redirects are applied"""
    payouts: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for member_id, calculation in calculations.items():
        member = team.get(member_id)
        recipient = member.redirect_to if member and member.redirect_to is not None else member_id
        payouts[recipient] += calculation.total
    return dict(payouts)
