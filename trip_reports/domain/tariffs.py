"""Tariff resolution - which price list and band apply"""

from datetime import date
from typing import Iterable, Optional, Sequence

from trip_reports.domain.exceptions import TariffNotFoundError
from trip_reports.domain.models import PriceList, TariffBand


def resolve_price_list(price_lists: Iterable[PriceList], on_date: date) -> PriceList:
    """
    Pick the price list in effect on a date.

    The winner is the list with the latest effective_from that is not after
    on_date. Calculation cannot proceed without one, so a miss raises.
    """
    candidates = [p for p in price_lists if p.effective_from <= on_date]
    if not candidates:
        raise TariffNotFoundError(f"No price list effective on {on_date.isoformat()}")
    return max(candidates, key=lambda p: p.effective_from)


def find_tariff_band(hours: float, bands: Sequence[TariffBand]) -> Optional[TariffBand]:
    """First band whose [hours_from, hours_to) contains hours, None when nothing matches"""
    for band in bands:
        if band.contains(hours):
            return band
    return None
