"""Unit tests for price list and tariff band resolution"""

import pytest
from datetime import date
from trip_reports.domain.exceptions import TariffNotFoundError
from trip_reports.domain.tariffs import find_tariff_band, resolve_price_list


def test_latest_effective_list_wins(price_lists):
    assert resolve_price_list(price_lists, date(2024, 6, 1)).effective_from == date(2024, 1, 1)
    assert resolve_price_list(price_lists, date(2023, 12, 31)).effective_from == date(2023, 1, 1)


def test_list_applies_on_its_effective_date(price_lists):
    assert resolve_price_list(price_lists, date(2024, 1, 1)).effective_from == date(2024, 1, 1)


def test_no_list_before_first_effective_date(price_lists):
    with pytest.raises(TariffNotFoundError):
        resolve_price_list(price_lists, date(2022, 12, 31))


def test_band_lower_bound_inclusive_upper_exclusive(price_lists):
    bands = price_lists[1].bands

    assert find_tariff_band(6.0, bands).hours_from == 6
    assert find_tariff_band(7.99, bands).hours_from == 6
    assert find_tariff_band(8.0, bands).hours_from == 8


def test_no_matching_band(price_lists):
    assert find_tariff_band(30.0, price_lists[1].bands) is None
