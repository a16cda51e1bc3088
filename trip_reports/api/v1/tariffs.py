"""GET /v1/tariffs - Price list in effect on a date"""

import datetime as dt
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from trip_reports.api.dependencies import get_request_id, get_tariff_client
from trip_reports.api.errors import to_http_exception
from trip_reports.api.v1.schemas import PriceListResponse
from trip_reports.domain.exceptions import TariffAPIError, TariffNotFoundError
from trip_reports.domain.tariffs import resolve_price_list
from trip_reports.infrastructure.clients.tariffs import TariffClient
from trip_reports.infrastructure.observability.metrics import tariff_fetch_failures_counter

router = APIRouter()


@router.get("/tariffs", response_model=PriceListResponse)
async def get_effective_tariff(
    request: Request,
    date: Optional[dt.date] = Query(None, description="Reference date, defaults to today"),
    tariff_client: TariffClient = Depends(get_tariff_client),
):
    """
    Resolve the price list in effect on a date.

    Returns:
        Kilometre rates and time bands of the latest list not effective after the date
    """
    on_date = date or dt.date.today()

    try:
        price_lists = await tariff_client.get_price_lists()
        return PriceListResponse.from_domain(resolve_price_list(price_lists, on_date))

    except TariffAPIError as e:
        tariff_fetch_failures_counter.inc()
        logging.error(f"Tariff API error: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e) from e

    except TariffNotFoundError as e:
        raise to_http_exception(e) from e
