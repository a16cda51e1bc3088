"""Tariff feed HTTP client for fetching effective-dated price lists"""

import httpx
from typing import List
from trip_reports.domain.models import PriceList
from trip_reports.domain.exceptions import TariffAPIError
from trip_reports.domain.serialization import price_list_from_dict
from trip_reports.config import settings


class TariffClient:
    """Client for the external pricing feed"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.tariff_api_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def get_price_lists(self) -> List[PriceList]:
        """
        Fetch every published price list; the caller resolves the one in effect.

        Raises:
            TariffAPIError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.get(f"{self.base_url}/tariffs")
                response.raise_for_status()
                data = response.json()

                return [price_list_from_dict(item) for item in data.get("price_lists", [])]

            except httpx.TimeoutException as e:
                raise TariffAPIError(f"Tariff API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise TariffAPIError(f"Tariff API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise TariffAPIError(f"Tariff API unreachable: {e}") from e
            except (KeyError, ValueError, TypeError, ArithmeticError) as e:
                raise TariffAPIError(f"Invalid price list data from tariff feed: {e}") from e
