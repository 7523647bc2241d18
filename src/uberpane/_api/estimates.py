"""Wait-time and price estimate endpoints.

Endpoints:
  - GET /estimates/time
  - GET /estimates/price
"""

from __future__ import annotations

from typing import Any

from uberpane._api._common import parse_model_list
from uberpane._transport import Transport
from uberpane.models.estimate import PriceEstimate, TimeEstimate


async def fetch_time_estimates(
    transport: Transport,
    latitude: float,
    longitude: float,
    *,
    product_id: str | None = None,
    customer_uuid: str | None = None,
) -> list[TimeEstimate]:
    """Fetch pickup wait times for every product at a location."""
    endpoint = "/estimates/time"
    params: dict[str, Any] = {"start_latitude": latitude, "start_longitude": longitude}
    if product_id:
        params["product_id"] = product_id
    if customer_uuid:
        params["customer_uuid"] = customer_uuid
    payload = await transport.request_json("GET", endpoint, params=params)
    return parse_model_list(TimeEstimate, payload, "times", endpoint=endpoint)


async def fetch_price_estimates(
    transport: Transport,
    latitude: float,
    longitude: float,
    *,
    end_latitude: float | None = None,
    end_longitude: float | None = None,
) -> list[PriceEstimate]:
    """Fetch price estimates (and surge multipliers) for every product.

    Without an explicit destination the start location is used, which
    still yields the surge multiplier.
    """
    endpoint = "/estimates/price"
    params: dict[str, Any] = {
        "start_latitude": latitude,
        "start_longitude": longitude,
        "end_latitude": latitude if end_latitude is None else end_latitude,
        "end_longitude": longitude if end_longitude is None else end_longitude,
    }
    payload = await transport.request_json("GET", endpoint, params=params)
    return parse_model_list(PriceEstimate, payload, "prices", endpoint=endpoint)
