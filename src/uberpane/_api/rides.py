"""Ride request endpoints.

Endpoints:
  - POST /requests
  - GET /requests/{request_id}
  - DELETE /requests/{request_id}
"""

from __future__ import annotations

import logging
from typing import Any

from uberpane._api._common import parse_model
from uberpane._transport import Transport
from uberpane.models.estimate import Location
from uberpane.models.ride import RideHandle

_logger = logging.getLogger(__name__)


def build_ride_request(product_id: str, start: Location, end: Location | None) -> dict[str, Any]:
    """Build the ``POST /requests`` body."""
    body: dict[str, Any] = {
        "product_id": product_id,
        "start_latitude": start.latitude,
        "start_longitude": start.longitude,
    }
    if end is not None:
        body["end_latitude"] = end.latitude
        body["end_longitude"] = end.longitude
    return body


async def create_ride(
    transport: Transport,
    product_id: str,
    start: Location,
    end: Location | None = None,
) -> RideHandle:
    """Request a ride and return the initial handle."""
    endpoint = "/requests"
    payload = await transport.request_json("POST", endpoint, body=build_ride_request(product_id, start, end))
    ride = parse_model(RideHandle, payload, endpoint=endpoint)
    _logger.debug("Created ride %s status=%s", ride.ride_id, ride.status)
    return ride


async def fetch_ride(transport: Transport, ride_id: str) -> RideHandle:
    """Fetch the current state of a ride."""
    endpoint = f"/requests/{ride_id}"
    payload = await transport.request_json("GET", endpoint)
    return parse_model(RideHandle, payload, endpoint=endpoint)


async def cancel_ride(transport: Transport, ride_id: str) -> None:
    """Cancel a ride.  The provider answers ``204 No Content`` on success."""
    await transport.request_json("DELETE", f"/requests/{ride_id}")
