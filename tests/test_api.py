from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from uberpane._api.estimates import fetch_price_estimates, fetch_time_estimates
from uberpane._api.rides import build_ride_request, cancel_ride, create_ride, fetch_ride
from uberpane.client import UberClient
from uberpane.config import ProviderConfig
from uberpane.exceptions import ProviderApiError, UberPaneError
from uberpane.models.estimate import Location
from uberpane.models.ride import RideStatus
from uberpane.session import Session


class _RecordingTransport:
    def __init__(self, response: Any = None) -> None:
        self.response = response
        self.calls: list[tuple[str, str, dict[str, Any] | None, dict[str, Any] | None]] = []

    async def request_json(
        self,
        method: str,
        endpoint: str,
        *,
        params: Mapping[str, Any] | None = None,
        body: Mapping[str, Any] | None = None,
    ) -> Any:
        self.calls.append((method, endpoint, dict(params) if params else None, dict(body) if body else None))
        return self.response


HOME = Location(latitude=51.5, longitude=-0.12)


@pytest.mark.asyncio
async def test_time_estimates_parsed() -> None:
    transport = _RecordingTransport(
        {
            "times": [
                {"product_id": "p-x", "display_name": "uberX", "estimate": 125},
                {"product_id": "p-xl", "display_name": "uberXL", "estimate": 600},
            ]
        }
    )

    times = await fetch_time_estimates(transport, 51.5, -0.12, customer_uuid="user-1")

    assert [t.display_name for t in times] == ["uberX", "uberXL"]
    assert times[0].estimate == 125
    method, endpoint, params, _ = transport.calls[0]
    assert (method, endpoint) == ("GET", "/estimates/time")
    assert params == {"start_latitude": 51.5, "start_longitude": -0.12, "customer_uuid": "user-1"}


@pytest.mark.asyncio
async def test_price_estimates_default_destination_is_start() -> None:
    transport = _RecordingTransport({"prices": [{"product_id": "p-x", "display_name": "uberX", "surge_multiplier": 1.4}]})

    prices = await fetch_price_estimates(transport, 51.5, -0.12)

    assert prices[0].surge_multiplier == 1.4
    _, endpoint, params, _ = transport.calls[0]
    assert endpoint == "/estimates/price"
    assert params is not None
    assert params["end_latitude"] == 51.5
    assert params["end_longitude"] == -0.12


@pytest.mark.asyncio
async def test_negative_surge_is_a_provider_error() -> None:
    transport = _RecordingTransport({"prices": [{"product_id": "p-x", "display_name": "uberX", "surge_multiplier": -2}]})

    with pytest.raises(ProviderApiError) as exc_info:
        await fetch_price_estimates(transport, 51.5, -0.12)

    assert exc_info.value.code == "invalid_payload"
    assert exc_info.value.endpoint == "/estimates/price"


@pytest.mark.asyncio
async def test_missing_list_is_a_provider_error() -> None:
    with pytest.raises(ProviderApiError):
        await fetch_time_estimates(_RecordingTransport({"message": "nope"}), 51.5, -0.12)


def test_ride_request_body_without_destination() -> None:
    assert build_ride_request("p-x", HOME, None) == {
        "product_id": "p-x",
        "start_latitude": 51.5,
        "start_longitude": -0.12,
    }


@pytest.mark.asyncio
async def test_create_fetch_and_cancel_ride() -> None:
    transport = _RecordingTransport({"request_id": "r-1", "status": "processing", "eta": None})
    end = Location(latitude=51.6, longitude=-0.1)

    ride = await create_ride(transport, "p-x", HOME, end)
    assert ride.ride_id == "r-1"
    assert ride.status == RideStatus.PROCESSING
    assert transport.calls[0][0:2] == ("POST", "/requests")
    assert transport.calls[0][3] == {
        "product_id": "p-x",
        "start_latitude": 51.5,
        "start_longitude": -0.12,
        "end_latitude": 51.6,
        "end_longitude": -0.1,
    }

    transport.response = {"request_id": "r-1", "status": "accepted", "eta": 3}
    ride = await fetch_ride(transport, "r-1")
    assert ride.eta_seconds == 180
    assert transport.calls[1][0:2] == ("GET", "/requests/r-1")

    transport.response = None
    await cancel_ride(transport, "r-1")
    assert transport.calls[2][0:2] == ("DELETE", "/requests/r-1")


@pytest.mark.asyncio
async def test_ride_payload_without_id_is_a_provider_error() -> None:
    with pytest.raises(ProviderApiError):
        await fetch_ride(_RecordingTransport({"status": "accepted"}), "r-1")


@pytest.mark.asyncio
async def test_client_uses_injected_transport() -> None:
    transport = _RecordingTransport({"times": []})
    session = Session(access_token="token-1", user_uuid="user-1")

    async with UberClient(ProviderConfig(), session, transport=transport) as client:
        assert await client.get_time_estimates(51.5, -0.12) == []

    assert transport.calls[0][2] is not None
    assert transport.calls[0][2]["customer_uuid"] == "user-1"


@pytest.mark.asyncio
async def test_client_requires_context_manager() -> None:
    client = UberClient(ProviderConfig(), Session(access_token="token-1"))
    with pytest.raises(UberPaneError):
        await client.get_ride("r-1")
