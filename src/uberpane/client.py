"""Async client for the ride-hailing provider API."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

from uberpane._api import estimates as _estimates_api
from uberpane._api import rides as _rides_api
from uberpane._transport import HttpTransport, Transport
from uberpane.config import ProviderConfig
from uberpane.exceptions import UberPaneError
from uberpane.models.estimate import Location, PriceEstimate, TimeEstimate
from uberpane.models.ride import RideHandle
from uberpane.session import Session

_logger = logging.getLogger(__name__)


class RideProvider(Protocol):
    """The provider calls the pane depends on.

    :class:`UberClient` is the production implementation; tests pass
    in-memory fakes.
    """

    async def get_time_estimates(
        self,
        latitude: float,
        longitude: float,
        product_id: str | None = None,
    ) -> list[TimeEstimate]:
        ...

    async def get_price_estimates(
        self,
        latitude: float,
        longitude: float,
        end_latitude: float | None = None,
        end_longitude: float | None = None,
    ) -> list[PriceEstimate]:
        ...

    async def create_ride(self, product_id: str, start: Location, end: Location | None) -> RideHandle:
        ...

    async def get_ride(self, ride_id: str) -> RideHandle:
        ...

    async def cancel_ride(self, ride_id: str) -> None:
        ...


class UberClient:
    """Async client for the provider's estimate and ride request API.

    The rider session is injected; the client never obtains or refreshes
    tokens itself.

    Usage::

        async with UberClient(ProviderConfig(), session) as client:
            times = await client.get_time_estimates(lat, lon)
    """

    def __init__(
        self,
        config: ProviderConfig,
        session: Session,
        *,
        http_session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._session = session
        self._external_http = http_session is not None
        self._http_session = http_session
        self._transport = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> UberClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._session, self._http_session)
        if self._session.is_expired:
            _logger.warning("Rider session token has expired; requests will likely be rejected")
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_http and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise UberPaneError("Client not initialized. Use 'async with UberClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Estimates
    # ------------------------------------------------------------------

    async def get_time_estimates(
        self,
        latitude: float,
        longitude: float,
        product_id: str | None = None,
    ) -> list[TimeEstimate]:
        return await _estimates_api.fetch_time_estimates(
            self._require_transport(),
            latitude,
            longitude,
            product_id=product_id,
            customer_uuid=self._session.user_uuid,
        )

    async def get_price_estimates(
        self,
        latitude: float,
        longitude: float,
        end_latitude: float | None = None,
        end_longitude: float | None = None,
    ) -> list[PriceEstimate]:
        return await _estimates_api.fetch_price_estimates(
            self._require_transport(),
            latitude,
            longitude,
            end_latitude=end_latitude,
            end_longitude=end_longitude,
        )

    # ------------------------------------------------------------------
    # Ride requests
    # ------------------------------------------------------------------

    async def create_ride(self, product_id: str, start: Location, end: Location | None) -> RideHandle:
        return await _rides_api.create_ride(self._require_transport(), product_id, start, end)

    async def get_ride(self, ride_id: str) -> RideHandle:
        return await _rides_api.fetch_ride(self._require_transport(), ride_id)

    async def cancel_ride(self, ride_id: str) -> None:
        await _rides_api.cancel_ride(self._require_transport(), ride_id)
