"""Estimate cache with periodic refresh and stale-data expiry."""

from __future__ import annotations

import asyncio
import logging

from uberpane._constants import TIMER_STALE, TIMER_UPDATE
from uberpane.client import RideProvider
from uberpane.exceptions import ProductNotFoundError, ProviderError
from uberpane.models.estimate import EstimateSnapshot, PriceEstimate, TimeEstimate
from uberpane.timers import TimerSet

_logger = logging.getLogger(__name__)


def build_snapshot(
    product: str,
    times: list[TimeEstimate],
    prices: list[PriceEstimate],
) -> EstimateSnapshot:
    """Pick the configured product out of the provider's estimate lists.

    Products are matched by display name.  A product with prices but no
    time estimate (no cars nearby) yields ``wait_seconds=None``.

    Raises
    ------
    ProductNotFoundError
        If there is no price estimate for *product*.
    """
    price = next((p for p in prices if p.display_name == product), None)
    if price is None:
        raise ProductNotFoundError(product)
    wait = next((t for t in times if t.display_name == product), None)
    return EstimateSnapshot(
        product=product,
        product_id=price.product_id,
        wait_seconds=wait.estimate if wait is not None else None,
        surge_multiplier=price.surge_multiplier,
    )


class EstimateCache:
    """Most recent estimate for one product, and the policy that keeps it fresh.

    * :meth:`refresh` fetches once and propagates provider errors.
    * :meth:`start_periodic` keeps refreshing every ``update_interval``
      seconds, backing off ``retry_delay`` seconds after a failure.
    * The snapshot is dropped ``stale_after`` seconds after the last
      successful refresh.
    """

    def __init__(
        self,
        provider: RideProvider,
        timers: TimerSet,
        *,
        product: str,
        stale_after: float,
        update_interval: float,
        retry_delay: float = 5.0,
        end_latitude: float | None = None,
        end_longitude: float | None = None,
    ) -> None:
        self._provider = provider
        self._timers = timers
        self._product = product
        self._stale_after = stale_after
        self._update_interval = update_interval
        self._retry_delay = retry_delay
        self._end_latitude = end_latitude
        self._end_longitude = end_longitude
        self._lock = asyncio.Lock()
        self._snapshot: EstimateSnapshot | None = None
        self._periodic = False
        self._position: tuple[float, float] | None = None

    @property
    def snapshot(self) -> EstimateSnapshot | None:
        return self._snapshot

    @property
    def periodic(self) -> bool:
        return self._periodic

    async def refresh(self, latitude: float, longitude: float) -> EstimateSnapshot:
        """Fetch fresh estimates and replace the snapshot.

        Raises
        ------
        ProviderError
            Network or auth failure calling the provider.
        ProductNotFoundError
            The configured product is not in the provider's prices.  The
            cached snapshot is cleared first.
        """
        times = await self._provider.get_time_estimates(latitude, longitude)
        prices = await self._provider.get_price_estimates(
            latitude, longitude, self._end_latitude, self._end_longitude
        )
        try:
            snapshot = build_snapshot(self._product, times, prices)
        except ProductNotFoundError:
            # Product gone from the latest data, so drop the old snapshot too.
            await self.invalidate()
            raise

        async with self._lock:
            self._snapshot = snapshot
            self._timers.arm(TIMER_STALE, self._stale_after, self._expire)

        _logger.debug(
            "Estimates for %s: wait=%ss surge=%.1f",
            self._product,
            snapshot.wait_seconds,
            snapshot.surge_multiplier,
        )
        return snapshot

    async def invalidate(self) -> None:
        async with self._lock:
            self._snapshot = None
            self._timers.disarm(TIMER_STALE)

    def start_periodic(self, latitude: float, longitude: float) -> None:
        """Refresh now, then every ``update_interval`` until stopped."""
        self._periodic = True
        self._position = (latitude, longitude)
        self._timers.arm(TIMER_UPDATE, 0, self._tick)

    def stop_periodic(self) -> None:
        self._periodic = False
        self._timers.disarm(TIMER_UPDATE)

    async def _tick(self) -> None:
        if not self._periodic or self._position is None:
            return
        try:
            await self.refresh(*self._position)
        except (ProviderError, ProductNotFoundError) as exc:
            _logger.error("Failed to get estimates: %s", exc)
            if self._periodic:
                self._timers.arm(TIMER_UPDATE, self._retry_delay, self._tick)
            return
        if self._periodic:
            self._timers.arm(TIMER_UPDATE, self._update_interval, self._tick)

    async def _expire(self) -> None:
        async with self._lock:
            if self._snapshot is not None:
                _logger.info("Estimates for %s are stale, discarding", self._product)
            self._snapshot = None
