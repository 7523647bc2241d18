"""Top-level pane: visibility lifecycle, gesture routing and frame entry point."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any, Protocol

from PIL import Image

from uberpane._constants import TIMER_INTRO, TIMER_VISIBILITY
from uberpane.booking import BookingStateMachine
from uberpane.cache import EstimateCache
from uberpane.client import RideProvider
from uberpane.config import PaneConfig
from uberpane.exceptions import ConfigError, LocationUnavailableError, ProductNotFoundError, ProviderError
from uberpane.models.booking import PaneView
from uberpane.models.estimate import EstimateSnapshot, Location
from uberpane.models.gesture import GestureEvent
from uberpane.render import Renderer
from uberpane.timers import TimerSet

_logger = logging.getLogger(__name__)


class LocationProvider(Protocol):
    """Resolves the device's coordinates."""

    async def resolve_location(self) -> tuple[float, float]:
        """Return ``(latitude, longitude)`` or raise :class:`LocationUnavailableError`."""
        ...


class PaneController:
    """Owns the pane for the lifetime of the process.

    * The pane becomes *visible* on the first :meth:`render` and hidden again
      once renders stop for ``visibility_timeout``.  Becoming visible shows the
      logo for ``intro_duration`` and starts refreshing estimates.
    * Gestures go exclusively to the booking state machine while a booking is
      active.  Otherwise a tap refreshes estimates and a double tap opens the
      booking confirmation for the cached estimate.

    Usage::

        pane = PaneController(config, client, Renderer(assets))
        await pane.start()
        frame = pane.render()
        await pane.gesture(GestureEvent(tap=True))
        await pane.close()
    """

    def __init__(
        self,
        config: PaneConfig,
        provider: RideProvider,
        renderer: Renderer,
        *,
        location: LocationProvider | None = None,
        clock: Callable[[], float] = time.monotonic,
        booking: BookingStateMachine | None = None,
    ) -> None:
        self._config = config
        self._renderer = renderer
        self._location = location
        self._clock = clock
        self._lock = asyncio.Lock()
        self._timers = TimerSet("pane")
        self._tasks: set[asyncio.Task[Any]] = set()
        self._cache = EstimateCache(
            provider,
            self._timers,
            product=config.product,
            stale_after=config.stale_data_timeout,
            update_interval=config.update_interval,
            retry_delay=config.refresh_retry_delay,
            end_latitude=config.end_latitude if config.has_destination else None,
            end_longitude=config.end_longitude if config.has_destination else None,
        )
        self._booking = booking or BookingStateMachine(provider, config, clock=clock)

        self._visible = False
        self._intro = False
        self._last_tap = clock()
        self._last_double_tap: float | None = None
        self._tap_down = False
        self._double_tap_down = False
        self._latitude = config.latitude
        self._longitude = config.longitude

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def config(self) -> PaneConfig:
        return self._config

    @property
    def visible(self) -> bool:
        return self._visible

    @property
    def intro(self) -> bool:
        return self._intro

    @property
    def estimate(self) -> EstimateSnapshot | None:
        return self._cache.snapshot

    @property
    def booking(self) -> BookingStateMachine:
        return self._booking

    @property
    def location(self) -> Location:
        return Location(latitude=self._latitude, longitude=self._longitude)

    @property
    def locked(self) -> bool:
        """Whether the display should stay on this pane."""
        return self._booking.locked

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Resolve the home location when none is configured.

        Retries every ``location_retry_delay`` seconds until the location
        provider returns coordinates.
        """
        if self._config.has_home_location:
            return
        if self._location is None:
            raise ConfigError("No latitude/longitude configured and no location provider given")

        _logger.info("No latitude/longitude configured, using the location provider")
        while True:
            try:
                latitude, longitude = await self._location.resolve_location()
            except LocationUnavailableError as exc:
                _logger.info("Failed to resolve location: %s", exc)
            else:
                if latitude != 0 or longitude != 0:
                    async with self._lock:
                        self._latitude, self._longitude = latitude, longitude
                    _logger.info("Using location %.4f, %.4f", latitude, longitude)
                    return
                _logger.info("Location provider has no location yet")
            await asyncio.sleep(self._config.location_retry_delay)

    async def close(self) -> None:
        """Stop all timers, background refreshes and any booking in flight."""
        await self._timers.close()
        await self._booking.close()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self) -> Image.Image:
        """Produce the next frame.

        Every call counts as a liveness signal from the display.  A render
        reads a snapshot of the state; it does not take the pane lock.
        """
        self._timers.arm(TIMER_VISIBILITY, self._config.visibility_timeout, self._on_hidden)

        if self._booking.active:
            return self._renderer.render_booking(self._booking.view())

        if not self._visible:
            _logger.debug("Pane visible, starting intro")
            self._visible = True
            self._intro = True
            self._timers.arm(TIMER_INTRO, self._config.intro_duration, self._on_intro_done)
            self._cache.start_periodic(self._latitude, self._longitude)

        return self._renderer.render_estimate(PaneView(intro=self._intro, estimate=self._cache.snapshot))

    async def _on_hidden(self) -> None:
        async with self._lock:
            _logger.debug("No frames requested for %.1fs, pane hidden", self._config.visibility_timeout)
            self._visible = False
            self._cache.stop_periodic()

    async def _on_intro_done(self) -> None:
        async with self._lock:
            self._intro = False

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    async def gesture(self, event: GestureEvent) -> None:
        """Handle one sensor message.

        Only rising edges count, and each gesture kind is ignored within
        ``tap_interval`` of the last one acted upon.
        """
        async with self._lock:
            now = self._clock()
            interval = self._config.tap_interval
            tap = event.tap and not self._tap_down and now - self._last_tap > interval
            double_tap = (
                event.double_tap
                and not self._double_tap_down
                and (self._last_double_tap is None or now - self._last_double_tap > interval)
            )
            self._tap_down = event.tap
            self._double_tap_down = event.double_tap
            if tap:
                self._last_tap = now
            if double_tap:
                self._last_double_tap = now

        if self._booking.active:
            if tap:
                await self._booking.tap()
            if double_tap:
                await self._booking.double_tap()
            return

        if tap:
            _logger.info("Tap")
            if self._config.update_on_tap:
                self._spawn(self._refresh_in_background(), name="pane:refresh")

        if double_tap:
            _logger.info("Double tap")
            await self.start_booking()

    async def refresh_estimates(self) -> EstimateSnapshot:
        """Fetch estimates now.  Provider errors propagate."""
        return await self._cache.refresh(self._latitude, self._longitude)

    async def start_booking(self) -> None:
        """Open the booking confirmation for the cached estimate.

        Does nothing when there is no cached estimate or no wait time for
        the product (no cars nearby).

        Raises
        ------
        ContractViolation
            If a booking is already active.
        """
        snapshot = self._cache.snapshot
        if snapshot is None or snapshot.wait_seconds is None:
            _logger.info("No %s estimate available, not booking", self._config.product)
            return

        end: Location | None = None
        if self._config.has_destination:
            end = Location(latitude=self._config.end_latitude, longitude=self._config.end_longitude)

        await self._booking.start_booking(snapshot.product_id, self.location, end, snapshot.surge_multiplier)

    async def _refresh_in_background(self) -> None:
        try:
            await self.refresh_estimates()
        except (ProviderError, ProductNotFoundError) as exc:
            _logger.error("Failed to get estimates: %s", exc)

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
