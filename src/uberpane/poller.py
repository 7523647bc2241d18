"""Ride creation, status polling and cancellation for one ride."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from uberpane.client import RideProvider
from uberpane.exceptions import ContractViolation, ProviderError
from uberpane.models.estimate import Location
from uberpane.models.ride import FINAL_RIDE_STATUSES, RideHandle, RideStatus

_logger = logging.getLogger(__name__)


class RideStatusPoller:
    """Owns one in-flight ride request.

    :meth:`create` starts a background task that books the ride and then
    polls its status, pushing every *change* onto a FIFO stream read via
    :meth:`events`.  A failed poll pushes ``UNKNOWN`` and retries after
    ``error_retry_delay``; polling only stops on a final ride status
    (``completed``, ``driver_canceled``, ``rider_canceled``), a failed
    creation, or :meth:`close`.

    There is deliberately no overall polling timeout.  A process running
    unattended needs an external watchdog to bound a ride whose status can
    no longer be fetched.
    """

    def __init__(
        self,
        provider: RideProvider,
        *,
        poll_interval: float = 10.0,
        error_retry_delay: float = 2.0,
        cancel_attempts: int = 24,
        cancel_interval: float = 5.0,
    ) -> None:
        self._provider = provider
        self._poll_interval = poll_interval
        self._error_retry_delay = error_retry_delay
        self._cancel_attempts = cancel_attempts
        self._cancel_interval = cancel_interval
        self._queue: asyncio.Queue[RideStatus | None] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._ride: RideHandle | None = None
        self._last_emitted: RideStatus | None = None
        self._finished = False
        self._canceling = False
        self._stream_closed = False

    @property
    def ride(self) -> RideHandle | None:
        """Latest ride snapshot, ``None`` until the provider accepted the request."""
        return self._ride

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def canceling(self) -> bool:
        return self._canceling

    def create(self, product_id: str, start: Location, end: Location | None) -> None:
        """Request the ride and start polling in the background."""
        if self._task is not None:
            raise ContractViolation("Ride already created for this poller")
        self._task = asyncio.get_running_loop().create_task(
            self._run(product_id, start, end),
            name=f"ride:{product_id}",
        )

    async def events(self) -> AsyncIterator[RideStatus]:
        """Yield status changes in order until the stream ends."""
        while True:
            status = await self._queue.get()
            if status is None:
                return
            yield status

    async def cancel(self) -> bool:
        """Ask the provider to cancel the ride, retrying on failure.

        Emits ``CANCELING`` straight away.  Polling carries on meanwhile so
        the final ``rider_canceled`` still arrives through :meth:`events`.

        Returns
        -------
        bool
            ``False`` if every attempt failed.
        """
        ride = self._ride
        if ride is None:
            raise ContractViolation("Cannot cancel a ride that was never created")

        self._canceling = True
        self._emit(RideStatus.CANCELING)

        for attempt in range(1, self._cancel_attempts + 1):
            try:
                await self._provider.cancel_ride(ride.ride_id)
            except ProviderError as exc:
                _logger.warning(
                    "Failed to cancel ride %s (attempt %d/%d): %s",
                    ride.ride_id,
                    attempt,
                    self._cancel_attempts,
                    exc,
                )
                if attempt < self._cancel_attempts:
                    await asyncio.sleep(self._cancel_interval)
                continue
            _logger.info("Cancelled ride %s", ride.ride_id)
            return True

        _logger.error("Giving up cancelling ride %s after %d attempts", ride.ride_id, self._cancel_attempts)
        return False

    async def close(self) -> None:
        """Stop polling and end the event stream."""
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._end_stream()

    def _emit(self, status: RideStatus) -> None:
        if self._stream_closed:
            _logger.debug("Dropping ride status %s after stream end", status)
            return
        if status == self._last_emitted:
            return
        self._last_emitted = status
        self._queue.put_nowait(status)

    def _end_stream(self) -> None:
        if not self._stream_closed:
            self._stream_closed = True
            self._queue.put_nowait(None)

    async def _run(self, product_id: str, start: Location, end: Location | None) -> None:
        try:
            self._emit(RideStatus.STARTING)
            try:
                ride = await self._provider.create_ride(product_id, start, end)
            except ProviderError as exc:
                _logger.error("Failed to create ride for %s: %s", product_id, exc)
                self._finished = True
                self._emit(RideStatus.ERROR)
                return

            _logger.info("Created ride %s: %s", ride.ride_id, ride.status)
            self._ride = ride
            self._emit(ride.status)
            if ride.status in FINAL_RIDE_STATUSES:
                self._finished = True
                return

            await self._poll(ride.ride_id)
        finally:
            self._end_stream()

    async def _poll(self, ride_id: str) -> None:
        delay = self._poll_interval
        while True:
            await asyncio.sleep(delay)
            try:
                ride = await self._provider.get_ride(ride_id)
            except ProviderError as exc:
                _logger.info("Error getting ride %s: %s", ride_id, exc)
                self._emit(RideStatus.UNKNOWN)
                delay = self._error_retry_delay
                continue

            delay = self._poll_interval
            _logger.debug("Ride %s status: %s", ride_id, ride.status)
            self._ride = ride

            if ride.status in FINAL_RIDE_STATUSES:
                _logger.info("Ride %s: %s", ride_id, ride.status)
                self._finished = True
                self._emit(ride.status)
                return

            if not self._canceling:
                self._emit(ride.status)
