"""Booking state machine: confirm, book, follow, cancel, dismiss."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from uberpane._constants import TIMER_CONFIRM, TIMER_DISMISS
from uberpane.client import RideProvider
from uberpane.config import PaneConfig
from uberpane.exceptions import ContractViolation
from uberpane.models.booking import BookingState, BookingView
from uberpane.models.estimate import Location
from uberpane.models.ride import RideStatus
from uberpane.poller import RideStatusPoller
from uberpane.timers import TimerSet

_logger = logging.getLogger(__name__)

_RIDE_IN_FLIGHT = frozenset(
    {
        BookingState.STARTING,
        BookingState.PROCESSING,
        BookingState.ACCEPTED,
        BookingState.ARRIVING,
        BookingState.IN_PROGRESS,
        BookingState.CANCELING,
        BookingState.UNKNOWN,
    }
)
_TERMINAL = frozenset(state for state in BookingState if state.is_terminal)

#: Allowed state changes.  Anything else is a logic bug.
TRANSITIONS: dict[BookingState, frozenset[BookingState]] = {
    BookingState.INACTIVE: frozenset({BookingState.CONFIRM_BOOKING}),
    BookingState.CONFIRM_BOOKING: frozenset({BookingState.INACTIVE, BookingState.STARTING}),
    **{state: _RIDE_IN_FLIGHT | _TERMINAL for state in _RIDE_IN_FLIGHT},
    **{state: frozenset({BookingState.INACTIVE}) for state in _TERMINAL},
}

_CANCELABLE = frozenset({BookingState.ACCEPTED, BookingState.PROCESSING})


class BookingStateMachine:
    """UI state machine for booking one ride.

    ``start_booking`` opens the confirmation screen.  A tap (outside the
    dead-tap window) books the ride; status changes from the
    :class:`RideStatusPoller` then drive the state until a terminal status.
    Failures wait for a tap to be dismissed.  ``completed`` ignores taps and
    dismisses itself after ``completed_dismiss_delay``.
    A double tap while ``processing`` or ``accepted`` cancels the ride.

    Every state change happens under one lock.  The lock is never held
    while talking to the provider.
    """

    def __init__(
        self,
        provider: RideProvider,
        config: PaneConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        poller_factory: Callable[[], RideStatusPoller] | None = None,
    ) -> None:
        self._provider = provider
        self._config = config
        self._clock = clock
        self._poller_factory = poller_factory or self._default_poller
        self._lock = asyncio.Lock()
        self._timers = TimerSet("booking")
        self._tasks: set[asyncio.Task[Any]] = set()

        self._state = BookingState.INACTIVE
        self._generation = 0
        self._active_since = 0.0
        self._finished = False
        self._surge_multiplier = 1.0
        self._product_id = ""
        self._start: Location | None = None
        self._end: Location | None = None
        self._poller: RideStatusPoller | None = None
        self._fatal: BaseException | None = None

    def _default_poller(self) -> RideStatusPoller:
        return RideStatusPoller(
            self._provider,
            poll_interval=self._config.poll_interval,
            error_retry_delay=self._config.poll_error_delay,
            cancel_attempts=self._config.cancel_attempts,
            cancel_interval=self._config.cancel_interval,
        )

    @property
    def state(self) -> BookingState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is not BookingState.INACTIVE

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def locked(self) -> bool:
        """Whether the display should stay on this pane (awaiting confirmation)."""
        return self._state is BookingState.CONFIRM_BOOKING

    def view(self) -> BookingView:
        """Snapshot for rendering.

        Raises
        ------
        ContractViolation
            If a background transition hit a contract violation.
        """
        if self._fatal is not None:
            raise ContractViolation(f"Booking state machine failed: {self._fatal}") from self._fatal
        ride = self._poller.ride if self._poller is not None else None
        return BookingView(
            state=self._state,
            surge_multiplier=self._surge_multiplier,
            eta_seconds=ride.eta_seconds if ride is not None else None,
            finished=self._finished,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start_booking(
        self,
        product_id: str,
        start: Location,
        end: Location | None,
        surge_multiplier: float,
    ) -> None:
        """Open the confirmation screen for a new booking.

        Raises
        ------
        ContractViolation
            If a booking is already active.
        """
        async with self._lock:
            if self.active:
                raise ContractViolation(f"Asked to start a new booking while one is {self._state}")
            self._generation += 1
            self._product_id = product_id
            self._start = start
            self._end = end
            self._surge_multiplier = surge_multiplier
            self._finished = False
            self._poller = None
            self._active_since = self._clock()
            self._transition(BookingState.CONFIRM_BOOKING)
            self._timers.arm(
                TIMER_CONFIRM,
                self._config.confirm_timeout,
                functools.partial(self._on_confirm_timeout, self._generation),
            )

    async def tap(self) -> None:
        """Handle a (debounced) tap while the booking screen is up."""
        closing: RideStatusPoller | None = None
        async with self._lock:
            if not self.active:
                return

            if self._clock() - self._active_since < self._config.dead_time:
                _logger.info("Dead tap")
                if self._config.close_on_dead_tap:
                    _logger.info("Closing on dead tap")
                    closing = self._deactivate()
                else:
                    return
            elif self._state is BookingState.COMPLETED:
                # Closed by the dismiss timer only.
                return
            elif self._finished:
                _logger.info("Closing finished booking (%s)", self._state)
                closing = self._deactivate()
            elif self._state is BookingState.CONFIRM_BOOKING:
                _logger.info("Booking %s", self._product_id)
                self._book()
                return
            else:
                return

        await self._stop_poller(closing)

    async def double_tap(self) -> None:
        """Handle a (debounced) double tap: cancel a pending or accepted ride."""
        async with self._lock:
            poller = self._poller
            if self._state not in _CANCELABLE or poller is None:
                return
            _logger.info("Cancelling ride")
            self._spawn(self._cancel(poller, self._generation), name="booking:cancel")

    async def close(self) -> None:
        """Stop every timer, task and poll loop owned by this machine."""
        async with self._lock:
            # Teardown may interrupt any state, so it bypasses the transition table.
            poller, self._poller = self._poller, None
            self._state = BookingState.INACTIVE
            self._finished = False
        await self._timers.close()
        await self._stop_poller(poller)
        tasks = [t for t in self._tasks if t is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals (callers hold the lock unless noted)
    # ------------------------------------------------------------------

    def _transition(self, new: BookingState) -> None:
        allowed = TRANSITIONS.get(self._state, frozenset())
        if new not in allowed:
            raise ContractViolation(f"Illegal booking transition {self._state} -> {new}")
        _logger.info("Booking state: %s", new)
        self._state = new

    def _deactivate(self) -> RideStatusPoller | None:
        """Return to inactive.  Returns the poller the caller must stop after releasing the lock."""
        if self._state is not BookingState.INACTIVE:
            self._transition(BookingState.INACTIVE)
        self._finished = False
        self._timers.disarm(TIMER_CONFIRM)
        self._timers.disarm(TIMER_DISMISS)
        poller, self._poller = self._poller, None
        return poller

    def _book(self) -> None:
        if self._start is None:
            raise ContractViolation("Booking confirmed without a start location")
        self._timers.disarm(TIMER_CONFIRM)
        self._transition(BookingState.STARTING)
        poller = self._poller_factory()
        self._poller = poller
        poller.create(self._product_id, self._start, self._end)
        self._spawn(self._consume(poller, self._generation), name="booking:status")

    def _spawn(self, coro: Coroutine[Any, Any, None], *, name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.critical("Booking task %s failed", task.get_name(), exc_info=exc)
            self._fatal = exc

    async def _stop_poller(self, poller: RideStatusPoller | None) -> None:
        """Called without the lock."""
        if poller is not None:
            await poller.close()

    async def _consume(self, poller: RideStatusPoller, generation: int) -> None:
        """Called without the lock: forwards poller events into the machine."""
        async for status in poller.events():
            await self._update_state(status, generation)

    async def _cancel(self, poller: RideStatusPoller, generation: int) -> None:
        """Called without the lock."""
        if not await poller.cancel():
            await self._update_state(RideStatus.ERROR, generation)

    async def _update_state(self, status: RideStatus, generation: int) -> None:
        async with self._lock:
            if generation != self._generation or self._state is BookingState.INACTIVE:
                _logger.debug("Ignoring ride status %s for a closed booking", status)
                return
            if self._state.is_terminal:
                _logger.debug("Ignoring ride status %s after %s", status, self._state)
                return

            new = BookingState.from_ride_status(status)
            if new is self._state:
                return
            self._transition(new)

            if new.is_terminal_failure:
                self._finished = True
            elif new.is_terminal_success:
                self._finished = True
                self._timers.arm(
                    TIMER_DISMISS,
                    self._config.completed_dismiss_delay,
                    functools.partial(self._on_dismiss_timeout, generation),
                )

    async def _on_confirm_timeout(self, generation: int) -> None:
        async with self._lock:
            if generation != self._generation or self._state is not BookingState.CONFIRM_BOOKING:
                return
            _logger.info("Booking not confirmed in time, closing")
            self._deactivate()

    async def _on_dismiss_timeout(self, generation: int) -> None:
        async with self._lock:
            if generation != self._generation or self._state is not BookingState.COMPLETED:
                return
            poller = self._deactivate()
        await self._stop_poller(poller)
