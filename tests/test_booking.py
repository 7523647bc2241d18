from __future__ import annotations

import asyncio
from typing import Any

import pytest
from _fakes import FakeClock, FakeRideProvider, wait_until

from uberpane.booking import TRANSITIONS, BookingStateMachine
from uberpane.config import PaneConfig
from uberpane.exceptions import ContractViolation
from uberpane.models.booking import BookingState
from uberpane.models.estimate import Location
from uberpane.models.ride import RideStatus

_START = Location(latitude=51.5, longitude=-0.12)
_END = Location(latitude=51.47, longitude=-0.45)


def _config(**overrides: Any) -> PaneConfig:
    options: dict[str, Any] = {
        "product": "uberX",
        "latitude": 51.5,
        "longitude": -0.12,
        "confirm_timeout": 5.0,
        "dead_time": 0.5,
        "poll_interval": 0.005,
        "poll_error_delay": 0.005,
        "cancel_interval": 0.001,
        "completed_dismiss_delay": 5.0,
    }
    options.update(overrides)
    return PaneConfig(**options)


async def _confirmed(machine: BookingStateMachine, clock: FakeClock, surge: float = 1.0) -> None:
    await machine.start_booking("p-uberX", _START, _END, surge)
    clock.advance(1.0)
    await machine.tap()


def test_transition_table_covers_every_state() -> None:
    assert set(TRANSITIONS) == set(BookingState)
    for state in BookingState:
        if state.is_terminal:
            assert TRANSITIONS[state] == {BookingState.INACTIVE}
    assert BookingState.INACTIVE not in TRANSITIONS[BookingState.ACCEPTED]


@pytest.mark.asyncio
async def test_start_booking_opens_confirmation() -> None:
    machine = BookingStateMachine(FakeRideProvider(), _config(), clock=FakeClock())

    await machine.start_booking("p-uberX", _START, None, 1.4)

    assert machine.state is BookingState.CONFIRM_BOOKING
    assert machine.locked
    view = machine.view()
    assert view.surge_multiplier == 1.4
    assert view.eta_seconds is None
    await machine.close()


@pytest.mark.asyncio
async def test_second_start_is_a_contract_violation() -> None:
    machine = BookingStateMachine(FakeRideProvider(), _config(), clock=FakeClock())
    await machine.start_booking("p-uberX", _START, None, 1.0)

    with pytest.raises(ContractViolation):
        await machine.start_booking("p-uberX", _START, None, 1.0)
    await machine.close()


@pytest.mark.asyncio
async def test_unconfirmed_booking_times_out() -> None:
    machine = BookingStateMachine(FakeRideProvider(), _config(confirm_timeout=0.02), clock=FakeClock())
    await machine.start_booking("p-uberX", _START, None, 1.0)

    await wait_until(lambda: machine.state is BookingState.INACTIVE)

    assert not machine.locked
    await machine.close()


@pytest.mark.asyncio
async def test_dead_tap_is_ignored_by_default() -> None:
    provider = FakeRideProvider()
    machine = BookingStateMachine(provider, _config(), clock=FakeClock())
    await machine.start_booking("p-uberX", _START, None, 1.0)

    await machine.tap()

    assert machine.state is BookingState.CONFIRM_BOOKING
    assert provider.created == []
    await machine.close()


@pytest.mark.asyncio
async def test_dead_tap_can_close_the_booking() -> None:
    machine = BookingStateMachine(FakeRideProvider(), _config(close_on_dead_tap=True), clock=FakeClock())
    await machine.start_booking("p-uberX", _START, None, 1.0)

    await machine.tap()

    assert machine.state is BookingState.INACTIVE
    await machine.close()


@pytest.mark.asyncio
async def test_confirmed_booking_follows_ride_to_completion() -> None:
    provider = FakeRideProvider(
        [RideStatus.ACCEPTED, RideStatus.ARRIVING, RideStatus.IN_PROGRESS, RideStatus.COMPLETED]
    )
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(completed_dismiss_delay=0.2), clock=clock)
    seen: list[BookingState] = []

    await _confirmed(machine, clock)
    assert machine.state is BookingState.STARTING
    assert not machine.locked

    async def record() -> None:
        while True:
            if not seen or seen[-1] is not machine.state:
                seen.append(machine.state)
            await asyncio.sleep(0)

    recorder = asyncio.create_task(record())
    await wait_until(lambda: machine.state is BookingState.COMPLETED)
    assert machine.finished
    await wait_until(lambda: machine.state is BookingState.INACTIVE)
    recorder.cancel()
    await asyncio.gather(recorder, return_exceptions=True)

    assert provider.created == [("p-uberX", _START, _END)]
    assert seen[-2:] == [BookingState.COMPLETED, BookingState.INACTIVE]
    assert BookingState.ACCEPTED in seen
    assert not machine.finished
    await machine.close()


@pytest.mark.asyncio
async def test_confirmation_timer_does_not_fire_after_booking() -> None:
    provider = FakeRideProvider([RideStatus.ACCEPTED])
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(confirm_timeout=0.02), clock=clock)

    await _confirmed(machine, clock)
    await asyncio.sleep(0.06)

    assert machine.state is BookingState.ACCEPTED
    await machine.close()


@pytest.mark.asyncio
async def test_view_reports_eta_in_seconds() -> None:
    provider = FakeRideProvider([RideStatus.ACCEPTED], eta_minutes=4)
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(), clock=clock)

    await _confirmed(machine, clock)
    await wait_until(lambda: machine.state is BookingState.ACCEPTED)

    assert machine.view().eta_seconds == 240
    await machine.close()


@pytest.mark.asyncio
async def test_failure_waits_for_a_tap() -> None:
    provider = FakeRideProvider(create_fails=True)
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(), clock=clock)

    await _confirmed(machine, clock)
    await wait_until(lambda: machine.state is BookingState.ERROR)
    await asyncio.sleep(0.02)

    assert machine.state is BookingState.ERROR
    assert machine.finished

    await machine.tap()
    assert machine.state is BookingState.INACTIVE
    await machine.close()


@pytest.mark.asyncio
async def test_no_drivers_available_is_a_failure() -> None:
    provider = FakeRideProvider([RideStatus.NO_DRIVERS_AVAILABLE])
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(), clock=clock)

    await _confirmed(machine, clock)
    await wait_until(lambda: machine.state is BookingState.NO_DRIVERS_AVAILABLE)

    assert machine.finished
    await machine.close()


@pytest.mark.asyncio
async def test_double_tap_cancels_accepted_ride() -> None:
    provider = FakeRideProvider([RideStatus.ACCEPTED])
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(), clock=clock)

    await _confirmed(machine, clock)
    await wait_until(lambda: machine.state is BookingState.ACCEPTED)
    await machine.double_tap()

    await wait_until(lambda: machine.state is BookingState.RIDER_CANCELED)
    assert machine.finished
    assert provider.cancel_calls == 1
    await machine.close()


@pytest.mark.asyncio
async def test_failed_cancellation_ends_in_error() -> None:
    provider = FakeRideProvider([RideStatus.ACCEPTED], cancel_failures=100)
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(), clock=clock)

    await _confirmed(machine, clock)
    await wait_until(lambda: machine.state is BookingState.ACCEPTED)
    await machine.double_tap()

    await wait_until(lambda: machine.state is BookingState.ERROR, timeout=2.0)
    assert provider.cancel_calls == 24
    assert machine.finished
    await machine.close()


@pytest.mark.asyncio
async def test_double_tap_is_ignored_while_confirming() -> None:
    provider = FakeRideProvider()
    machine = BookingStateMachine(provider, _config(), clock=FakeClock())
    await machine.start_booking("p-uberX", _START, None, 1.0)

    await machine.double_tap()

    assert machine.state is BookingState.CONFIRM_BOOKING
    assert provider.cancel_calls == 0
    await machine.close()


@pytest.mark.asyncio
async def test_close_stops_a_ride_in_flight() -> None:
    provider = FakeRideProvider([RideStatus.ACCEPTED])
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(), clock=clock)
    await _confirmed(machine, clock)
    await wait_until(lambda: machine.state is BookingState.ACCEPTED)

    await machine.close()
    calls = provider.get_calls
    await asyncio.sleep(0.02)

    assert machine.state is BookingState.INACTIVE
    assert provider.get_calls == calls


@pytest.mark.asyncio
async def test_tap_does_not_dismiss_completed_ride() -> None:
    provider = FakeRideProvider([RideStatus.COMPLETED])
    clock = FakeClock()
    machine = BookingStateMachine(provider, _config(completed_dismiss_delay=0.05), clock=clock)

    await _confirmed(machine, clock)
    await wait_until(lambda: machine.state is BookingState.COMPLETED)
    await machine.tap()

    assert machine.state is BookingState.COMPLETED
    await wait_until(lambda: machine.state is BookingState.INACTIVE)
    await machine.close()
