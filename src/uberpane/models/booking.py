"""Booking state and render views."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict

from uberpane.models.estimate import EstimateSnapshot
from uberpane.models.ride import RideStatus


class BookingState(enum.StrEnum):
    """UI state of the booking screen.

    A closed set: unlike provider statuses, an unrecognised value raises.

    ``INACTIVE`` and ``CONFIRM_BOOKING`` are local; every other member
    mirrors a :class:`RideStatus` of the same value.
    """

    INACTIVE = "inactive"
    CONFIRM_BOOKING = "confirm_booking"
    STARTING = "starting"
    PROCESSING = "processing"
    ACCEPTED = "accepted"
    ARRIVING = "arriving"
    IN_PROGRESS = "in_progress"
    CANCELING = "canceling"
    COMPLETED = "completed"
    NO_DRIVERS_AVAILABLE = "no_drivers_available"
    DRIVER_CANCELED = "driver_canceled"
    RIDER_CANCELED = "rider_canceled"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def from_ride_status(cls, status: RideStatus) -> BookingState:
        return cls(status.value)

    @property
    def is_terminal_failure(self) -> bool:
        return self in _TERMINAL_FAILURE

    @property
    def is_terminal_success(self) -> bool:
        return self is BookingState.COMPLETED

    @property
    def is_terminal(self) -> bool:
        return self.is_terminal_failure or self.is_terminal_success


_TERMINAL_FAILURE = frozenset(
    {
        BookingState.NO_DRIVERS_AVAILABLE,
        BookingState.DRIVER_CANCELED,
        BookingState.RIDER_CANCELED,
        BookingState.ERROR,
    }
)


class BookingView(BaseModel):
    """What the renderer needs to draw the booking screen."""

    model_config = ConfigDict(frozen=True)

    state: BookingState
    surge_multiplier: float = 1.0
    eta_seconds: int | None = None
    finished: bool = False


class PaneView(BaseModel):
    """What the renderer needs to draw the idle pane."""

    model_config = ConfigDict(frozen=True)

    intro: bool
    estimate: EstimateSnapshot | None = None
