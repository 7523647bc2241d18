"""Typed models for provider responses, booking state and gestures."""

from uberpane.models._base import ProviderEnum, ProviderModel
from uberpane.models.booking import BookingState, BookingView, PaneView
from uberpane.models.estimate import EstimateSnapshot, Location, PriceEstimate, TimeEstimate
from uberpane.models.gesture import GestureEvent
from uberpane.models.ride import FINAL_RIDE_STATUSES, RideHandle, RideStatus

__all__ = [
    "FINAL_RIDE_STATUSES",
    "BookingState",
    "BookingView",
    "EstimateSnapshot",
    "GestureEvent",
    "Location",
    "PaneView",
    "PriceEstimate",
    "ProviderEnum",
    "ProviderModel",
    "RideHandle",
    "RideStatus",
    "TimeEstimate",
]
