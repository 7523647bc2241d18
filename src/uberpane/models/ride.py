"""Ride request models."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator, model_validator

from uberpane.models._base import ProviderEnum, ProviderModel


class RideStatus(ProviderEnum):
    """Ride request status.

    Wire values come from the provider except ``STARTING``, ``CANCELING``,
    ``ERROR`` and ``UNKNOWN`` which are produced locally by the poller.
    """

    STARTING = "starting"
    PROCESSING = "processing"  # searching for a driver, pending confirmation
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


#: Statuses after which the provider never reports anything new.
FINAL_RIDE_STATUSES: frozenset[RideStatus] = frozenset(
    {RideStatus.COMPLETED, RideStatus.DRIVER_CANCELED, RideStatus.RIDER_CANCELED}
)


class RideHandle(ProviderModel):
    """Snapshot of one ride request.

    The provider reports ``eta`` in whole minutes; it is stored here as
    ``eta_seconds``.
    """

    ride_id: str = Field(validation_alias="request_id")
    status: RideStatus = RideStatus.UNKNOWN
    eta_seconds: int | None = None
    surge_multiplier: float | None = Field(default=None, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _eta_minutes_to_seconds(cls, values: Any) -> Any:
        if not isinstance(values, dict) or "eta_seconds" in values:
            return values
        merged = dict(values)
        eta = merged.get("eta")
        if isinstance(eta, (int, float)) and eta >= 0:
            merged["eta_seconds"] = int(eta * 60)
        return merged

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> RideStatus:
        return RideStatus(str(value))
