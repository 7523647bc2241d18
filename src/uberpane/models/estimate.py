"""Wait-time and price estimate models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from uberpane.models._base import ProviderModel


class TimeEstimate(ProviderModel):
    """Pickup wait time for one product.

    Parameters
    ----------
    product_id : str
        Provider product identifier.
    display_name : str
        Human readable product name (what the pane is configured with).
    estimate : int
        Wait time in seconds.
    """

    product_id: str = ""
    display_name: str
    estimate: int = Field(ge=0)


class PriceEstimate(ProviderModel):
    """Price estimate for one product.

    ``surge_multiplier`` defaults to ``1.0`` when the provider omits it and
    is rejected when negative.
    """

    product_id: str
    display_name: str
    surge_multiplier: float = Field(default=1.0, ge=0)
    estimate: str | None = None
    currency_code: str | None = None
    low_estimate: float | None = None
    high_estimate: float | None = None


class Location(BaseModel):
    """A latitude/longitude pair."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class EstimateSnapshot(BaseModel):
    """Cached estimate for the configured product.

    Replaced wholesale on each successful refresh.

    Parameters
    ----------
    product : str
        Configured product display name.
    product_id : str
        Provider product identifier used when booking.
    wait_seconds : int or None
        Pickup wait.  ``None`` when the provider has prices but no time
        estimate for the product (no cars nearby).
    surge_multiplier : float
        Current surge multiplier, never negative.
    fetched_at : datetime
        UTC time of the fetch.
    """

    model_config = ConfigDict(frozen=True)

    product: str
    product_id: str
    wait_seconds: int | None = None
    surge_multiplier: float = Field(default=1.0, ge=0)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
