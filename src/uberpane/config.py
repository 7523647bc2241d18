"""Pane and provider configuration for uberpane."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from uberpane._constants import API_BASE_URL, API_VERSION, SANDBOX_BASE_URL
from uberpane.exceptions import ConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ProviderConfig:
    """Ride-data provider endpoint settings.

    Parameters
    ----------
    base_url : str
        API host.  Ignored when ``sandbox`` is set.
    sandbox : bool
        Route every call to the provider's sandbox host.  Rides booked
        there are simulated.
    request_timeout : float
        Total per-request timeout in seconds.
    """

    base_url: str = API_BASE_URL
    sandbox: bool = False
    request_timeout: float = 10.0

    @property
    def api_base(self) -> str:
        """Versioned API root, e.g. ``https://api.uber.com/v1.2``."""
        host = SANDBOX_BASE_URL if self.sandbox else self.base_url.rstrip("/")
        return f"{host}/{API_VERSION}"

    @classmethod
    def from_env(cls, **overrides: Any) -> ProviderConfig:
        """Create configuration from ``UBER_BASE_URL``, ``UBER_SANDBOX`` and
        ``UBER_REQUEST_TIMEOUT``.  Keyword arguments win over the environment.
        """
        env = os.environ
        kwargs: dict[str, Any] = {}
        base_url = env.get("UBER_BASE_URL")
        if base_url is not None:
            kwargs["base_url"] = base_url
        if "sandbox" not in overrides:
            kwargs["sandbox"] = _env_bool(env.get("UBER_SANDBOX"), False)
        timeout_env = env.get("UBER_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            kwargs["request_timeout"] = float(timeout_env)
        kwargs.update(overrides)
        return cls(**kwargs)


@dataclasses.dataclass(frozen=True)
class PaneConfig:
    """Pane behaviour settings.

    All durations are in seconds.

    Parameters
    ----------
    product : str
        Display name of the product to show and book (e.g. ``"uberX"``).
    latitude, longitude : float
        Home coordinates.  ``0`` means "ask the location provider".
    end_latitude, end_longitude : float
        Optional ride destination.  ``0`` longitude means no destination.
    tap_interval : float
        Debounce window applied separately to taps and double taps.
    update_on_tap : bool
        Refresh estimates when the idle pane is tapped.
    intro_duration : float
        How long the logo is shown after the pane becomes visible.
    visibility_timeout : float
        Time without a render call after which the pane counts as hidden.
    update_interval : float
        Periodic estimate refresh interval while visible.
    stale_data_timeout : float
        Age after which cached estimates are dropped.
    confirm_timeout : float
        How long the booking confirmation screen waits for a tap.
    dead_time : float
        Window after a booking opens in which taps are treated as accidental.
    close_on_dead_tap : bool
        Close the booking screen on a dead tap instead of ignoring it.
    refresh_retry_delay : float
        Backoff before retrying a failed periodic refresh.
    poll_interval : float
        Delay between ride status polls.
    poll_error_delay : float
        Delay before retrying a failed ride status poll.
    cancel_attempts : int
        Maximum ride cancellation attempts.
    cancel_interval : float
        Delay between ride cancellation attempts.
    completed_dismiss_delay : float
        How long the completed screen stays up before closing itself.
    location_retry_delay : float
        Delay between location lookups at startup.
    frame_interval : float
        Render loop period.
    """

    product: str
    latitude: float = 0.0
    longitude: float = 0.0
    end_latitude: float = 0.0
    end_longitude: float = 0.0
    tap_interval: float = 0.5
    update_on_tap: bool = True
    intro_duration: float = 2.0
    visibility_timeout: float = 2.0
    update_interval: float = 60.0
    stale_data_timeout: float = 300.0
    confirm_timeout: float = 10.0
    dead_time: float = 0.5
    close_on_dead_tap: bool = False
    refresh_retry_delay: float = 5.0
    poll_interval: float = 10.0
    poll_error_delay: float = 2.0
    cancel_attempts: int = 24
    cancel_interval: float = 5.0
    completed_dismiss_delay: float = 5.0
    location_retry_delay: float = 2.0
    frame_interval: float = 1 / 15

    def __post_init__(self) -> None:
        if not self.product.strip():
            raise ConfigError("product must be non-empty")
        if self.cancel_attempts < 1:
            raise ConfigError(f"cancel_attempts must be at least 1, got {self.cancel_attempts}")
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if field.type == "float" and field.name not in _COORDINATE_FIELDS and value < 0:
                raise ConfigError(f"{field.name} must not be negative, got {value}")

    @property
    def has_home_location(self) -> bool:
        return self.latitude != 0 and self.longitude != 0

    @property
    def has_destination(self) -> bool:
        return self.end_longitude != 0

    @classmethod
    def from_env(cls, **overrides: Any) -> PaneConfig:
        """Create configuration from ``UBER_PANE_*`` environment variables.

        The variable name is the upper-cased field name with the prefix,
        e.g. ``UBER_PANE_PRODUCT`` or ``UBER_PANE_TAP_INTERVAL``.  Explicit
        keyword arguments override environment values.
        """
        env = os.environ
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            if field.name in overrides:
                continue
            raw = env.get(f"UBER_PANE_{field.name.upper()}")
            if raw is None:
                continue
            if field.type == "bool":
                kwargs[field.name] = _env_bool(raw, bool(field.default))
            elif field.type == "int":
                kwargs[field.name] = int(raw)
            elif field.type == "float":
                kwargs[field.name] = float(raw)
            else:
                kwargs[field.name] = raw
        kwargs.update(overrides)
        if "product" not in kwargs:
            raise ConfigError("UBER_PANE_PRODUCT is required")
        return cls(**kwargs)


_COORDINATE_FIELDS = frozenset({"latitude", "longitude", "end_latitude", "end_longitude"})
