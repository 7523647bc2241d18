"""Custom exception hierarchy for uberpane."""

from __future__ import annotations


class UberPaneError(Exception):
    """Base exception for all uberpane errors."""


class ConfigError(UberPaneError):
    """Invalid or missing configuration."""


class ProviderError(UberPaneError):
    """Base for failures talking to the ride-data provider."""


class ProviderTransportError(ProviderError):
    """HTTP-level failure (network, unexpected status, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ProviderApiError(ProviderError):
    """Provider returned an error payload or a payload we cannot parse."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class ProviderAuthenticationError(ProviderApiError):
    """Access token rejected (HTTP 401/403).

    Tokens are supplied by the surrounding process; the pane never
    refreshes them itself.
    """


class ProductNotFoundError(UberPaneError):
    """The configured product is missing from the provider's estimates.

    Usually a misconfigured product name, or a product that is not
    offered at the configured location.
    """

    def __init__(self, product: str) -> None:
        self.product = product
        super().__init__(f"Product not found in provider estimates: {product}")


class ContractViolation(UberPaneError):
    """A logic bug: illegal state transition, double booking, unknown state.

    Never caught by the library.  Callers should treat it as fatal.
    """


class LocationUnavailableError(UberPaneError):
    """The location provider could not resolve the device position."""
