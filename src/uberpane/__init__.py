"""uberpane - ride-hailing estimates and booking on a 16x16 LED pane."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("uberpane")
except PackageNotFoundError:
    __version__ = "0+local"
from uberpane.booking import BookingStateMachine
from uberpane.cache import EstimateCache
from uberpane.client import RideProvider, UberClient
from uberpane.config import PaneConfig, ProviderConfig
from uberpane.display import FrameSink, run_render_loop
from uberpane.exceptions import (
    ConfigError,
    ContractViolation,
    LocationUnavailableError,
    ProductNotFoundError,
    ProviderApiError,
    ProviderAuthenticationError,
    ProviderError,
    ProviderTransportError,
    UberPaneError,
)
from uberpane.models import (
    BookingState,
    BookingView,
    EstimateSnapshot,
    GestureEvent,
    Location,
    PaneView,
    PriceEstimate,
    RideHandle,
    RideStatus,
    TimeEstimate,
)
from uberpane.pane import LocationProvider, PaneController
from uberpane.poller import RideStatusPoller
from uberpane.render import AssetLibrary, GlyphRenderer, PillowGlyphs, Renderer, Sprite
from uberpane.session import Session
from uberpane.timers import TimerSet

__all__ = [
    "__version__",
    "AssetLibrary",
    "BookingState",
    "BookingStateMachine",
    "BookingView",
    "ConfigError",
    "ContractViolation",
    "EstimateCache",
    "EstimateSnapshot",
    "FrameSink",
    "GestureEvent",
    "GlyphRenderer",
    "Location",
    "LocationProvider",
    "LocationUnavailableError",
    "PaneConfig",
    "PaneController",
    "PaneView",
    "PillowGlyphs",
    "PriceEstimate",
    "ProductNotFoundError",
    "ProviderApiError",
    "ProviderAuthenticationError",
    "ProviderConfig",
    "ProviderError",
    "ProviderTransportError",
    "Renderer",
    "RideHandle",
    "RideProvider",
    "RideStatus",
    "RideStatusPoller",
    "Session",
    "Sprite",
    "TimeEstimate",
    "TimerSet",
    "UberClient",
    "UberPaneError",
    "run_render_loop",
]
