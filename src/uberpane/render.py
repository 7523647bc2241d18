"""Frame composition for the 16x16 pane.

Renders are pure functions of a :class:`PaneView` or :class:`BookingView`
plus the loaded image assets.  Text drawing goes through a
:class:`GlyphRenderer` so the font can be swapped (or faked in tests).
"""

from __future__ import annotations

import dataclasses
import logging
import math
from pathlib import Path
from typing import Protocol

from PIL import Image, ImageDraw, ImageFont, ImageSequence

from uberpane._constants import (
    COLOR_BLACK,
    COLOR_SURGE,
    COLOR_WAIT,
    PANE_SIZE,
    SURGE_LABEL_TOP,
    WAIT_LABEL_TOP,
)
from uberpane.exceptions import ConfigError, ContractViolation
from uberpane.models.booking import BookingState, BookingView, PaneView

_logger = logging.getLogger(__name__)

Color = tuple[int, int, int]

_IMAGE_SUFFIXES = (".gif", ".png")


# ------------------------------------------------------------------
# Labels
# ------------------------------------------------------------------


def format_wait(wait_seconds: int | None) -> str:
    """Wait time in whole minutes, rounded up (``125`` -> ``"3m"``)."""
    if wait_seconds is None:
        return "N/A"
    return f"{math.ceil(wait_seconds / 60)}m"


def format_surge(surge_multiplier: float) -> str:
    """Surge multiplier to one decimal place (``1.4`` -> ``"1.4x"``)."""
    return f"{surge_multiplier:.1f}x"


# ------------------------------------------------------------------
# Assets
# ------------------------------------------------------------------


class Sprite:
    """A still or animated image; each :meth:`next_frame` call advances one frame."""

    def __init__(self, frames: list[Image.Image]) -> None:
        if not frames:
            raise ValueError("a sprite needs at least one frame")
        self._frames = [frame.convert("RGBA") for frame in frames]
        self._index = 0

    @classmethod
    def from_file(cls, path: Path) -> Sprite:
        with Image.open(path) as img:
            frames = [frame.convert("RGBA") for frame in ImageSequence.Iterator(img)]
        return cls(frames)

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    def next_frame(self) -> Image.Image:
        frame = self._frames[self._index]
        self._index = (self._index + 1) % len(self._frames)
        return frame


def _load_sprite(path: Path) -> Sprite:
    try:
        return Sprite.from_file(path)
    except OSError as exc:
        raise ConfigError(f"Could not load image {path}: {exc}") from exc


@dataclasses.dataclass
class AssetLibrary:
    """Images used by the pane.

    ``states`` maps a booking state value (``"accepted"``,
    ``"confirm_booking_surge"``, ...) to its background sprite.
    """

    logo: Sprite
    surge: Sprite
    no_surge: Sprite
    states: dict[str, Sprite] = dataclasses.field(default_factory=dict)

    @classmethod
    def from_directory(cls, root: Path | str) -> AssetLibrary:
        """Load ``logo.png``, ``surge.gif``, ``no_surge.gif`` and ``request_states/*``."""
        root = Path(root)
        states_dir = root / "request_states"
        if not states_dir.is_dir():
            raise ConfigError(f"Missing request state images directory: {states_dir}")

        states: dict[str, Sprite] = {}
        for path in sorted(states_dir.iterdir()):
            if path.suffix.lower() in _IMAGE_SUFFIXES:
                _logger.info("Found state image: %s", path.stem)
                states[path.stem] = _load_sprite(path)

        library = cls(
            logo=_load_sprite(root / "logo.png"),
            surge=_load_sprite(root / "surge.gif"),
            no_surge=_load_sprite(root / "no_surge.gif"),
            states=states,
        )
        missing = library.missing_states()
        if missing:
            _logger.warning("No state image for: %s", ", ".join(missing))
        return library

    def missing_states(self) -> list[str]:
        """Booking states (other than inactive) without an image."""
        return [
            state.value
            for state in BookingState
            if state is not BookingState.INACTIVE and state.value not in self.states
        ]

    def state_sprite(self, name: str) -> Sprite:
        sprite = self.states.get(name)
        if sprite is None:
            raise ContractViolation(f"Unknown booking state image: {name}")
        return sprite


# ------------------------------------------------------------------
# Glyphs
# ------------------------------------------------------------------


class GlyphRenderer(Protocol):
    """Text and image drawing primitives."""

    def measure_text(self, text: str) -> int:
        ...

    def draw_text(self, bitmap: Image.Image, text: str, color: Color, position: tuple[int, int]) -> int:
        ...

    def composite_image(self, bitmap: Image.Image, image: Image.Image, position: tuple[int, int]) -> None:
        ...


class PillowGlyphs:
    """:class:`GlyphRenderer` backed by a Pillow font."""

    def __init__(self, font: ImageFont.ImageFont | ImageFont.FreeTypeFont | None = None) -> None:
        self._font = font if font is not None else ImageFont.load_default()

    @classmethod
    def from_file(cls, path: Path | str, size: int = 5) -> PillowGlyphs:
        """Load a TrueType or Pillow bitmap (``.pil``) font, falling back to the default."""
        path = Path(path)
        try:
            if path.suffix.lower() == ".pil":
                return cls(ImageFont.load(str(path)))
            return cls(ImageFont.truetype(str(path), size))
        except OSError:
            _logger.warning("Could not load font %s size %d, using default", path, size)
            return cls()

    def measure_text(self, text: str) -> int:
        return int(math.ceil(self._font.getlength(text)))

    def draw_text(self, bitmap: Image.Image, text: str, color: Color, position: tuple[int, int]) -> int:
        ImageDraw.Draw(bitmap).text(position, text, fill=color, font=self._font)
        return self.measure_text(text)

    def composite_image(self, bitmap: Image.Image, image: Image.Image, position: tuple[int, int]) -> None:
        bitmap.alpha_composite(image.convert("RGBA"), dest=position)


# ------------------------------------------------------------------
# Renderer
# ------------------------------------------------------------------


class Renderer:
    """Composes pane frames from state snapshots."""

    def __init__(
        self,
        assets: AssetLibrary,
        glyphs: GlyphRenderer | None = None,
        *,
        size: int = PANE_SIZE,
    ) -> None:
        self._assets = assets
        self._glyphs = glyphs if glyphs is not None else PillowGlyphs()
        self._size = size

    def _blank(self) -> Image.Image:
        return Image.new("RGBA", (self._size, self._size), (0, 0, 0, 255))

    def _draw_label(self, img: Image.Image, text: str, color: Color, top: int, right_margin: int) -> None:
        """Right-align *text*, with a black copy one pixel down-right as an outline."""
        width = self._glyphs.measure_text(text)
        left = self._size - width - right_margin
        self._glyphs.draw_text(img, text, COLOR_BLACK, (left + 1, top + 1))
        self._glyphs.draw_text(img, text, color, (left, top))

    def border_for(self, surge_multiplier: float) -> Sprite:
        return self._assets.surge if surge_multiplier > 1 else self._assets.no_surge

    def render_estimate(self, view: PaneView) -> Image.Image:
        """Logo during the intro or without data, else wait and surge labels inside the border."""
        estimate = view.estimate
        if view.intro or estimate is None:
            return self._assets.logo.next_frame().copy()

        img = self._blank()
        self._draw_label(img, format_wait(estimate.wait_seconds), COLOR_WAIT, WAIT_LABEL_TOP, 1)
        self._draw_label(img, format_surge(estimate.surge_multiplier), COLOR_SURGE, SURGE_LABEL_TOP, 1)
        self._glyphs.composite_image(img, self.border_for(estimate.surge_multiplier).next_frame(), (0, 0))
        return img

    def render_booking(self, view: BookingView) -> Image.Image:
        """Per-state booking screen.

        Raises
        ------
        ContractViolation
            If there is no image for the state, or the view is inactive.
        """
        if view.state is BookingState.INACTIVE:
            raise ContractViolation("Asked to render an inactive booking")

        surged = view.surge_multiplier > 1
        name = view.state.value
        if view.state is BookingState.CONFIRM_BOOKING and surged and "confirm_booking_surge" in self._assets.states:
            name = "confirm_booking_surge"

        img = self._blank()
        self._glyphs.composite_image(img, self._assets.state_sprite(name).next_frame(), (0, 0))

        if view.state is BookingState.CONFIRM_BOOKING:
            if surged:
                self._draw_label(img, format_surge(view.surge_multiplier), COLOR_SURGE, SURGE_LABEL_TOP, 1)
            self._glyphs.composite_image(img, self.border_for(view.surge_multiplier).next_frame(), (0, 0))
        elif view.state is BookingState.ACCEPTED and view.eta_seconds:
            self._draw_label(img, format_wait(view.eta_seconds), COLOR_WAIT, SURGE_LABEL_TOP, 0)

        return img
