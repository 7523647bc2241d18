"""Fixed-rate render loop feeding a display frame sink."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from PIL import Image

from uberpane.pane import PaneController

_logger = logging.getLogger(__name__)


class FrameSink(Protocol):
    """Receives rendered frames, e.g. a connection to the LED controller.

    Connecting and disconnecting are the caller's business.
    """

    async def publish_frame(self, frame: Image.Image) -> None:
        ...


async def run_render_loop(
    pane: PaneController,
    sink: FrameSink,
    *,
    interval: float | None = None,
    stop: asyncio.Event | None = None,
) -> int:
    """Render and publish a frame every *interval* seconds until *stop* is set.

    *interval* defaults to the pane's ``frame_interval``.

    A :class:`~uberpane.exceptions.ContractViolation` from the pane ends the
    loop by propagating.  There is no timeout around a render, so a slow
    glyph renderer delays frames.

    Returns
    -------
    int
        Number of frames published.
    """
    if interval is None:
        interval = pane.config.frame_interval
    stop = stop or asyncio.Event()
    loop = asyncio.get_running_loop()
    frames = 0
    while not stop.is_set():
        started = loop.time()
        frame = pane.render()
        await sink.publish_frame(frame.convert("RGB"))
        frames += 1
        remaining = interval - (loop.time() - started)
        try:
            await asyncio.wait_for(stop.wait(), timeout=max(0.0, remaining))
        except TimeoutError:
            continue
    _logger.debug("Render loop stopped after %d frames", frames)
    return frames
