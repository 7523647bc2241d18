"""Gesture input events."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GestureEvent(BaseModel):
    """One message from the proximity sensor.

    Each flag is the current level of that gesture; the pane acts on
    rising edges only.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    tap: bool = False
    double_tap: bool = Field(default=False, validation_alias="doubleTap")
