"""Base model and enum for provider responses.

Every provider response model inherits from :class:`ProviderModel` which
provides:

* A ``model_validator(mode="before")`` that drops ``None`` and empty
  strings so the field default is used.
* A ``raw`` dict that captures the original payload.

Status enums inherit from :class:`ProviderEnum`, a ``StrEnum`` whose
``_missing_`` hook returns ``UNKNOWN`` for any value without a mapped
member.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProviderEnum(enum.StrEnum):
    """Base for provider status enums.

    Every subclass **must** define ``UNKNOWN = "unknown"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> ProviderEnum:
        # pylint: disable=no-member
        if hasattr(cls, "UNKNOWN"):
            unknown: ProviderEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class ProviderModel(BaseModel):
    """Base for provider response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original API response dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Drop empty values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = {
            key: value
            for key, value in original.items()
            if value is not None and not (isinstance(value, str) and not value.strip())
        }
        # Keep an explicit raw= from keyword construction.
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
