"""Shared helpers for provider endpoint modules.

Centralizes payload validation so every endpoint maps malformed
responses to :class:`ProviderApiError` the same way.

It is internal to uberpane and may change at any time.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from uberpane.exceptions import ProviderApiError

M = TypeVar("M", bound=BaseModel)


def parse_model(model: type[M], payload: Any, *, endpoint: str) -> M:
    """Validate *payload* into *model*, raising :class:`ProviderApiError` on failure."""
    if not isinstance(payload, dict):
        raise ProviderApiError(
            f"{endpoint} returned {type(payload).__name__}, expected an object",
            code="invalid_payload",
            endpoint=endpoint,
        )
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ProviderApiError(
            f"{endpoint} returned an invalid {model.__name__}: {exc.error_count()} error(s)",
            code="invalid_payload",
            endpoint=endpoint,
        ) from exc


def parse_model_list(model: type[M], payload: Any, key: str, *, endpoint: str) -> list[M]:
    """Validate ``payload[key]`` as a list of *model*."""
    items = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise ProviderApiError(
            f"{endpoint} response is missing the '{key}' list",
            code="invalid_payload",
            endpoint=endpoint,
        )
    return [parse_model(model, item, endpoint=endpoint) for item in items]
