"""Authenticated rider session."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field

#: Provider access tokens are valid for 30 days.
DEFAULT_SESSION_TTL: float = 30 * 24 * 3600


class Session(BaseModel):
    """Rider identity handed to the client at construction time.

    Parameters
    ----------
    access_token : str
        OAuth bearer token with the ``request`` scope.
    user_uuid : str or None
        Rider identifier, used to personalise time estimates.
    created_at : float
        Monotonic timestamp (``time.monotonic()``) when the token was
        obtained.  Defaults to *now*.
    ttl : float
        Token lifetime in seconds.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    access_token: str = Field(min_length=1)
    user_uuid: str | None = None
    created_at: float = Field(default_factory=time.monotonic)
    ttl: float = DEFAULT_SESSION_TTL

    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"

    @property
    def is_expired(self) -> bool:
        """Whether the token has exceeded its TTL."""
        return (time.monotonic() - self.created_at) >= self.ttl
