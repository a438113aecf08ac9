"""Access-token session state for authenticated API calls."""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field

#: Fallback token time-to-live in seconds when the token endpoint does not
#: report ``expires_in``.
DEFAULT_TOKEN_TTL: float = 3600


class Session(BaseModel):
    """OAuth2 bearer token obtained with the client-credentials grant.

    Parameters
    ----------
    access_token : str
        The bearer token sent with every positions request.
    token_type : str
        Token type reported by the token endpoint, normally ``"Bearer"``.
    created_at : float
        Monotonic timestamp (``time.monotonic()``) when the token was
        obtained.  Defaults to *now* if not provided.
    ttl : float
        Time-to-live in seconds.  After this period the token is
        considered expired and a new one is requested.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    access_token: str
    token_type: str = "Bearer"
    created_at: float = Field(default_factory=time.monotonic)
    ttl: float = DEFAULT_TOKEN_TTL

    @property
    def authorization(self) -> str:
        """Value for the ``Authorization`` header."""
        scheme = "Bearer" if self.token_type.lower() == "bearer" else self.token_type
        return f"{scheme} {self.access_token}"

    @property
    def is_expired(self) -> bool:
        """Whether the token has exceeded its TTL."""
        return (time.monotonic() - self.created_at) >= self.ttl

    @property
    def age(self) -> float:
        """Seconds since the token was obtained."""
        return time.monotonic() - self.created_at
