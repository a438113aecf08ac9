"""Custom exception hierarchy for kollpaspar."""

from __future__ import annotations


class KollpasparError(Exception):
    """Base exception for all kollpaspar errors."""


class ConfigError(KollpasparError):
    """Invalid or missing configuration."""


class VasttrafikTransportError(KollpasparError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

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


class VasttrafikApiError(KollpasparError):
    """Upstream answered, but the payload has an unexpected shape."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class VasttrafikAuthenticationError(VasttrafikApiError):
    """Token request rejected or no usable access token returned."""


class ChangeEncodeError(KollpasparError):
    """A change event could not be encoded for the wire.

    Raised for a single event; the tracker logs it and keeps publishing
    the rest of the batch.
    """


class TrackerSetupError(KollpasparError):
    """The tracker could not seed its initial vehicle set."""
