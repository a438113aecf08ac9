"""Process configuration for kollpaspar."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from kollpaspar._constants import (
    DEFAULT_POSITIONS_LIMIT,
    DEFAULT_RADIUS_KM,
    GOTEBORG_LATITUDE,
    GOTEBORG_LONGITUDE,
    POSITIONS_URL,
    TOKEN_URL,
)
from kollpaspar.broadcast import OverflowPolicy
from kollpaspar.exceptions import ConfigError
from kollpaspar.geo import Coordinates, bounding_box_around
from kollpaspar.lines import TRAMS


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_lines(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker and server configuration.

    Parameters
    ----------
    client_id : str
        Västtrafik API client id.
    client_secret : str
        Västtrafik API client secret.
    address : str
        ``host:port`` to listen on; an empty host binds all interfaces.
    token_url : str
        OAuth2 token endpoint.
    positions_url : str
        Vehicle positions endpoint.
    center_latitude, center_longitude : float
        Centre of the tracked area.
    radius_km : float
        Half side of the tracked square, in kilometres.
    lines : tuple of str
        Line designations to track.
    limit : int
        Maximum vehicles requested per poll.
    poll_interval : float
        Seconds between polls.
    request_timeout : float
        Total timeout for a single upstream request, in seconds.
    subscriber_queue_size : int
        Pending payloads buffered per subscriber before the overflow
        policy applies.
    overflow_policy : OverflowPolicy
        What to do when a subscriber's buffer is full.
    diff_ignore_last_seen : bool
        Leave ``last_seen_at`` out of change detection, so a vehicle that
        did not move produces no event.
    static_dir : str or None
        Directory served at ``/``; ``None`` disables static files.
    """

    client_id: str
    client_secret: str
    address: str = ":8080"
    token_url: str = TOKEN_URL
    positions_url: str = POSITIONS_URL
    center_latitude: float = GOTEBORG_LATITUDE
    center_longitude: float = GOTEBORG_LONGITUDE
    radius_km: float = DEFAULT_RADIUS_KM
    lines: tuple[str, ...] = TRAMS
    limit: int = DEFAULT_POSITIONS_LIMIT
    poll_interval: float = 1.0
    request_timeout: float = 10.0
    subscriber_queue_size: int = 256
    overflow_policy: OverflowPolicy = OverflowPolicy.DROP_OLDEST
    diff_ignore_last_seen: bool = False
    static_dir: str | None = None

    @property
    def bounding_box(self) -> tuple[Coordinates, Coordinates]:
        """``(lower_left, upper_right)`` of the tracked area."""
        return bounding_box_around(self.center_latitude, self.center_longitude, self.radius_km)

    @property
    def listen_host(self) -> str:
        host, _, _ = self.address.rpartition(":")
        return host or "0.0.0.0"  # noqa: S104

    @property
    def listen_port(self) -> int:
        _, _, port = self.address.rpartition(":")
        try:
            return int(port)
        except ValueError as exc:
            raise ConfigError(f"invalid listen address {self.address!r}") from exc

    def validate(self) -> TrackerConfig:
        """Raise :class:`ConfigError` on unusable settings; return ``self``."""
        if not self.client_id.strip():
            raise ConfigError("VASTTRAFIK_CLIENT_ID is not set")
        if not self.client_secret.strip():
            raise ConfigError("VASTTRAFIK_CLIENT_SECRET is not set")
        if not self.lines:
            raise ConfigError("at least one line designation is required")
        if self.poll_interval <= 0:
            raise ConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.subscriber_queue_size < 1:
            raise ConfigError(f"subscriber_queue_size must be at least 1, got {self.subscriber_queue_size}")
        if self.radius_km <= 0:
            raise ConfigError(f"radius_km must be positive, got {self.radius_km}")
        if not 0 < self.listen_port < 65536:
            raise ConfigError(f"listen port out of range in {self.address!r}")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from environment variables.

        Reads ``VASTTRAFIK_CLIENT_ID`` and ``VASTTRAFIK_CLIENT_SECRET`` plus
        optional ``VASTTRAFIK_*`` and ``KOLLPASPAR_*`` variables. Explicit
        keyword arguments override environment values. Missing credentials
        are left empty; call :meth:`validate` before starting.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        TrackerConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "VASTTRAFIK_CLIENT_ID": "client_id",
            "VASTTRAFIK_CLIENT_SECRET": "client_secret",
            "VASTTRAFIK_TOKEN_URL": "token_url",
            "VASTTRAFIK_POSITIONS_URL": "positions_url",
            "KOLLPASPAR_ADDRESS": "address",
            "KOLLPASPAR_STATIC_DIR": "static_dir",
        }
        _ENV_FLOAT_MAP = {
            "KOLLPASPAR_CENTER_LAT": "center_latitude",
            "KOLLPASPAR_CENTER_LON": "center_longitude",
            "KOLLPASPAR_RADIUS_KM": "radius_km",
            "KOLLPASPAR_POLL_INTERVAL": "poll_interval",
            "KOLLPASPAR_REQUEST_TIMEOUT": "request_timeout",
        }

        config_kwargs: dict[str, Any] = {"client_id": "", "client_secret": ""}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            for env_key, field_name in _ENV_FLOAT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = float(val)

            queue_env = env.get("KOLLPASPAR_SUBSCRIBER_QUEUE_SIZE")
            if queue_env is not None and "subscriber_queue_size" not in overrides:
                config_kwargs["subscriber_queue_size"] = int(queue_env)

            policy_env = env.get("KOLLPASPAR_OVERFLOW_POLICY")
            if policy_env is not None and "overflow_policy" not in overrides:
                config_kwargs["overflow_policy"] = OverflowPolicy(policy_env.strip().lower())
        except ValueError as exc:
            raise ConfigError(f"invalid environment value: {exc}") from exc

        lines_env = env.get("KOLLPASPAR_LINES")
        if lines_env is not None and "lines" not in overrides:
            config_kwargs["lines"] = _env_lines(lines_env)

        if "diff_ignore_last_seen" not in overrides:
            config_kwargs["diff_ignore_last_seen"] = _env_bool(env.get("KOLLPASPAR_DIFF_IGNORE_LAST_SEEN"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
