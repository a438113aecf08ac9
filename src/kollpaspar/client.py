"""High-level async client for the Västtrafik positions API."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

import aiohttp

from kollpaspar._api.positions import fetch_positions
from kollpaspar._api.token import fetch_token
from kollpaspar._transport import HttpTransport, Transport
from kollpaspar.config import TrackerConfig
from kollpaspar.exceptions import KollpasparError, VasttrafikTransportError
from kollpaspar.geo import Coordinates
from kollpaspar.models.vehicle import Vehicle
from kollpaspar.session import Session

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class VasttrafikClient:
    """Async client for the Västtrafik API.

    Usage::

        async with VasttrafikClient(config) as client:
            vehicles = await client.list_vehicles(lower_left, upper_right, ["6", "11"])
    """

    def __init__(
        self,
        config: TrackerConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = None
        self._session: Session | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> VasttrafikClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._session = None

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self) -> Session:
        """Obtain a new access token."""
        transport = self._require_transport()
        self._session = await fetch_token(self._config, transport)
        return self._session

    async def ensure_session(self) -> Session:
        """Return a valid access token, requesting one if expired."""
        if self._session is not None:
            if not self._session.is_expired:
                return self._session
            _logger.debug("Access token expired after %.0fs; requesting a new one", self._session.age)
        return await self.authenticate()

    def invalidate_session(self) -> None:
        """Force token invalidation (next call will re-authenticate)."""
        self._session = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise KollpasparError("Client not initialized. Use 'async with VasttrafikClient(...) as client:'")
        return self._transport

    async def _call_with_reauth(self, fn: Callable[[Session], Awaitable[T]]) -> T:
        """Run an API call, retrying once when the token is rejected."""
        session = await self.ensure_session()
        try:
            return await fn(session)
        except VasttrafikTransportError as exc:
            if exc.status_code != 401:
                raise
            _logger.debug("Access token rejected; re-authenticating")
            self.invalidate_session()
            session = await self.ensure_session()
            return await fn(session)

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    async def list_vehicles(
        self,
        lower_left: Coordinates,
        upper_right: Coordinates,
        lines: Iterable[str],
    ) -> list[Vehicle]:
        """Fetch the vehicles on *lines* currently inside the bounding box."""
        transport = self._require_transport()
        line_list = list(lines)

        async def _fetch(session: Session) -> list[Vehicle]:
            return await fetch_positions(self._config, session, transport, lower_left, upper_right, line_list)

        return await self._call_with_reauth(_fetch)

    def positions_source(
        self,
        lower_left: Coordinates | None = None,
        upper_right: Coordinates | None = None,
        lines: Iterable[str] | None = None,
    ) -> PositionsSource:
        """Bind a bounding box and line list into a tracker position source.

        Defaults come from the client configuration.
        """
        default_lower_left, default_upper_right = self._config.bounding_box
        return PositionsSource(
            self,
            lower_left or default_lower_left,
            upper_right or default_upper_right,
            tuple(lines) if lines is not None else self._config.lines,
        )


class PositionsSource:
    """Fixed-area query against a :class:`VasttrafikClient`."""

    def __init__(
        self,
        client: VasttrafikClient,
        lower_left: Coordinates,
        upper_right: Coordinates,
        lines: tuple[str, ...],
    ) -> None:
        self._client = client
        self.lower_left = lower_left
        self.upper_right = upper_right
        self.lines = lines

    async def fetch(self) -> list[Vehicle]:
        return await self._client.list_vehicles(self.lower_left, self.upper_right, self.lines)
