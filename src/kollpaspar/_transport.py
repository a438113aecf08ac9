"""HTTP transport for the Västtrafik API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import aiohttp

from kollpaspar._constants import USER_AGENT
from kollpaspar._redact import redact_for_log
from kollpaspar.exceptions import VasttrafikTransportError

_logger = logging.getLogger(__name__)

QueryParams = Sequence[tuple[str, str]]


class Transport(Protocol):
    """Structural transport interface used by the endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, url: str, *, params: QueryParams, headers: Mapping[str, str]) -> Any:
        ...

    async def post_form(
        self,
        url: str,
        *,
        data: Mapping[str, str],
        auth: aiohttp.BasicAuth,
    ) -> Any:
        ...


class HttpTransport:
    """aiohttp-backed transport returning decoded JSON bodies."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 10.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_json(self, url: str, *, params: QueryParams, headers: Mapping[str, str]) -> Any:
        _logger.debug("GET %s params=%s headers=%s", url, params, redact_for_log(headers))
        request_headers = {"accept": "application/json", "user-agent": USER_AGENT, **headers}
        return await self._request("GET", url, params=list(params), headers=request_headers)

    async def post_form(
        self,
        url: str,
        *,
        data: Mapping[str, str],
        auth: aiohttp.BasicAuth,
    ) -> Any:
        _logger.debug("POST %s form=%s", url, redact_for_log(data))
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        return await self._request("POST", url, data=dict(data), auth=auth, headers=headers)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            async with self._http.request(method, url, timeout=self._timeout, **kwargs) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise VasttrafikTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=url,
                    )
        except VasttrafikTransportError:
            raise
        except TimeoutError as exc:
            raise VasttrafikTransportError(f"Request to {url} timed out", endpoint=url) from exc
        except aiohttp.ClientError as exc:
            raise VasttrafikTransportError(f"Request to {url} failed: {exc}", endpoint=url) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise VasttrafikTransportError(
                f"Invalid JSON from {url}: {text[:200]}",
                endpoint=url,
            ) from exc
