"""OAuth2 token endpoint (client-credentials grant)."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from kollpaspar._constants import TOKEN_EXPIRY_MARGIN
from kollpaspar._redact import redact_for_log
from kollpaspar._transport import Transport
from kollpaspar.config import TrackerConfig
from kollpaspar.exceptions import VasttrafikAuthenticationError, VasttrafikTransportError
from kollpaspar.session import DEFAULT_TOKEN_TTL, Session

_logger = logging.getLogger(__name__)

# Token endpoint answers with one of these when the credentials are wrong.
_REJECTED_STATUSES = frozenset({400, 401, 403})


def build_token_request(config: TrackerConfig) -> tuple[dict[str, str], aiohttp.BasicAuth]:
    """Build the form body and basic-auth credentials for a token request."""
    form = {"grant_type": "client_credentials"}
    auth = aiohttp.BasicAuth(config.client_id, config.client_secret)
    return form, auth


def parse_token_response(response: Any) -> Session:
    """Turn a token endpoint response into a :class:`Session`.

    The TTL is ``expires_in`` minus a safety margin, so the token is
    replaced shortly before the upstream stops accepting it.
    """
    if not isinstance(response, dict):
        raise VasttrafikAuthenticationError("Token response is not a JSON object")

    access_token = response.get("access_token")
    if not isinstance(access_token, str) or not access_token.strip():
        _logger.debug("Token response without access_token: %s", redact_for_log(response))
        raise VasttrafikAuthenticationError("Token response missing access_token")

    ttl = DEFAULT_TOKEN_TTL
    expires_in = response.get("expires_in")
    if isinstance(expires_in, (int, float)) and expires_in > 0:
        ttl = max(float(expires_in) - TOKEN_EXPIRY_MARGIN, 0.0)

    token_type = response.get("token_type")
    return Session(
        access_token=access_token,
        token_type=token_type if isinstance(token_type, str) and token_type else "Bearer",
        ttl=ttl,
    )


async def fetch_token(config: TrackerConfig, transport: Transport) -> Session:
    """Request a fresh access token.

    Raises
    ------
    VasttrafikAuthenticationError
        If the credentials are rejected or no token is returned.
    VasttrafikTransportError
        On network failures or unexpected HTTP statuses.
    """
    form, auth = build_token_request(config)
    try:
        response = await transport.post_form(config.token_url, data=form, auth=auth)
    except VasttrafikTransportError as exc:
        if exc.status_code in _REJECTED_STATUSES:
            raise VasttrafikAuthenticationError(
                f"Token request rejected with HTTP {exc.status_code}",
                endpoint=config.token_url,
            ) from exc
        raise

    session = parse_token_response(response)
    _logger.debug("Obtained access token ttl=%.0fs", session.ttl)
    return session
