"""Vehicle positions endpoint.

Endpoint:
  - /pr/v4/positions
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from kollpaspar._transport import QueryParams, Transport
from kollpaspar.config import TrackerConfig
from kollpaspar.exceptions import VasttrafikApiError
from kollpaspar.geo import Coordinates
from kollpaspar.models.vehicle import Vehicle
from kollpaspar.session import Session

_logger = logging.getLogger(__name__)


def build_positions_params(
    lower_left: Coordinates,
    upper_right: Coordinates,
    lines: Iterable[str],
    limit: int,
) -> QueryParams:
    """Build the query string for a positions request.

    ``lineDesignations`` is repeated once per line.
    """
    params: list[tuple[str, str]] = [
        ("lowerLeftLat", f"{lower_left.lat:f}"),
        ("lowerLeftLong", f"{lower_left.long:f}"),
        ("upperRightLat", f"{upper_right.lat:f}"),
        ("upperRightLong", f"{upper_right.long:f}"),
        ("limit", str(limit)),
    ]
    params.extend(("lineDesignations", line) for line in lines)
    return params


def parse_positions_response(response: Any, *, endpoint: str = "") -> list[Vehicle]:
    """Validate a positions response into :class:`Vehicle` models."""
    if not isinstance(response, list):
        raise VasttrafikApiError(
            f"Positions response is {type(response).__name__}, expected a list",
            endpoint=endpoint,
        )
    try:
        return [Vehicle.model_validate(item) for item in response]
    except ValidationError as exc:
        raise VasttrafikApiError(f"Malformed vehicle in positions response: {exc}", endpoint=endpoint) from exc


async def fetch_positions(
    config: TrackerConfig,
    session: Session,
    transport: Transport,
    lower_left: Coordinates,
    upper_right: Coordinates,
    lines: Iterable[str],
) -> list[Vehicle]:
    """Fetch the vehicles currently inside the bounding box.

    Parameters
    ----------
    config : TrackerConfig
        Client configuration.
    session : Session
        Valid access token.
    transport : Transport
        HTTP transport.
    lower_left, upper_right : Coordinates
        Corners of the area to query.
    lines : iterable of str
        Line designations to include.

    Returns
    -------
    list of Vehicle
        One entry per reported vehicle, in upstream order.
    """
    params = build_positions_params(lower_left, upper_right, lines, config.limit)
    response = await transport.get_json(
        config.positions_url,
        params=params,
        headers={"authorization": session.authorization},
    )
    vehicles = parse_positions_response(response, endpoint=config.positions_url)
    _logger.debug("Positions: %d vehicles", len(vehicles))
    return vehicles
