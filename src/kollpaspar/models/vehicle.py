"""Vehicle position models."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from kollpaspar.models._base import VasttrafikBaseModel


class LineInfo(VasttrafikBaseModel):
    """Display metadata of the line a vehicle runs on.

    Parameters
    ----------
    name : str
        Line designation, e.g. ``"10"`` or ``"11"``.
    transport_mode : str
        Transport mode, e.g. ``"tram"`` or ``"bus"``.
    background_color, foreground_color, border_color : str
        Hex colours used when rendering the line badge.
    """

    name: str = ""
    transport_mode: str = ""
    background_color: str = ""
    foreground_color: str = ""
    border_color: str = ""


class Vehicle(VasttrafikBaseModel):
    """A vehicle position as reported upstream, without a stable identity.

    Parameters
    ----------
    name : str
        Vehicle name; in practice the line designation.
    direction : str
        Direction label, e.g. ``"Frölunda Torg"``.
    latitude, longitude : float
        Position in degrees.
    line : LineInfo
        The line this vehicle is on.
    """

    name: str = ""
    direction: str = ""
    latitude: float
    longitude: float
    line: LineInfo = Field(default_factory=LineInfo)


class TrackedVehicle(Vehicle):
    """A :class:`Vehicle` bound to a stable identifier.

    The identifier is assigned once and carried across polls for as long as
    the vehicle keeps being matched; it is never reused after the vehicle
    disappears.
    """

    id: str
    last_seen_at: datetime

    @classmethod
    def identify(cls, vehicle: Vehicle, *, vehicle_id: str, seen_at: datetime) -> TrackedVehicle:
        """Bind *vehicle* to *vehicle_id*, stamped as seen at *seen_at*."""
        return cls(
            id=vehicle_id,
            last_seen_at=seen_at,
            name=vehicle.name,
            direction=vehicle.direction,
            latitude=vehicle.latitude,
            longitude=vehicle.longitude,
            line=vehicle.line,
        )
