"""Typed models for vehicle positions and change events."""

from kollpaspar.models.change import Change, DeleteChange
from kollpaspar.models.vehicle import LineInfo, TrackedVehicle, Vehicle

__all__ = [
    "Change",
    "DeleteChange",
    "LineInfo",
    "TrackedVehicle",
    "Vehicle",
]
