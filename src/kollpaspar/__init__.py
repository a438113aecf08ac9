"""kollpaspar - live Västtrafik vehicle tracking over server-sent events."""

from importlib.metadata import PackageNotFoundError, version

from kollpaspar.broadcast import Broadcaster, OverflowPolicy, Subscription
from kollpaspar.client import PositionsSource, VasttrafikClient
from kollpaspar.config import TrackerConfig
from kollpaspar.exceptions import (
    ChangeEncodeError,
    ConfigError,
    KollpasparError,
    TrackerSetupError,
    VasttrafikApiError,
    VasttrafikAuthenticationError,
    VasttrafikTransportError,
)
from kollpaspar.geo import Coordinates, bounding_box_around, haversine
from kollpaspar.lines import BUSES, EXPRESS_BUSES, TRAMS, LineCatalog
from kollpaspar.models import Change, DeleteChange, LineInfo, TrackedVehicle, Vehicle
from kollpaspar.tracking.diff import diff
from kollpaspar.tracking.reconcile import reconcile, score
from kollpaspar.tracking.tracker import Tracker

try:
    __version__ = version("kollpaspar")
except PackageNotFoundError:
    __version__ = "0+local"

__all__ = [
    "__version__",
    "BUSES",
    "Broadcaster",
    "Change",
    "ChangeEncodeError",
    "ConfigError",
    "Coordinates",
    "DeleteChange",
    "EXPRESS_BUSES",
    "KollpasparError",
    "LineCatalog",
    "LineInfo",
    "OverflowPolicy",
    "PositionsSource",
    "Subscription",
    "TRAMS",
    "TrackedVehicle",
    "Tracker",
    "TrackerConfig",
    "TrackerSetupError",
    "VasttrafikApiError",
    "VasttrafikAuthenticationError",
    "VasttrafikClient",
    "VasttrafikTransportError",
    "Vehicle",
    "bounding_box_around",
    "diff",
    "haversine",
    "reconcile",
    "score",
]
