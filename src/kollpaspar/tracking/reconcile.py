"""Identity matching between consecutive position snapshots.

Upstream positions carry no vehicle identity. Each poll, every new
observation is matched greedily against the not-yet-claimed vehicles of
the previous poll; the best candidate scoring at least
:data:`MATCH_THRESHOLD` passes its identifier on, otherwise a fresh one is
minted. Matching is per observation, not a global assignment: live vehicle
counts per city are small and the greedy pass is good enough.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from kollpaspar._constants import (
    DIRECTION_WEIGHT,
    DISTANCE_BONUS_MAX,
    DISTANCE_BONUS_RADIUS_M,
    DISTANCE_BONUS_SCALE_M,
    LINE_NAME_WEIGHT,
    MATCH_THRESHOLD,
    TRANSPORT_MODE_WEIGHT,
)
from kollpaspar.geo import haversine
from kollpaspar.models.vehicle import TrackedVehicle, Vehicle

IdFactory = Callable[[], str]


def new_vehicle_id() -> str:
    return str(uuid.uuid4())


def score(observed: Vehicle, known: Vehicle) -> float:
    """Similarity between two positions; higher means more likely the same vehicle.

    * +1.0 same line name
    * +0.5 same transport mode
    * +1.0 same direction label
    * up to +1.5 for proximity, fading linearly to 0 at 150 m
    """
    s = 0.0
    if observed.line.name == known.line.name:
        s += LINE_NAME_WEIGHT
    if observed.line.transport_mode == known.line.transport_mode:
        s += TRANSPORT_MODE_WEIGHT
    if observed.direction == known.direction:
        s += DIRECTION_WEIGHT
    d = haversine(observed.latitude, observed.longitude, known.latitude, known.longitude)
    # NaN compares false: unusable coordinates just earn no bonus.
    if d < DISTANCE_BONUS_RADIUS_M:
        s += DISTANCE_BONUS_MAX - d / DISTANCE_BONUS_SCALE_M
    return s


def reconcile(
    previous: Sequence[TrackedVehicle],
    observed: Sequence[Vehicle],
    *,
    now: datetime | None = None,
    id_factory: IdFactory = new_vehicle_id,
) -> list[TrackedVehicle]:
    """Assign identities to *observed* positions, reusing those in *previous*.

    Parameters
    ----------
    previous : sequence of TrackedVehicle
        Vehicles from the last successful poll. Scan order decides ties:
        among equal best scores the earliest entry wins.
    observed : sequence of Vehicle
        New positions in any order. Identical observations are distinct
        vehicles.
    now : datetime, optional
        Timestamp stamped on every result; defaults to the current UTC time.
    id_factory : callable
        Mints identifiers for unmatched observations.

    Returns
    -------
    list of TrackedVehicle
        One entry per observation, in observation order, with pairwise
        distinct identifiers.
    """
    seen_at = now if now is not None else datetime.now(UTC)
    claimed: set[int] = set()
    result: list[TrackedVehicle] = []

    for vehicle in observed:
        best_index: int | None = None
        best_score = 0.0
        for index, candidate in enumerate(previous):
            if index in claimed:
                continue
            s = score(vehicle, candidate)
            if s >= MATCH_THRESHOLD and s > best_score:
                best_score = s
                best_index = index

        if best_index is None:
            vehicle_id = id_factory()
        else:
            claimed.add(best_index)
            vehicle_id = previous[best_index].id

        result.append(TrackedVehicle.identify(vehicle, vehicle_id=vehicle_id, seen_at=seen_at))

    return result
