"""Change detection between two tracked sets."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from kollpaspar.models.change import Change
from kollpaspar.models.vehicle import TrackedVehicle


def _state(vehicle: TrackedVehicle, ignore_last_seen: bool) -> dict[str, Any]:
    exclude = {"id", "last_seen_at"} if ignore_last_seen else {"id"}
    return vehicle.model_dump(exclude=exclude)


def diff(
    previous: Sequence[TrackedVehicle],
    current: Sequence[TrackedVehicle],
    *,
    ignore_last_seen: bool = False,
) -> list[Change]:
    """Return the changes turning *previous* into *current*.

    * identifier only in *current*: ``update``
    * identifier in both with any differing field: ``update``
    * identifier only in *previous*: ``delete``

    ``last_seen_at`` counts as a field unless *ignore_last_seen* is set.
    Since reconciliation restamps every vehicle, the default reports every
    surviving vehicle on every poll. The order of the result carries no
    meaning.
    """
    old_by_id = {vehicle.id: vehicle for vehicle in previous}
    changes: list[Change] = []

    for vehicle in current:
        old = old_by_id.pop(vehicle.id, None)
        if old is None or _state(old, ignore_last_seen) != _state(vehicle, ignore_last_seen):
            changes.append(Change.updated(vehicle))

    changes.extend(Change.deleted(vehicle_id) for vehicle_id in old_by_id)
    return changes
