"""Change events streamed to subscribers.

Wire format, one JSON object per event with exactly one key::

    {"update": {"id": "...", "lastSeenAt": "...", "name": "...", ...}}
    {"delete": {"id": "..."}}
"""

from __future__ import annotations

import json
import math

from pydantic import model_validator
from pydantic_core import PydanticSerializationError

from kollpaspar.exceptions import ChangeEncodeError
from kollpaspar.models._base import VasttrafikBaseModel
from kollpaspar.models.vehicle import TrackedVehicle


class DeleteChange(VasttrafikBaseModel):
    id: str


class Change(VasttrafikBaseModel):
    """Either an ``update`` carrying the new vehicle state or a ``delete``."""

    update: TrackedVehicle | None = None
    delete: DeleteChange | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> Change:
        if (self.update is None) == (self.delete is None):
            raise ValueError("change must carry exactly one of 'update' or 'delete'")
        return self

    @classmethod
    def updated(cls, vehicle: TrackedVehicle) -> Change:
        return cls(update=vehicle)

    @classmethod
    def deleted(cls, vehicle_id: str) -> Change:
        return cls(delete=DeleteChange(id=vehicle_id))

    @property
    def vehicle_id(self) -> str:
        if self.update is not None:
            return self.update.id
        assert self.delete is not None  # noqa: S101
        return self.delete.id

    def to_json_bytes(self) -> bytes:
        """Encode the event as compact UTF-8 JSON.

        Raises
        ------
        ChangeEncodeError
            If the event holds values JSON cannot represent, such as
            non-finite coordinates.
        """
        if self.update is not None and not (
            math.isfinite(self.update.latitude) and math.isfinite(self.update.longitude)
        ):
            raise ChangeEncodeError(
                f"vehicle {self.update.id} has non-finite coordinates "
                f"({self.update.latitude}, {self.update.longitude})"
            )
        try:
            payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
            text = json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
        except (PydanticSerializationError, TypeError, ValueError) as exc:
            raise ChangeEncodeError(f"cannot encode change for {self.vehicle_id}: {exc}") from exc
        return text.encode("utf-8")
