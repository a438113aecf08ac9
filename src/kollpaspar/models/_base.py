"""Base model for Västtrafik payloads and the events derived from them.

Every model inherits from :class:`VasttrafikBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase API keys map
  automatically to snake_case fields, and serialise back to camelCase.
* A ``model_validator(mode="before")`` that drops explicit ``null``
  values so the field default is used instead.
* Frozen instances: a vehicle snapshot is never mutated in place.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class VasttrafikBaseModel(BaseModel):
    """Base for upstream payload and event models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, values: Any) -> Any:
        """Drop ``None`` values so defaults apply.

        NaN coordinates are kept as-is; identity matching treats them as
        "far away" rather than rejecting the whole snapshot.
        """
        if not isinstance(values, dict):
            return values
        return {key: value for key, value in values.items() if value is not None}
