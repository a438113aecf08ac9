"""Line reference data.

Designation lists are module-level tuples. Full line data (badge colours
and route geometry) is loaded once at startup into a frozen
:class:`LineCatalog` and handed to whatever needs it; nothing mutates it
afterwards.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from kollpaspar.exceptions import ConfigError
from kollpaspar.models.vehicle import LineInfo

TRAMS: tuple[str, ...] = ("1", "2", "3", "4", "5", "6", "7", "8", "9", "10", "11")
BUSES: tuple[str, ...] = ("16", "17", "18", "19", "21", "25")
EXPRESS_BUSES: tuple[str, ...] = ("X1", "X2", "X3", "X4", "RÖD", "LILA", "SVART")


class RoutePoint(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    lat: float = Field(validation_alias=AliasChoices("lat", "Lat", "latitude"))
    long: float = Field(validation_alias=AliasChoices("long", "Long", "lon", "longitude"))


class Line(BaseModel):
    """A line with its display metadata and route polyline."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    info: LineInfo = Field(validation_alias=AliasChoices("lineInfo", "info"), serialization_alias="lineInfo")
    route: tuple[RoutePoint, ...] = ()

    @property
    def designation(self) -> str:
        return self.info.name


class LineCatalog(BaseModel):
    """Immutable collection of :class:`Line` entries keyed by designation."""

    model_config = ConfigDict(frozen=True)

    lines: tuple[Line, ...] = ()

    @property
    def designations(self) -> tuple[str, ...]:
        return tuple(line.designation for line in self.lines)

    def get(self, designation: str) -> Line | None:
        for line in self.lines:
            if line.designation == designation:
                return line
        return None

    @classmethod
    def from_json(cls, data: str | bytes) -> LineCatalog:
        """Parse a JSON array of ``{"lineInfo": {...}, "route": [...]}`` objects.

        Raises
        ------
        ConfigError
            If the document is not valid JSON or does not match the schema.
        """
        try:
            raw: Any = json.loads(data)
            return cls(lines=raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"invalid line catalog: {exc}") from exc

    @classmethod
    def from_file(cls, path: str | Path) -> LineCatalog:
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise ConfigError(f"cannot read line catalog {path}: {exc}") from exc
        return cls.from_json(data)
