"""Coordinate model."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from pynearby.ingestion.normalize import safe_float


class Coordinate(BaseModel):
    """A latitude/longitude pair in decimal degrees.

    The model itself accepts any finite pair; :attr:`is_valid` reports whether
    the values are inside the geographic range.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lng", "lon"))

    @property
    def is_valid(self) -> bool:
        """Whether latitude is in [-90, 90] and longitude in [-180, 180]."""
        return -90.0 <= self.latitude <= 90.0 and -180.0 <= self.longitude <= 180.0

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


ORIGIN = Coordinate(latitude=0.0, longitude=0.0)
"""Null Island; stands in for drivers that publish no usable position."""


def parse_coordinate(value: Any) -> Coordinate | None:
    """Best-effort conversion of a raw position into a :class:`Coordinate`.

    Accepts a :class:`Coordinate`, a mapping with ``lat``/``lng`` (or
    ``latitude``/``longitude``/``lon``) keys, a nested ``coords`` or
    ``location`` mapping, or a ``[lat, lng]`` pair. Returns ``None`` when
    either component is missing or not a finite number.
    """
    if isinstance(value, Coordinate):
        return value

    if isinstance(value, Mapping):
        for nested_key in ("coords", "location"):
            nested = value.get(nested_key)
            if isinstance(nested, Mapping):
                return parse_coordinate(nested)
        lat = safe_float(value.get("latitude", value.get("lat")))
        lng = safe_float(value.get("longitude", value.get("lng", value.get("lon"))))
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
        lat = safe_float(value[0])
        lng = safe_float(value[1])
    else:
        return None

    if lat is None or lng is None:
        return None
    return Coordinate(latitude=lat, longitude=lng)
