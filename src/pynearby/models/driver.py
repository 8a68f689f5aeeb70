"""Driver record models."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from pynearby._constants import DEFAULT_AVATAR_URL, DEFAULT_RATING_LABEL
from pynearby.ingestion.normalize import safe_float, safe_int, safe_str
from pynearby.models._base import NearbyBaseModel
from pynearby.models.coordinate import Coordinate, parse_coordinate


class RawDriverRecord(NearbyBaseModel):
    """One driver record exactly as the feed publishes it.

    Every field is optional. Publishers disagree on key names, so the common
    variants are accepted as aliases.
    """

    name: str = Field(default="", validation_alias=AliasChoices("name", "driverName", "displayName"))
    coordinates: Coordinate | None = Field(
        default=None,
        validation_alias=AliasChoices("coordinates", "coords", "position"),
    )
    rating: float | None = None
    trips: int | None = Field(default=None, validation_alias=AliasChoices("trips", "tripCount", "trip_count"))
    car_type: str = Field(default="", validation_alias=AliasChoices("carType", "vehicleType", "car_type"))
    car_model: str = Field(default="", validation_alias=AliasChoices("carModel", "vehicleModel", "car_model"))
    location: str = Field(default="", validation_alias=AliasChoices("location", "locationLabel"))
    image_url: str | None = Field(default=None, validation_alias=AliasChoices("imageUrl", "image_url", "avatarUrl"))

    @field_validator("coordinates", mode="before")
    @classmethod
    def _coerce_coordinates(cls, value: Any) -> Coordinate | None:
        return parse_coordinate(value)

    @field_validator("rating", mode="before")
    @classmethod
    def _coerce_rating(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("trips", mode="before")
    @classmethod
    def _coerce_trips(cls, value: Any) -> int | None:
        return safe_int(value)

    @field_validator("name", "car_type", "car_model", "location", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str:
        return safe_str(value) or ""

    @field_validator("image_url", mode="before")
    @classmethod
    def _coerce_image_url(cls, value: Any) -> str | None:
        return safe_str(value)


class DriverSnapshot(BaseModel):
    """A normalized driver record.

    Produced by :func:`pynearby.ingestion.drivers.normalize`; every field is
    populated. ``rating`` stays ``None`` for unrated drivers so consumers can
    tell "unrated" from "rated 5.0"; use :attr:`display_rating` for display.

    Parameters
    ----------
    id : str
        Key of the record in the feed collection.
    name : str
        Driver display name.
    coordinates : Coordinate
        Last published position, ``(0, 0)`` when unknown.
    rating : float or None
        Average rating, ``None`` when unrated.
    trip_count : int
        Completed trips, never negative.
    vehicle_type : str
        Vehicle make or category.
    vehicle_model : str
        Vehicle model.
    location_label : str
        Human-readable area name published by the driver.
    image_url : str or None
        Avatar URL.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    name: str = ""
    coordinates: Coordinate
    rating: float | None = None
    trip_count: int = 0
    vehicle_type: str = ""
    vehicle_model: str = ""
    location_label: str = ""
    image_url: str | None = None

    @property
    def display_rating(self) -> str:
        """Rating to one decimal, ``"5.0"`` for unrated drivers."""
        if self.rating is None:
            return DEFAULT_RATING_LABEL
        return f"{self.rating:.1f}"

    @property
    def avatar_url(self) -> str:
        return self.image_url or DEFAULT_AVATAR_URL

    @property
    def vehicle_label(self) -> str:
        return " - ".join(part for part in (self.vehicle_type, self.vehicle_model) if part)


class RankedDriver(BaseModel):
    """A driver annotated with its distance from the reference point."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    snapshot: DriverSnapshot
    distance_km: float
    """Great-circle distance, rounded to one decimal."""

    @property
    def id(self) -> str:
        return self.snapshot.id

    @property
    def name(self) -> str:
        return self.snapshot.name

    def to_dict(self) -> dict[str, Any]:
        """Flat, JSON-friendly view used by presentation layers."""
        data = self.snapshot.model_dump()
        data["display_rating"] = self.snapshot.display_rating
        data["avatar_url"] = self.snapshot.avatar_url
        data["distance_km"] = self.distance_km
        return data
