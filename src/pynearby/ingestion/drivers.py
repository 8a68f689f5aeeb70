"""Driver collection ingestion + normalization."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

from pydantic import ValidationError

from pynearby.ingestion.normalize import non_negative_or_zero
from pynearby.models.coordinate import ORIGIN
from pynearby.models.driver import DriverSnapshot, RawDriverRecord

_logger = logging.getLogger(__name__)


def parse_record(raw: Any) -> RawDriverRecord:
    """Parse one raw record, falling back to an all-defaults record."""
    if not isinstance(raw, Mapping):
        return RawDriverRecord()
    try:
        return RawDriverRecord.model_validate(dict(raw))
    except ValidationError:
        _logger.debug("Unparseable driver record; using defaults", exc_info=True)
        return RawDriverRecord()


def normalize(driver_id: str, raw: Any) -> DriverSnapshot:
    """Convert a raw feed record into a :class:`DriverSnapshot`.

    Never raises. A missing or out-of-range position becomes ``(0, 0)`` and a
    missing trip count becomes ``0``; the rating is left unset.
    """
    record = parse_record(raw)

    coordinates = record.coordinates
    if coordinates is None:
        coordinates = ORIGIN
    elif not coordinates.is_valid:
        _logger.debug("Driver %s published out-of-range position %s", driver_id, coordinates)
        coordinates = ORIGIN

    return DriverSnapshot(
        id=str(driver_id),
        name=record.name,
        coordinates=coordinates,
        rating=record.rating,
        trip_count=non_negative_or_zero(record.trips),
        vehicle_type=record.car_type,
        vehicle_model=record.car_model,
        location_label=record.location,
        image_url=record.image_url,
    )


def iter_records(payload: Any) -> Iterator[tuple[str, Any]]:
    """Yield ``(id, record)`` pairs from a full-collection payload.

    Realtime databases deliver collections keyed by id, but collections with
    integer-like keys arrive as lists with ``None`` holes.
    """
    if payload is None:
        return
    if isinstance(payload, Mapping):
        for key, record in payload.items():
            yield str(key), record
        return
    if isinstance(payload, list):
        for index, record in enumerate(payload):
            if record is not None:
                yield str(index), record
        return
    _logger.debug("Ignoring driver collection of type %s", type(payload).__name__)


def normalize_collection(payload: Any) -> list[DriverSnapshot]:
    """Normalize every record of a full-collection payload, in delivery order."""
    return [normalize(driver_id, record) for driver_id, record in iter_records(payload)]
