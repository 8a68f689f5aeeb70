"""Base model for raw feed records.

Every raw record model inherits from :class:`NearbyBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase feed keys map automatically to
  snake_case fields.
* A ``model_validator(mode="before")`` that strips placeholder values
  (``""``, ``"--"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from pynearby.ingestion.normalize import is_sentinel


class NearbyBaseModel(BaseModel):
    """Base for lenient models parsed straight from feed payloads."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original record as delivered by the feed."""

    @model_validator(mode="before")
    @classmethod
    def _clean_placeholders(cls, values: Any) -> Any:
        """Drop placeholder values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = {key: value for key, value in values.items() if not is_sentinel(value)}
        # Keep an explicitly passed raw= (constructor use); stash it otherwise.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
