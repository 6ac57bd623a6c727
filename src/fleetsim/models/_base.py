"""Base model and shared validators for fleetsim payloads.

Every wire model inherits from :class:`FleetBaseModel` which provides:

* ``alias_generator=to_camel`` so models serialise with the camelCase keys
  the transport layer sends to subscribers (``trackerId``, ``timestampMs``).
* ``populate_by_name`` so Python code can construct them with snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel


def _check_latitude(value: float) -> float:
    if not -90.0 <= value <= 90.0:
        raise ValueError(f"latitude must be within [-90, 90], got {value}")
    return value


def _check_longitude(value: float) -> float:
    if not -180.0 <= value <= 180.0:
        raise ValueError(f"longitude must be within [-180, 180], got {value}")
    return value


def to_epoch_ms(value: Any) -> Any:
    """Coerce a datetime to epoch milliseconds; integers pass through unchanged."""
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return value


Latitude = Annotated[float, AfterValidator(_check_latitude)]
Longitude = Annotated[float, AfterValidator(_check_longitude)]
EpochMs = Annotated[int, BeforeValidator(to_epoch_ms)]
"""Annotated type that accepts datetimes and stores epoch milliseconds."""


class FleetBaseModel(BaseModel):
    """Base for fleetsim wire models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with camelCase keys, omitting unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)
