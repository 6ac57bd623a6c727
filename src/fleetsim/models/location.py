"""Geographic point and location models."""

from __future__ import annotations

from pydantic import AliasChoices, Field

from fleetsim.models._base import EpochMs, FleetBaseModel, Latitude, Longitude


class PathPoint(FleetBaseModel):
    """A single point of a path, in degrees."""

    lat: Latitude
    lng: Longitude


class LocationData(FleetBaseModel):
    """Position of one tracker at one instant.

    Serialises as ``{"trackerId", "lat", "lng", "timestampMs"}``; the older
    ``timestamp`` key is accepted on input.
    """

    tracker_id: str
    lat: Latitude
    lng: Longitude
    timestamp_ms: EpochMs = Field(
        ge=0,
        serialization_alias="timestampMs",
        validation_alias=AliasChoices("timestampMs", "timestamp_ms", "timestamp"),
    )

    @property
    def point(self) -> PathPoint:
        return PathPoint(lat=self.lat, lng=self.lng)
