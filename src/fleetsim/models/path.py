"""Tracker path model."""

from __future__ import annotations

from pydantic import AliasChoices, ConfigDict, Field

from fleetsim.models._base import FleetBaseModel
from fleetsim.models.location import LocationData, PathPoint


class TrackerPath(FleetBaseModel):
    """Ordered points a tracker walks through, plus a cursor.

    Unlike the other wire models a path is mutable: the scheduler moves the
    cursor forward on every tick. ``current_point_index`` may equal
    ``len(points)`` only between :meth:`advance` reporting exhaustion and
    the path being replaced.

    Parameters
    ----------
    points : list[PathPoint]
        Non-empty sequence of points.
    current_point_index : int
        Cursor into *points*.
    distance_meters : float or None
        Route length reported by the directions service.
    duration_seconds : float or None
        Route duration reported by the directions service.
    """

    model_config = ConfigDict(frozen=False)

    points: list[PathPoint] = Field(min_length=1)
    current_point_index: int = Field(default=0, ge=0)
    distance_meters: float | None = Field(
        default=None,
        serialization_alias="distanceMeters",
        validation_alias=AliasChoices("distanceMeters", "distance_meters", "distance"),
    )
    duration_seconds: float | None = Field(
        default=None,
        serialization_alias="durationSeconds",
        validation_alias=AliasChoices("durationSeconds", "duration_seconds", "duration"),
    )

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_exhausted(self) -> bool:
        return self.current_point_index >= len(self.points)

    @property
    def is_synthetic(self) -> bool:
        """True for locally generated paths (no route summary)."""
        return self.distance_meters is None and self.duration_seconds is None

    def advance(self) -> bool:
        """Move the cursor one point forward; return ``True`` when the path is used up."""
        self.current_point_index += 1
        return self.is_exhausted

    def point_at(self, index: int) -> PathPoint | None:
        if 0 <= index < len(self.points):
            return self.points[index]
        return None

    def location_at(self, tracker_id: str, index: int, timestamp_ms: int) -> LocationData | None:
        """Location of *tracker_id* at point *index*, or ``None`` if there is no such point."""
        point = self.point_at(index)
        if point is None:
            return None
        return LocationData(tracker_id=tracker_id, lat=point.lat, lng=point.lng, timestamp_ms=timestamp_ms)

    def current_location(self, tracker_id: str, timestamp_ms: int) -> LocationData | None:
        return self.location_at(tracker_id, self.current_point_index, timestamp_ms)
