"""Snapshot payload delivered to newly joined subscribers."""

from __future__ import annotations

from pydantic import Field

from fleetsim.models._base import FleetBaseModel
from fleetsim.models.location import LocationData
from fleetsim.models.path import TrackerPath
from fleetsim.models.tracker import Tracker


class InitialState(FleetBaseModel):
    """Trackers plus their current locations and paths, keyed by tracker id."""

    trackers: list[Tracker] = Field(default_factory=list)
    locations: dict[str, LocationData] = Field(default_factory=dict)
    paths: dict[str, TrackerPath] = Field(default_factory=dict)
