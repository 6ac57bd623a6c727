"""Typed models for fleetsim."""

from fleetsim.models.location import LocationData, PathPoint
from fleetsim.models.path import TrackerPath
from fleetsim.models.state import InitialState
from fleetsim.models.tracker import Tracker

__all__ = [
    "InitialState",
    "LocationData",
    "PathPoint",
    "Tracker",
    "TrackerPath",
]
