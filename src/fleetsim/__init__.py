"""fleetsim - Async fleet movement simulation with routed paths and live broadcast."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("fleetsim")
except PackageNotFoundError:
    __version__ = "0+local"

from fleetsim.broadcast import BroadcastPort, FanoutBroadcaster, MultiBroadcaster, NullBroadcaster, Subscription
from fleetsim.config import BoundingBox, SimulationConfig
from fleetsim.exceptions import (
    FleetSimConfigError,
    FleetSimError,
    RoutingError,
    RoutingResponseError,
    StateError,
)
from fleetsim.models import InitialState, LocationData, PathPoint, Tracker, TrackerPath
from fleetsim.query import QueryAPI
from fleetsim.registry import TrackerRegistry
from fleetsim.routing import RouteProvider
from fleetsim.scheduler import SimulationScheduler
from fleetsim.simulator import FleetSimulator
from fleetsim.state.events import BroadcastEvent, BroadcastMessage
from fleetsim.state.store import StateStore

__all__ = [
    "__version__",
    "BoundingBox",
    "BroadcastEvent",
    "BroadcastMessage",
    "BroadcastPort",
    "FanoutBroadcaster",
    "FleetSimConfigError",
    "FleetSimError",
    "FleetSimulator",
    "InitialState",
    "LocationData",
    "MultiBroadcaster",
    "NullBroadcaster",
    "PathPoint",
    "QueryAPI",
    "RouteProvider",
    "RoutingError",
    "RoutingResponseError",
    "SimulationConfig",
    "SimulationScheduler",
    "StateError",
    "StateStore",
    "Subscription",
    "Tracker",
    "TrackerPath",
    "TrackerRegistry",
]
