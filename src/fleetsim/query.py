"""Pull-style accessors for transport adapters."""

from __future__ import annotations

from fleetsim.models.location import LocationData
from fleetsim.models.state import InitialState
from fleetsim.models.tracker import Tracker
from fleetsim.state.store import StateStore


class QueryAPI:
    """Read-only view over a :class:`StateStore`."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    def get_all_trackers(self) -> list[Tracker]:
        return self._store.all_trackers()

    def get_initial_state(self) -> InitialState:
        """Full snapshot for a newly joined subscriber."""
        return self._store.snapshot_all()

    def get_history(self, tracker_id: str) -> list[LocationData]:
        """History of *tracker_id*, oldest first; empty (never an error) for unknown ids."""
        return self._store.history(tracker_id)

    def get_location(self, tracker_id: str) -> LocationData | None:
        return self._store.get_location(tracker_id)
