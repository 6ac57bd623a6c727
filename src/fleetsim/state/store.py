"""In-memory state store.

This is the only component that holds current locations, paths and
history. Each tracker's slice sits behind its own lock so that a writer
updating one tracker never blocks readers of another, and a reader never
sees a location paired with a path from a different update.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field

from fleetsim.exceptions import StateError
from fleetsim.models.location import LocationData
from fleetsim.models.path import TrackerPath
from fleetsim.models.state import InitialState
from fleetsim.models.tracker import Tracker


@dataclass
class TrackerRecord:
    """Everything the store knows about one tracker."""

    tracker: Tracker
    location: LocationData
    path: TrackerPath
    history: deque[LocationData]
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class StateStore:
    """Authoritative per-tracker state.

    Parameters
    ----------
    history_limit
        Maximum history entries kept per tracker. ``None`` (the default)
        keeps the full history for the lifetime of the process.
    """

    def __init__(self, *, history_limit: int | None = None) -> None:
        if history_limit is not None and history_limit < 1:
            raise ValueError(f"history_limit must be >= 1 or None, got {history_limit}")
        self._history_limit = history_limit
        self._records: dict[str, TrackerRecord] = {}
        # Guards structural changes of _records only; per-tracker data uses TrackerRecord.lock.
        self._records_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, tracker_id: object) -> bool:
        return tracker_id in self._records

    def _records_snapshot(self) -> list[TrackerRecord]:
        with self._records_lock:
            return list(self._records.values())

    def seed(self, tracker: Tracker, path: TrackerPath, location: LocationData) -> None:
        """Register *tracker* with its initial path and location (history = ``[location]``)."""
        if location.tracker_id != tracker.id:
            raise StateError(f"location belongs to {location.tracker_id!r}, not {tracker.id!r}")
        record = TrackerRecord(
            tracker=tracker,
            location=location,
            path=path.model_copy(deep=True),
            history=deque([location], maxlen=self._history_limit),
        )
        with self._records_lock:
            if tracker.id in self._records:
                raise StateError(f"tracker {tracker.id!r} is already seeded")
            self._records[tracker.id] = record

    def commit(self, tracker_id: str, path: TrackerPath, location: LocationData) -> LocationData:
        """Atomically replace the path and location of *tracker_id* and append to its history.

        The stored timestamp never goes backwards: a location stamped
        earlier than the previous one is re-stamped with the previous
        timestamp. Returns the location as stored.
        """
        record = self._records.get(tracker_id)
        if record is None:
            raise StateError(f"unknown tracker {tracker_id!r}")
        if location.tracker_id != tracker_id:
            raise StateError(f"location belongs to {location.tracker_id!r}, not {tracker_id!r}")

        stored_path = path.model_copy(deep=True)
        with record.lock:
            if location.timestamp_ms < record.location.timestamp_ms:
                location = location.model_copy(update={"timestamp_ms": record.location.timestamp_ms})
            record.path = stored_path
            record.location = location
            record.history.append(location)
        return location

    def get_path(self, tracker_id: str) -> TrackerPath | None:
        """Private copy of the current path, or ``None`` for unknown ids."""
        record = self._records.get(tracker_id)
        if record is None:
            return None
        with record.lock:
            return record.path.model_copy(deep=True)

    def get_location(self, tracker_id: str) -> LocationData | None:
        record = self._records.get(tracker_id)
        if record is None:
            return None
        with record.lock:
            return record.location

    def get_slice(self, tracker_id: str) -> tuple[LocationData, TrackerPath] | None:
        """Matching (location, path copy) pair for one tracker."""
        record = self._records.get(tracker_id)
        if record is None:
            return None
        with record.lock:
            return record.location, record.path.model_copy(deep=True)

    def history(self, tracker_id: str) -> list[LocationData]:
        """Ordered history of *tracker_id*; empty for unknown ids."""
        record = self._records.get(tracker_id)
        if record is None:
            return []
        with record.lock:
            return list(record.history)

    def all_trackers(self) -> list[Tracker]:
        return [record.tracker for record in self._records_snapshot()]

    def snapshot_all(self) -> InitialState:
        """Point-in-time copy of every tracker, location and path.

        Each tracker's location and path are read together under that
        tracker's lock; different trackers may be read at slightly
        different moments.
        """
        trackers: list[Tracker] = []
        locations: dict[str, LocationData] = {}
        paths: dict[str, TrackerPath] = {}
        for record in self._records_snapshot():
            with record.lock:
                location = record.location
                path = record.path.model_copy(deep=True)
            trackers.append(record.tracker)
            locations[record.tracker.id] = location
            paths[record.tracker.id] = path
        return InitialState(trackers=trackers, locations=locations, paths=paths)
